"""Exception hierarchy for ag-jz.

``FetchError``, ``ResolutionError``, ``RegistryIOError`` and ``GlobalDirError``
abort a sync batch unless it runs with ``continue_on_error``.
``FileCopyError`` never leaves the merge engine: it is caught there and
recorded as a skipped file.
"""

from __future__ import annotations

from pathlib import Path


class AgjzError(Exception):
    """Base exception for ag-jz errors."""
    pass


class ConfigError(AgjzError):
    """Raised when the configuration file holds invalid values."""
    pass


class FetchError(AgjzError):
    """The template fetcher could not materialize a kit."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch {source}: {reason}")


class ResolutionError(AgjzError):
    """A fetched tree has neither a payload folder nor recognizable asset folders."""

    def __init__(self, fetched_root: Path, message: str | None = None):
        self.fetched_root = fetched_root
        super().__init__(message or f"Could not find a kit payload in {fetched_root}")


class FileCopyError(AgjzError):
    """A single payload file could not be copied into the aggregate directory."""

    def __init__(self, rel_path: str, cause: OSError):
        self.rel_path = rel_path
        self.cause = cause
        super().__init__(f"Could not copy {rel_path}: {cause}")


class RegistryIOError(AgjzError):
    """The registry file could not be read, parsed, or written."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Registry {path}: {reason}")


class GlobalDirError(AgjzError):
    """The aggregate directory could not be created."""

    def __init__(self, global_dir: Path, cause: OSError):
        self.global_dir = global_dir
        self.cause = cause
        super().__init__(f"Could not create global directory {global_dir}: {cause}")


class LinkError(AgjzError):
    """Base exception for workspace link failures."""
    pass


class GlobalDirMissingError(LinkError):
    """The aggregate directory does not exist yet."""

    def __init__(self, global_dir: Path):
        self.global_dir = global_dir
        super().__init__(f"Global .agent directory not found at: {global_dir}")


class LinkExistsError(LinkError):
    """The workspace already has an ``.agent`` entry and replacement was not requested."""

    def __init__(self, link_path: Path):
        self.link_path = link_path
        super().__init__(f".agent already exists at: {link_path}")
