"""Locate the payload inside a freshly fetched kit tree.

A kit either ships a dedicated ``.agent`` folder (merged as-is) or keeps its
assets at the repository root. In the latter "root mode" the well-known
repository files at the top level (VCS metadata, CI, dependencies, license,
readme, package manifests) are left out of the merge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from agjz_cli.errors import ResolutionError
from agjz_cli.kits.home import AGENT_FOLDER
from agjz_cli.kits.registry import REGISTRY_FILE

logger = logging.getLogger(__name__)

# Top-level folders that mark a repository root as a usable kit payload.
COMMON_FOLDERS: tuple[str, ...] = ("skills", "workflows", "rules", "scripts", "docs", "assets")

# Skipped at depth zero in root mode only; nested occurrences are copied.
ROOT_EXCLUDES: frozenset[str] = frozenset(
    {
        ".git",
        ".github",
        "node_modules",
        "README.md",
        "LICENSE",
        "package.json",
        "package-lock.json",
        ".gitignore",
    }
)


@dataclass(frozen=True)
class PayloadTree:
    """The subtree whose contents get merged into the aggregate directory."""

    path: Path
    root_mode: bool

    def is_excluded(self, name: str, depth: int) -> bool:
        """Return True when the entry *name* at *depth* must not be merged."""
        if depth != 0:
            return False
        if name == REGISTRY_FILE:
            return True
        return self.root_mode and name in ROOT_EXCLUDES


def resolve_payload(fetched_root: Path) -> PayloadTree:
    """Pick the payload subtree of *fetched_root*.

    Raises:
        ResolutionError: neither ``.agent`` nor any of ``COMMON_FOLDERS``
            exists at the root.
    """
    fetched_root = Path(fetched_root)
    agent_dir = fetched_root / AGENT_FOLDER
    if agent_dir.is_dir():
        logger.debug("Payload folder found: %s", agent_dir)
        return PayloadTree(path=agent_dir, root_mode=False)

    present = [name for name in COMMON_FOLDERS if (fetched_root / name).exists()]
    if present:
        logger.debug("No %s folder; root mode (found %s)", AGENT_FOLDER, ", ".join(present))
        return PayloadTree(path=fetched_root, root_mode=True)

    raise ResolutionError(
        fetched_root,
        f"Could not find {AGENT_FOLDER} folder or common agent folders "
        f"({', '.join(COMMON_FOLDERS)}) in source repository!",
    )
