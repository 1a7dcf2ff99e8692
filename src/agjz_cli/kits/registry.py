"""Sync registry: which kit last wrote which file in the aggregate directory.

The registry lives at ``<global_dir>/.sync-registry.json``::

    {
      "kits": {"<kitId>": {"source": ..., "installedAt": ..., "lastUpdated": ..., "files": [...]}},
      "files": {"<relPath>": "<kitId>"}
    }

``KitRecord.files`` is append-only. A path a kit no longer ships stays
listed (and owned) until another kit writes it.
"""

from __future__ import annotations

import json
import logging
import os
import re
import stat
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from agjz_cli.errors import RegistryIOError

logger = logging.getLogger(__name__)

REGISTRY_FILE = ".sync-registry.json"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def kit_id_for(source: str) -> str:
    """Derive the registry key for a kit source string."""
    return _NON_ALNUM.sub("_", source)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class KitRecord:
    """Bookkeeping for one kit ever merged into the aggregate directory."""

    source: str
    installed_at: str
    last_updated: str
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "installedAt": self.installed_at,
            "lastUpdated": self.last_updated,
            "files": list(self.files),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KitRecord:
        installed_at = data.get("installedAt", "")
        return cls(
            source=data.get("source", ""),
            installed_at=installed_at,
            last_updated=data.get("lastUpdated", installed_at),
            files=list(data.get("files", [])),
        )


@dataclass
class Registry:
    """In-memory form of the registry file."""

    kits: dict[str, KitRecord] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)

    def ensure_kit(self, source: str, now: str) -> str:
        """Create the kit's record on first merge and stamp ``last_updated``.

        Returns the kit id.
        """
        kit_id = kit_id_for(source)
        record = self.kits.get(kit_id)
        if record is None:
            self.kits[kit_id] = KitRecord(source=source, installed_at=now, last_updated=now)
            logger.debug("New kit record %s for %s", kit_id, source)
        else:
            record.last_updated = now
        return kit_id

    def record_file(self, kit_id: str, rel_path: str, now: str) -> None:
        """Assign *rel_path* to *kit_id* (last writer wins)."""
        record = self.kits[kit_id]
        previous = self.files.get(rel_path)
        if previous is not None and previous != kit_id:
            logger.debug("%s: ownership moves from %s to %s", rel_path, previous, kit_id)
        self.files[rel_path] = kit_id
        if rel_path not in record.files:
            record.files.append(rel_path)
        record.last_updated = now

    def owner_of(self, rel_path: str) -> str | None:
        return self.files.get(rel_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kits": {kit_id: record.to_dict() for kit_id, record in self.kits.items()},
            "files": dict(self.files),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Registry:
        kits = {
            kit_id: KitRecord.from_dict(entry)
            for kit_id, entry in (data.get("kits") or {}).items()
        }
        files: dict[str, str] = {}
        for rel_path, owner in (data.get("files") or {}).items():
            # Older registries stored {"kit": ..., "updatedAt": ...} per file.
            if isinstance(owner, dict):
                owner = owner.get("kit")
            if isinstance(owner, str):
                files[rel_path] = owner
        return cls(kits=kits, files=files)


def registry_path(global_dir: Path) -> Path:
    return Path(global_dir) / REGISTRY_FILE


def _check_shape(path: Path, data: Any) -> None:
    """Raise ``RegistryIOError`` unless *data* has the registry's layout."""
    if not isinstance(data, dict):
        raise RegistryIOError(path, "top level is not an object")
    kits = data.get("kits")
    files = data.get("files")
    if kits is None:
        kits = {}
    if not isinstance(kits, dict):
        raise RegistryIOError(path, "malformed 'kits' (expected an object)")
    if files is not None and not isinstance(files, dict):
        raise RegistryIOError(path, "malformed 'files' (expected an object)")
    for kit_id, entry in kits.items():
        if not isinstance(entry, dict):
            raise RegistryIOError(path, f"malformed kit entry '{kit_id}' (expected an object)")
        if not isinstance(entry.get("files", []), list):
            raise RegistryIOError(path, f"malformed kit entry '{kit_id}' ('files' is not a list)")


def load_registry(global_dir: Path) -> Registry:
    """Load the registry for *global_dir*.

    A missing file is an empty registry. An unreadable or malformed file
    raises ``RegistryIOError``.
    """
    path = registry_path(global_dir)
    if not path.exists():
        return Registry()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise RegistryIOError(path, f"invalid JSON ({exc})") from exc
    except OSError as exc:
        raise RegistryIOError(path, f"could not read ({exc})") from exc

    _check_shape(path, data)
    return Registry.from_dict(data)


def _target_mode(path: Path) -> int:
    """Mode the registry file should end up with after a save.

    An existing file keeps its mode; a new one gets what a plain ``open()``
    would give it under the current umask.
    """
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def save_registry(global_dir: Path, registry: Registry) -> None:
    """Persist *registry* atomically (temp file in the same directory + rename)."""
    path = registry_path(global_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f"{REGISTRY_FILE}.",
            suffix=".tmp",
        )
    except OSError as exc:
        raise RegistryIOError(path, f"could not write ({exc})") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(registry.to_dict(), f, indent=2)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except OSError as exc:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise RegistryIOError(path, f"could not write ({exc})") from exc
    logger.debug("Saved registry with %d kit(s) to %s", len(registry.kits), path)
