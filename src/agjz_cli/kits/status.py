"""Installed-kit summary read from the registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agjz_cli.kits.registry import load_registry


@dataclass(frozen=True)
class KitSummary:
    kit_id: str
    source: str
    file_count: int
    installed_at: str
    last_updated: str


@dataclass
class StatusReport:
    global_dir: Path
    initialized: bool
    kits: list[KitSummary] = field(default_factory=list)
    tracked_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "global_dir": str(self.global_dir),
            "initialized": self.initialized,
            "tracked_files": self.tracked_files,
            "kits": [
                {
                    "id": kit.kit_id,
                    "source": kit.source,
                    "files": kit.file_count,
                    "installedAt": kit.installed_at,
                    "lastUpdated": kit.last_updated,
                }
                for kit in self.kits
            ],
        }


def collect_status(global_dir: Path) -> StatusReport:
    """Summarize the kits merged into *global_dir*.

    The registry is not read when the aggregate directory does not exist.

    Raises:
        RegistryIOError: The registry exists but cannot be read.
    """
    global_dir = Path(global_dir)
    if not global_dir.exists():
        return StatusReport(global_dir=global_dir, initialized=False)

    registry = load_registry(global_dir)
    kits = [
        KitSummary(
            kit_id=kit_id,
            source=record.source,
            file_count=len(record.files),
            installed_at=record.installed_at,
            last_updated=record.last_updated,
        )
        for kit_id, record in registry.kits.items()
    ]
    return StatusReport(
        global_dir=global_dir,
        initialized=True,
        kits=kits,
        tracked_files=len(registry.files),
    )
