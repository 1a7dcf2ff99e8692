"""Merge a resolved kit payload into the aggregate directory.

Every payload file is copied over whatever is at the same relative path
(last writer wins) and recorded in the registry. Copy failures are
per-file: the file is reported as skipped, its registry entry is left
alone, and the walk continues. The registry is saved once per merge.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from agjz_cli.errors import FileCopyError, GlobalDirError
from agjz_cli.kits.registry import Registry, load_registry, save_registry, utc_now
from agjz_cli.kits.resolver import PayloadTree

logger = logging.getLogger(__name__)


class CopyStatus(Enum):
    """Outcome of merging a single payload entry."""

    COPIED = "copied"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FileResult:
    rel_path: str
    status: CopyStatus
    reason: str | None = None


@dataclass
class MergeReport:
    """Per-kit summary of a merge (also what the CLI reports)."""

    kit_id: str
    source: str
    payload: PayloadTree
    results: list[FileResult] = field(default_factory=list)

    @property
    def copied(self) -> list[str]:
        return [r.rel_path for r in self.results if r.status is CopyStatus.COPIED]

    @property
    def skipped(self) -> list[FileResult]:
        return [r for r in self.results if r.status is CopyStatus.SKIPPED]

    @property
    def copied_count(self) -> int:
        return len(self.copied)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def _copy_file(src: Path, dest: Path, rel_path: str) -> None:
    # copy2 would write *into* an existing directory at dest.
    if dest.is_dir():
        raise FileCopyError(rel_path, IsADirectoryError(f"destination is a directory: {dest}"))
    try:
        shutil.copy2(src, dest)
    except OSError as exc:
        raise FileCopyError(rel_path, exc) from exc


def _join(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def _merge_dir(
    src_dir: Path,
    dest_dir: Path,
    rel_dir: str,
    depth: int,
    payload: PayloadTree,
    registry: Registry,
    report: MergeReport,
    now: str,
) -> None:
    try:
        entries = sorted(src_dir.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", src_dir, exc)
        report.results.append(FileResult(rel_dir or ".", CopyStatus.SKIPPED, str(exc)))
        return

    for entry in entries:
        if payload.is_excluded(entry.name, depth):
            logger.debug("Excluded top-level entry %s", entry.name)
            continue

        rel_path = _join(rel_dir, entry.name)
        dest = dest_dir / entry.name

        if entry.is_symlink() and entry.is_dir():
            report.results.append(
                FileResult(rel_path, CopyStatus.SKIPPED, "symlinked directory not followed")
            )
            continue

        if entry.is_dir():
            try:
                dest.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.debug("Cannot create %s: %s", dest, exc)
                report.results.append(FileResult(rel_path, CopyStatus.SKIPPED, str(exc)))
                continue
            _merge_dir(entry, dest, rel_path, depth + 1, payload, registry, report, now)
            continue

        try:
            _copy_file(entry, dest, rel_path)
        except FileCopyError as exc:
            logger.debug("Skipped %s", exc)
            report.results.append(FileResult(rel_path, CopyStatus.SKIPPED, str(exc.cause)))
            continue

        registry.record_file(report.kit_id, rel_path, now)
        report.results.append(FileResult(rel_path, CopyStatus.COPIED))


def merge_payload(
    payload: PayloadTree,
    global_dir: Path,
    source: str,
    *,
    now: str | None = None,
) -> MergeReport:
    """Copy *payload* into *global_dir* and record provenance for *source*.

    Args:
        payload: Resolved payload of a fetched kit.
        global_dir: Aggregate directory (created if missing).
        source: Kit source string; its kit id keys the registry entry.
        now: Timestamp to stamp registry entries with (defaults to UTC now).

    Returns:
        MergeReport listing copied and skipped entries.

    Raises:
        GlobalDirError: *global_dir* could not be created.
        RegistryIOError: The registry could not be loaded or saved.
    """
    global_dir = Path(global_dir)
    try:
        global_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise GlobalDirError(global_dir, exc) from exc
    now = now or utc_now()

    registry = load_registry(global_dir)
    kit_id = registry.ensure_kit(source, now)

    report = MergeReport(kit_id=kit_id, source=source, payload=payload)
    _merge_dir(payload.path, global_dir, "", 0, payload, registry, report, now)

    save_registry(global_dir, registry)
    logger.info(
        "Merged %s: %d copied, %d skipped",
        source,
        report.copied_count,
        report.skipped_count,
    )
    return report
