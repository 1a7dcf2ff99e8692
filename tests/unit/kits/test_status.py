"""Tests for agjz_cli.kits.status."""

from __future__ import annotations

from pathlib import Path

from agjz_cli.kits.merge import merge_payload
from agjz_cli.kits.resolver import resolve_payload
from agjz_cli.kits.status import collect_status


def test_uninitialized_when_global_dir_missing(global_dir: Path) -> None:
    report = collect_status(global_dir)

    assert report.initialized is False
    assert report.kits == []


def test_missing_registry_reads_as_empty(global_dir: Path) -> None:
    global_dir.mkdir(parents=True)

    report = collect_status(global_dir)

    assert report.initialized is True
    assert report.kits == []
    assert report.tracked_files == 0


def test_lists_merged_kits(make_tree, global_dir: Path) -> None:
    kit = make_tree("kit", {".agent/rules/a.md": "a", ".agent/rules/b.md": "b"})
    merge_payload(resolve_payload(kit), global_dir, "github:a/b", now="2025-03-01T12:00:00+00:00")

    report = collect_status(global_dir)

    assert len(report.kits) == 1
    kit_summary = report.kits[0]
    assert kit_summary.source == "github:a/b"
    assert kit_summary.file_count == 2
    assert kit_summary.last_updated == "2025-03-01T12:00:00+00:00"
    assert report.to_dict()["kits"][0]["files"] == 2
