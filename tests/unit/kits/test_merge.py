"""Tests for agjz_cli.kits.merge -- merging payloads into the aggregate directory.

Covers idempotence, last-writer-wins overwrite, root-mode exclusions,
partial-failure tolerance and registry bootstrap.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

import agjz_cli.kits.merge as merge_module
from agjz_cli.errors import GlobalDirError
from agjz_cli.kits.merge import CopyStatus, merge_payload
from agjz_cli.kits.registry import REGISTRY_FILE, kit_id_for, load_registry
from agjz_cli.kits.resolver import resolve_payload

KIT_A = "github:alice/kit-a"
KIT_B = "github:bob/kit-b"


def _files_under(root: Path) -> dict[str, str]:
    return {
        p.relative_to(root).as_posix(): p.read_text()
        for p in sorted(root.rglob("*"))
        if p.is_file() and p.name != REGISTRY_FILE
    }


class TestMergeBasics:
    def test_copies_payload_and_creates_global_dir(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/workflows/plan.md": "plan", ".agent/skills/a/SKILL.md": "a"})

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert _files_under(global_dir) == {"workflows/plan.md": "plan", "skills/a/SKILL.md": "a"}
        assert sorted(report.copied) == ["skills/a/SKILL.md", "workflows/plan.md"]
        assert report.skipped_count == 0
        assert report.kit_id == kit_id_for(KIT_A)

    def test_registry_bootstrap(self, make_tree, global_dir: Path) -> None:
        """No registry before the merge; exactly one kit record after."""
        kit = make_tree("kit", {".agent/rules/r.md": "r"})

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        registry = load_registry(global_dir)
        assert list(registry.kits) == [kit_id_for(KIT_A)]
        record = registry.kits[kit_id_for(KIT_A)]
        assert record.source == KIT_A
        assert record.files == ["rules/r.md"]
        assert registry.files == {"rules/r.md": kit_id_for(KIT_A)}

    def test_payload_folder_mode_copies_readme(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/README.md": "kit readme", "README.md": "repo readme"})

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert (global_dir / "README.md").read_text() == "kit readme"

    def test_traversal_order_is_deterministic(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/b.md": "b", ".agent/a.md": "a", ".agent/c/d.md": "d"})

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert report.copied == ["a.md", "b.md", "c/d.md"]

    def test_registry_file_in_payload_is_not_copied(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/.sync-registry.json": "garbage", ".agent/rules/r.md": "r"})

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        data = json.loads((global_dir / REGISTRY_FILE).read_text())
        assert set(data["files"]) == {"rules/r.md"}

    def test_registry_saved_once(
        self, make_tree, global_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        kit = make_tree("kit", {".agent/a.md": "a", ".agent/b.md": "b", ".agent/c.md": "c"})
        calls = []
        real_save = merge_module.save_registry

        def counting_save(target, registry):
            calls.append(target)
            real_save(target, registry)

        monkeypatch.setattr(merge_module, "save_registry", counting_save)

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert calls == [global_dir]


class TestIdempotence:
    def test_merging_twice_matches_merging_once(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/workflows/plan.md": "plan", ".agent/skills/s.md": "s"})
        payload = resolve_payload(kit)

        merge_payload(payload, global_dir, KIT_A)
        once = _files_under(global_dir)
        merge_payload(payload, global_dir, KIT_A)

        assert _files_under(global_dir) == once
        registry = load_registry(global_dir)
        assert set(registry.files.values()) == {kit_id_for(KIT_A)}
        assert sorted(registry.kits[kit_id_for(KIT_A)].files) == ["skills/s.md", "workflows/plan.md"]

    def test_installed_at_never_changes(self, make_tree, global_dir: Path) -> None:
        kit = make_tree("kit", {".agent/a.md": "a"})
        payload = resolve_payload(kit)

        merge_payload(payload, global_dir, KIT_A, now="2025-01-01T00:00:00+00:00")
        merge_payload(payload, global_dir, KIT_A, now="2025-06-01T00:00:00+00:00")

        record = load_registry(global_dir).kits[kit_id_for(KIT_A)]
        assert record.installed_at == "2025-01-01T00:00:00+00:00"
        assert record.last_updated == "2025-06-01T00:00:00+00:00"


class TestOverwrite:
    def test_later_kit_wins(self, make_tree, global_dir: Path) -> None:
        kit_a = make_tree("a", {".agent/rules/shared.md": "from A", ".agent/rules/only-a.md": "A"})
        kit_b = make_tree("b", {".agent/rules/shared.md": "from B"})

        merge_payload(resolve_payload(kit_a), global_dir, KIT_A)
        merge_payload(resolve_payload(kit_b), global_dir, KIT_B)

        assert (global_dir / "rules" / "shared.md").read_text() == "from B"
        assert (global_dir / "rules" / "only-a.md").read_text() == "A"
        registry = load_registry(global_dir)
        assert registry.files["rules/shared.md"] == kit_id_for(KIT_B)
        assert registry.files["rules/only-a.md"] == kit_id_for(KIT_A)

    def test_unrelated_existing_files_untouched(self, make_tree, global_dir: Path) -> None:
        global_dir.mkdir(parents=True)
        (global_dir / "mine.md").write_text("user file")
        kit = make_tree("kit", {".agent/rules/r.md": "r"})

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert (global_dir / "mine.md").read_text() == "user file"
        assert "mine.md" not in load_registry(global_dir).files


class TestRootModeExclusion:
    def test_infrastructure_skipped_at_top_level_only(self, make_tree, global_dir: Path) -> None:
        kit = make_tree(
            "kit",
            {
                "skills/writing/SKILL.md": "skill",
                "skills/.git/HEAD": "nested git",
                "skills/README.md": "nested readme",
                ".git/HEAD": "ref: refs/heads/main",
                ".github/workflows/ci.yml": "ci",
                "node_modules/x/index.js": "js",
                "README.md": "readme",
                "LICENSE": "MIT",
                "package.json": "{}",
                "package-lock.json": "{}",
                ".gitignore": "*.pyc",
            },
        )

        merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert _files_under(global_dir) == {
            "skills/writing/SKILL.md": "skill",
            "skills/.git/HEAD": "nested git",
            "skills/README.md": "nested readme",
        }
        for name in (".git", ".github", "node_modules", "README.md", "LICENSE", ".gitignore"):
            assert not (global_dir / name).exists()


class TestPartialFailure:
    def test_one_failing_file_does_not_abort(
        self, make_tree, global_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        kit = make_tree(
            "kit",
            {".agent/rules/a.md": "a", ".agent/rules/locked.md": "locked", ".agent/rules/z.md": "z"},
        )
        real_copy2 = shutil.copy2

        def flaky_copy2(src, dst, *args, **kwargs):
            if Path(src).name == "locked.md":
                raise PermissionError(13, "Permission denied", str(dst))
            return real_copy2(src, dst, *args, **kwargs)

        monkeypatch.setattr(merge_module.shutil, "copy2", flaky_copy2)

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert _files_under(global_dir) == {"rules/a.md": "a", "rules/z.md": "z"}
        assert report.copied_count == 2
        assert report.skipped_count == 1
        skipped = report.skipped[0]
        assert skipped.rel_path == "rules/locked.md"
        assert skipped.status is CopyStatus.SKIPPED
        assert "Permission denied" in skipped.reason

        registry = load_registry(global_dir)
        assert "rules/locked.md" not in registry.files
        assert registry.kits[kit_id_for(KIT_A)].files == ["rules/a.md", "rules/z.md"]

    def test_skipped_file_keeps_prior_owner(
        self, make_tree, global_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        kit_a = make_tree("a", {".agent/rules/shared.md": "from A"})
        kit_b = make_tree("b", {".agent/rules/shared.md": "from B", ".agent/rules/b.md": "b"})
        merge_payload(resolve_payload(kit_a), global_dir, KIT_A)

        real_copy2 = shutil.copy2

        def flaky_copy2(src, dst, *args, **kwargs):
            if Path(src).name == "shared.md":
                raise OSError(16, "Device or resource busy")
            return real_copy2(src, dst, *args, **kwargs)

        monkeypatch.setattr(merge_module.shutil, "copy2", flaky_copy2)
        merge_payload(resolve_payload(kit_b), global_dir, KIT_B)

        assert (global_dir / "rules" / "shared.md").read_text() == "from A"
        registry = load_registry(global_dir)
        assert registry.files["rules/shared.md"] == kit_id_for(KIT_A)
        assert registry.files["rules/b.md"] == kit_id_for(KIT_B)

    def test_file_blocking_directory_skips_subtree(self, make_tree, global_dir: Path) -> None:
        global_dir.mkdir(parents=True)
        (global_dir / "skills").write_text("a file where a folder should be")
        kit = make_tree("kit", {".agent/skills/s.md": "s", ".agent/rules/r.md": "r"})

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert report.copied == ["rules/r.md"]
        assert [r.rel_path for r in report.skipped] == ["skills"]
        assert (global_dir / "skills").read_text() == "a file where a folder should be"

    def test_directory_at_file_path_is_skipped_not_copied_into(
        self, make_tree, global_dir: Path
    ) -> None:
        (global_dir / "rules" / "x.md").mkdir(parents=True)
        kit = make_tree("kit", {".agent/rules/x.md": "x", ".agent/rules/y.md": "y"})

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert report.copied == ["rules/y.md"]
        assert [r.rel_path for r in report.skipped] == ["rules/x.md"]
        assert list((global_dir / "rules" / "x.md").iterdir()) == []
        assert "rules/x.md" not in load_registry(global_dir).files

    def test_uncreatable_global_dir_raises(self, make_tree, tmp_path: Path) -> None:
        blocked = tmp_path / "blocked"
        blocked.write_text("not a directory")
        kit = make_tree("kit", {".agent/rules/a.md": "a"})

        with pytest.raises(GlobalDirError, match="Could not create global directory"):
            merge_payload(resolve_payload(kit), blocked, KIT_A)

        assert blocked.read_text() == "not a directory"

    def test_kit_record_created_even_when_everything_is_skipped(
        self, make_tree, global_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        kit = make_tree("kit", {".agent/a.md": "a"})

        def failing_copy2(src, dst, *args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr(merge_module.shutil, "copy2", failing_copy2)

        report = merge_payload(resolve_payload(kit), global_dir, KIT_A)

        assert report.copied_count == 0
        record = load_registry(global_dir).kits[kit_id_for(KIT_A)]
        assert record.files == []


class TestStaleness:
    def test_removed_upstream_file_stays_registered(self, make_tree, global_dir: Path) -> None:
        v1 = make_tree("v1", {".agent/rules/old.md": "old", ".agent/rules/keep.md": "keep"})
        v2 = make_tree("v2", {".agent/rules/keep.md": "keep v2"})

        merge_payload(resolve_payload(v1), global_dir, KIT_A)
        merge_payload(resolve_payload(v2), global_dir, KIT_A)

        registry = load_registry(global_dir)
        assert registry.kits[kit_id_for(KIT_A)].files == ["rules/keep.md", "rules/old.md"]
        assert registry.files["rules/old.md"] == kit_id_for(KIT_A)
