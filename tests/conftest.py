from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

import pytest

from agjz_cli.errors import FetchError


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> text) below *root*."""
    root.mkdir(parents=True, exist_ok=True)
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


class FixtureFetcher:
    """Template fetcher double that materializes in-memory kit trees."""

    def __init__(self) -> None:
        self.trees: dict[str, dict[str, str]] = {}
        self.failures: dict[str, str] = {}
        self.fetched: list[str] = []
        self.staging_preexisted: list[bool] = []

    def add(self, source: str, files: dict[str, str]) -> FixtureFetcher:
        self.trees[source] = files
        return self

    def fail(self, source: str, reason: str = "network unreachable") -> FixtureFetcher:
        self.failures[source] = reason
        return self

    def fetch(self, source: str, destination: Path) -> None:
        self.fetched.append(source)
        self.staging_preexisted.append(destination.exists())
        if source in self.failures:
            # A failed download may leave partial content behind.
            write_tree(destination, {"partial.tmp": "x"})
            raise FetchError(source, self.failures[source])
        if destination.exists():
            shutil.rmtree(destination)
        write_tree(destination, self.trees.get(source, {}))

    def __enter__(self) -> FixtureFetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        pass


@pytest.fixture()
def global_dir(tmp_path: Path) -> Path:
    """Aggregate directory inside the test's temp dir (not created)."""
    return tmp_path / "home" / ".gemini" / "antigravity" / ".agent"


@pytest.fixture()
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture()
def make_tree(tmp_path: Path) -> Callable[[str, dict[str, str]], Path]:
    """Return a factory creating a file tree under ``tmp_path/<name>``."""

    def factory(name: str, files: dict[str, str]) -> Path:
        return write_tree(tmp_path / name, files)

    return factory


@pytest.fixture()
def fetcher() -> FixtureFetcher:
    return FixtureFetcher()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real home directory and config."""
    monkeypatch.delenv("AG_JZ_HOME", raising=False)
    monkeypatch.setenv("AG_JZ_CONFIG", str(tmp_path / "no-config.yaml"))
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
