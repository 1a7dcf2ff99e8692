"""Reusable UI helpers for ag-jz CLI output."""

from __future__ import annotations

from rich.console import Console
from rich.tree import Tree

from agjz_cli.kits.sync import KitState

DIVIDER = "[bright_black]" + "─" * 40 + "[/bright_black]"

_SYMBOLS = {
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "done": "[green]●[/green]",
    "error": "[red]●[/red]",
}


class StepTracker:
    """Track and render per-kit steps with Rich trees."""

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}
        self._refresh_cb = None  # callable to trigger UI refresh

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, status="error", detail=detail)

    def _update(self, key: str, status: str, detail: str):
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                self._maybe_refresh()
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def fail_running(self, detail: str = "failed"):
        """Mark every running step as errored (batch aborted mid-kit)."""
        for s in self.steps:
            if s["status"] == "running":
                self.error(s["key"], detail)

    def status_of(self, key: str) -> str | None:
        for s in self.steps:
            if s["key"] == key:
                return s["status"]
        return None

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            symbol = _SYMBOLS[step["status"]]
            label = step["label"]
            detail = step["detail"].strip()
            if step["status"] == "pending":
                tree.add(f"{symbol} [bright_black]{label}[/bright_black]")
            elif detail:
                tree.add(f"{symbol} [white]{label}[/white] [bright_black]({detail})[/bright_black]")
            else:
                tree.add(f"{symbol} [white]{label}[/white]")
        return tree


_STATE_DETAIL = {
    KitState.FETCHING: "downloading",
    KitState.RESOLVING: "locating payload",
    KitState.MERGING: "merging",
}


def track_kit_states(tracker: StepTracker):
    """Return an ``on_state`` callback that mirrors kit states into *tracker*."""

    def on_state(source: str, state: KitState) -> None:
        if state is KitState.PENDING:
            tracker.add(source, source)
        elif state in _STATE_DETAIL:
            tracker.start(source, _STATE_DETAIL[state])
        elif state is KitState.CLEANED:
            tracker.complete(source, "synced")
        elif state is KitState.FAILED:
            tracker.error(source, "failed")

    return on_state


def print_rule(console: Console) -> None:
    console.print(DIVIDER)


BANNER = """
    ╔══════════════════════════════════════╗
    ║        AG-JZ CLI                     ║
    ║   Multi-Kit Antigravity Manager      ║
    ╚══════════════════════════════════════╝
"""


def show_banner(console: Console) -> None:
    """Display the ASCII banner."""
    console.print(BANNER, style="bright_blue", highlight=False)
