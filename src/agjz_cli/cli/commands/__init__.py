"""CLI command modules for ag-jz."""

from __future__ import annotations

import typer

from .link_cmd import link
from .status_cmd import status
from .sync_cmd import sync


def register_commands(app: typer.Typer) -> None:
    """Attach all top-level commands to *app*."""
    app.command()(sync)
    app.command()(link)
    app.command()(status)


__all__ = ["link", "register_commands", "status", "sync"]
