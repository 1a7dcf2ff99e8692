"""``ag-jz link`` -- point a workspace's .agent at the global directory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from agjz_cli.cli.ui import print_rule, show_banner
from agjz_cli.config import load_config
from agjz_cli.errors import AgjzError, GlobalDirMissingError, LinkExistsError
from agjz_cli.kits.link import link_workspace

console = Console()


def link(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing .agent folder"),
    path: Optional[Path] = typer.Option(
        None, "--path", "-p", help="Path to the workspace directory (default: current directory)"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output (for CI/CD)"),
) -> None:
    """Create a symlink from the global .agent to the current workspace."""
    if not quiet:
        show_banner(console)

    workspace = path or Path.cwd()

    try:
        global_dir = load_config().global_dir
        try:
            link_path = link_workspace(global_dir, workspace, replace=force)
        except LinkExistsError as exc:
            if not quiet:
                console.print(f"[yellow]Warning: {exc}[/yellow]")
            if not typer.confirm("Do you want to replace it with a symlink?", default=False):
                if not quiet:
                    console.print("[bright_black]Operation cancelled.[/bright_black]")
                raise typer.Exit(0)
            link_path = link_workspace(global_dir, workspace, replace=True)
    except GlobalDirMissingError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        console.print("[yellow]Tip: Run [cyan]ag-jz sync --all[/cyan] first.[/yellow]")
        raise typer.Exit(1)
    except AgjzError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    except OSError as exc:
        console.print(f"[red]Error creating symlink: {exc}[/red]")
        raise typer.Exit(1)

    if not quiet:
        console.print("\n[green]✓ Symlink created successfully![/green]")
        print_rule(console)
        console.print(f"  {link_path}")
        console.print("  [bright_black]↓[/bright_black]")
        console.print(f"  [cyan]{global_dir}[/cyan]")
        print_rule(console)
        console.print()
