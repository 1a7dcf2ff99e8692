"""``ag-jz status`` -- show installed kits and global directory info."""

from __future__ import annotations

import json
from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from agjz_cli.cli.ui import print_rule
from agjz_cli.config import load_config
from agjz_cli.errors import AgjzError
from agjz_cli.kits.status import collect_status

console = Console()


def _format_timestamp(value: str) -> str:
    """Render an ISO 8601 timestamp in local time, or return it unchanged."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def status(
    json_output: bool = typer.Option(False, "--json", help="Emit JSON result"),
) -> None:
    """Show installed kits and global directory info."""
    try:
        report = collect_status(load_config().global_dir)
    except AgjzError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return

    console.print("\n[bright_blue]AG-JZ Status[/bright_blue]\n")

    if not report.initialized:
        console.print("[red][X] Global directory not initialized[/red]")
        console.print("[yellow]Run [cyan]ag-jz sync --all[/cyan] to get started.[/yellow]\n")
        return

    console.print("[green][OK] Global directory initialized[/green]")
    print_rule(console)
    console.print(f"Path:  [cyan]{report.global_dir}[/cyan]")
    console.print(f"Kits:  [yellow]{len(report.kits)}[/yellow] installed")
    print_rule(console)

    if not report.kits:
        return

    table = Table(title="Installed Kits", show_lines=False)
    table.add_column("#", style="bright_black", justify="right")
    table.add_column("Source", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Updated", style="bright_black")
    for i, kit in enumerate(report.kits, start=1):
        table.add_row(str(i), kit.source, str(kit.file_count), _format_timestamp(kit.last_updated))
    console.print(table)
