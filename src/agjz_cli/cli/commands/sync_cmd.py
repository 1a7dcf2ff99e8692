"""``ag-jz sync`` -- download kits and merge them into the global directory.

Usage:
    ag-jz sync github:user/repo        # Sync one kit
    ag-jz sync --all                   # Sync the configured default kits
    ag-jz sync --all --dry-run         # Show what would be synced
    ag-jz sync --all --quiet           # CI-friendly, errors only
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.live import Live

from agjz_cli.cli.ui import StepTracker, print_rule, show_banner, track_kit_states
from agjz_cli.config import load_config
from agjz_cli.errors import AgjzError
from agjz_cli.kits.fetch import ArchiveFetcher
from agjz_cli.kits.sync import SyncReport, plan_sync, sync_kits

console = Console()


def create_fetcher() -> ArchiveFetcher:
    """Return the fetcher used to download kits."""
    return ArchiveFetcher()


def _print_dry_run(sources: list[str], global_dir) -> None:
    plan = plan_sync(sources, global_dir)
    console.print("\n[bright_blue][Dry Run] No changes will be made[/bright_blue]\n")
    console.print("Would sync the following repositories:")
    print_rule(console)
    for i, source in enumerate(plan.sources, start=1):
        console.print(f"  {i}. [cyan]{source}[/cyan]")
    print_rule(console)
    console.print(f"  Target: [cyan]{plan.global_dir}[/cyan]\n")


def _print_result(report: SyncReport) -> None:
    console.print()
    print_rule(console)
    console.print("Result:")
    console.print(f"   Global: [cyan]{report.global_dir}[/cyan]")
    console.print(f"   Kits:   [yellow]{report.synced_count}[/yellow] synced")
    for outcome in report.synced:
        if outcome.report is not None and outcome.report.skipped_count:
            console.print(
                f"   [yellow]{outcome.report.skipped_count} file(s) skipped[/yellow] from {outcome.source}"
            )
    for outcome in report.failed:
        console.print(f"   [red]Failed:[/red] {outcome.source} ({outcome.error})")
    print_rule(console)


def sync(
    source: Optional[str] = typer.Argument(None, help="Kit source, e.g. github:user/repo[/subdir][#ref]"),
    all_kits: bool = typer.Option(False, "--all", "-a", help="Sync all default kits"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output (for CI/CD)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without executing"),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Continue with the next kit when one fails"
    ),
) -> None:
    """Download and merge kit(s) into the global directory."""
    if not quiet:
        show_banner(console)

    try:
        config = load_config()
    except AgjzError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if not all_kits and not source:
        console.print("[red]Error: Please specify a repository or use --all flag[/red]")
        console.print("[yellow]Example: [cyan]ag-jz sync github:user/repo[/cyan][/yellow]")
        raise typer.Exit(1)

    sources = list(config.default_kits) if all_kits else [source]

    if dry_run:
        _print_dry_run(sources, config.global_dir)
        return

    tracker = StepTracker("Sync kits")
    try:
        with create_fetcher() as fetcher:
            if quiet:
                report = sync_kits(
                    sources,
                    global_dir=config.global_dir,
                    fetcher=fetcher,
                    staging_dir=config.staging_dir,
                    continue_on_error=keep_going,
                )
            else:
                with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
                    tracker.attach_refresh(lambda: live.update(tracker.render()))
                    report = sync_kits(
                        sources,
                        global_dir=config.global_dir,
                        fetcher=fetcher,
                        staging_dir=config.staging_dir,
                        continue_on_error=keep_going,
                        on_state=track_kit_states(tracker),
                    )
    except AgjzError as exc:
        if not quiet:
            tracker.attach_refresh(None)
            tracker.fail_running()
            console.print(tracker.render())
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if not quiet:
        console.print(tracker.render())
        if report.synced_count:
            console.print(f"[green]Successfully synced {report.synced_count} kit(s)![/green]")
        _print_result(report)

    if report.failed:
        if quiet:
            for outcome in report.failed:
                console.print(f"[red]Error:[/red] {outcome.error}")
        raise typer.Exit(1)

    if not quiet:
        console.print("[green]\nSync complete!\n[/green]")
