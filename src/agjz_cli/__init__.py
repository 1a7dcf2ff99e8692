"""
ag-jz CLI - unify multiple Antigravity kits into one global directory.

Usage:
    ag-jz sync github:user/repo
    ag-jz sync --all
    ag-jz link
    ag-jz status
"""

import logging
import sys

import typer
from rich.console import Console

from agjz_cli.cli.commands import register_commands
from agjz_cli.cli.ui import show_banner

__version__ = "1.0.0"

console = Console()

app = typer.Typer(
    name="ag-jz",
    help="CLI tool to unify multiple Antigravity kits into a global directory",
    add_completion=False,
    invoke_without_command=True,
)


def _version_callback(value: bool):
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Display version number",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logging on stderr"),
):
    """Show help when no subcommand is provided."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
    if ctx.invoked_subcommand is None:
        show_banner(console)
        typer.echo(ctx.get_help())


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
