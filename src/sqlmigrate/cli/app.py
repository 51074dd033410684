"""
Root Typer application for the sqlmigrate CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from sqlmigrate.cli import commands

app = Typer(
    name="sqlmigrate",
    help="sqlmigrate: apply and roll back SQL migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from sqlmigrate import __version__

        typer.echo(f"sqlmigrate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Plan, apply, undo and inspect SQL migrations."""


# ── Command registration ─────────────────────────────────────────────────

app.command()(commands.up)
app.command()(commands.down)
app.command()(commands.redo)
app.command()(commands.skip)
app.command()(commands.status)
app.command()(commands.new)
