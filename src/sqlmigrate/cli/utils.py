"""
CLI utility helpers: shared options, executor wiring and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from sqlmigrate.core.connection import create_connection
from sqlmigrate.core.errors import ConfigError, MigrateError
from sqlmigrate.core.logging import configure_logging
from sqlmigrate.core.migrations.executor import MigrationExecutor
from sqlmigrate.core.migrations.models import MigrationStatus, PlannedStep
from sqlmigrate.core.migrations.source import DirectorySource
from sqlmigrate.core.settings import MigrateSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Shared options ───────────────────────────────────────────────────────


@dataclass
class CommonOptions:
    """Connection and table options every command accepts."""

    database: str | None = None
    migrations_dir: Path | None = None
    dialect: str | None = None
    table: str | None = None
    schema: str | None = None
    ignore_unknown: bool = False

    def settings(self) -> MigrateSettings:
        return get_settings(
            database=self.database,
            migrations_dir=self.migrations_dir,
            dialect=self.dialect,
            table_name=self.table,
            schema_name=self.schema,
            ignore_unknown=True if self.ignore_unknown else None,
        )


DATABASE_OPT = typer.Option(None, "--database", "-d", help="Database URL or SQLite path")
DIR_OPT = typer.Option(None, "--dir", help="Directory of *.sql migrations")
DIALECT_OPT = typer.Option(None, "--dialect", help="Dialect (inferred from the URL if unset)")
TABLE_OPT = typer.Option(None, "--table", help="Bookkeeping table name")
SCHEMA_OPT = typer.Option(None, "--schema", help="Schema holding the bookkeeping table")
IGNORE_UNKNOWN_OPT = typer.Option(
    False, "--ignore-unknown", help="Ignore applied migrations with no matching file"
)
JSON_OPT = typer.Option(False, "--json", help="JSON output")
DRY_RUN_OPT = typer.Option(False, "--dry-run", help="Show the plan without applying it")


# ── Executor wiring ──────────────────────────────────────────────────────


@contextmanager
def open_executor(options: CommonOptions) -> Iterator[MigrationExecutor]:
    """Configure logging, connect, and yield an executor; always closes the connection."""
    settings = options.settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    conn, info = create_connection(settings.database)
    try:
        dialect = settings.dialect or info.dialect_name
        if not dialect:
            raise ConfigError(f"Cannot infer a dialect for backend {info.backend!r}; pass --dialect")
        source = DirectorySource(settings.migrations_dir)
        yield MigrationExecutor.from_settings(conn, source, settings, dialect=dialect)
    finally:
        conn.close()


def fail(err: MigrateError) -> None:
    """Print a migration error to stderr and exit 1."""
    err_console.print(f"[bold red]Error[/bold red] ({err.category.value}): {err.message}")
    if err.applied:
        err_console.print(f"Applied {_plural(err.applied)} before the failure.")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _plural(count: int) -> str:
    return f"{count} migration" if count == 1 else f"{count} migrations"


def print_applied(count: int, *, verb: str = "Applied", as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps({verb.lower(): count}))
        return
    console.print(f"{verb} {_plural(count)}.")


def print_plan(steps: list[PlannedStep], *, as_json: bool = False) -> None:
    """Render a plan without executing it."""
    if as_json:
        payload = [
            {
                "id": s.id,
                "direction": s.direction.value,
                "catch_up": s.catch_up,
                "disable_transaction": s.disable_transaction,
                "statements": list(s.statements),
            }
            for s in steps
        ]
        console.print_json(json.dumps(payload))
        return

    if not steps:
        console.print("[dim]Nothing to do.[/dim]")
        return
    for step in steps:
        suffix = " (catch-up)" if step.catch_up else ""
        console.print(f"[bold]==> Would apply {step.id} ({step.direction.value}){suffix}[/bold]")
        for statement in step.statements:
            console.print(statement.rstrip("\n"), markup=False, highlight=False)


def print_status(rows: list[MigrationStatus], *, as_json: bool = False) -> None:
    if as_json:
        payload = [_status_dict(r) for r in rows]
        console.print_json(json.dumps(payload, default=str))
        return

    if not rows:
        console.print("[dim]No migrations.[/dim]")
        return

    table = Table(title="Migrations", show_lines=False, pad_edge=False)
    table.add_column("Migration", overflow="fold")
    table.add_column("Applied")
    for row in rows:
        if row.unknown:
            applied = f"[yellow]{row.applied_at} (unknown)[/yellow]"
        elif row.applied_at is not None:
            applied = str(row.applied_at)
        else:
            applied = "[red]no[/red]"
        table.add_row(row.id, applied)
    console.print(table)


def _status_dict(row: MigrationStatus) -> dict[str, Any]:
    return {
        "id": row.id,
        "applied": row.applied,
        "applied_at": row.applied_at.isoformat() if row.applied_at else None,
        "unknown": row.unknown,
    }
