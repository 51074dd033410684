"""
CLI: ``sqlmigrate up|down|redo|skip|status|new`` commands.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

import typer

from sqlmigrate.cli.utils import (
    DATABASE_OPT,
    DIALECT_OPT,
    DIR_OPT,
    DRY_RUN_OPT,
    IGNORE_UNKNOWN_OPT,
    JSON_OPT,
    SCHEMA_OPT,
    TABLE_OPT,
    CommonOptions,
    console,
    err_console,
    fail,
    open_executor,
    print_applied,
    print_plan,
    print_status,
)
from sqlmigrate.core.errors import MigrateError
from sqlmigrate.core.migrations.executor import MigrationExecutor
from sqlmigrate.core.migrations.models import Direction
from sqlmigrate.core.settings import get_settings

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")

MIGRATION_TEMPLATE = """\
-- +migrate Up

-- +migrate Down
"""


def _migrate(
    options: CommonOptions,
    direction: Direction,
    *,
    limit: int,
    version: int | None,
    dry_run: bool,
    json_out: bool,
) -> None:
    try:
        with open_executor(options) as executor:
            if dry_run:
                if version is not None:
                    steps = executor.plan_to_version(direction, version)
                else:
                    steps = executor.plan(direction, limit)
                print_plan(steps, as_json=json_out)
                return
            if version is not None:
                count = executor.execute_to_version(direction, version)
            else:
                count = executor.execute(direction, limit)
    except MigrateError as err:
        fail(err)
        return
    print_applied(count, as_json=json_out)


def up(
    limit: int = typer.Option(0, "--limit", help="Max migrations to apply (0 = all)"),
    version: int | None = typer.Option(None, "--version", help="Migrate up to this version"),
    dry_run: bool = DRY_RUN_OPT,
    database: str | None = DATABASE_OPT,
    migrations_dir: Path | None = DIR_OPT,
    dialect: str | None = DIALECT_OPT,
    table: str | None = TABLE_OPT,
    schema: str | None = SCHEMA_OPT,
    ignore_unknown: bool = IGNORE_UNKNOWN_OPT,
    json_out: bool = JSON_OPT,
) -> None:
    """Apply pending migrations."""
    options = CommonOptions(database, migrations_dir, dialect, table, schema, ignore_unknown)
    _migrate(options, Direction.UP, limit=limit, version=version, dry_run=dry_run, json_out=json_out)


def down(
    limit: int = typer.Option(1, "--limit", help="Max migrations to undo (0 = all)"),
    version: int | None = typer.Option(None, "--version", help="Migrate down to this version"),
    dry_run: bool = DRY_RUN_OPT,
    database: str | None = DATABASE_OPT,
    migrations_dir: Path | None = DIR_OPT,
    dialect: str | None = DIALECT_OPT,
    table: str | None = TABLE_OPT,
    schema: str | None = SCHEMA_OPT,
    ignore_unknown: bool = IGNORE_UNKNOWN_OPT,
    json_out: bool = JSON_OPT,
) -> None:
    """Undo applied migrations, most recent first."""
    options = CommonOptions(database, migrations_dir, dialect, table, schema, ignore_unknown)
    _migrate(options, Direction.DOWN, limit=limit, version=version, dry_run=dry_run, json_out=json_out)


def redo(
    dry_run: bool = DRY_RUN_OPT,
    database: str | None = DATABASE_OPT,
    migrations_dir: Path | None = DIR_OPT,
    dialect: str | None = DIALECT_OPT,
    table: str | None = TABLE_OPT,
    schema: str | None = SCHEMA_OPT,
    ignore_unknown: bool = IGNORE_UNKNOWN_OPT,
) -> None:
    """Undo the last applied migration and apply it again."""
    options = CommonOptions(database, migrations_dir, dialect, table, schema, ignore_unknown)
    try:
        with open_executor(options) as executor:
            steps = executor.plan(Direction.DOWN, 1)
            if not steps:
                console.print("[dim]Nothing to redo.[/dim]")
                return
            if dry_run:
                print_plan(steps)
                console.print(f"[bold]==> Would reapply {steps[-1].id} (up)[/bold]")
                return
            _redo(executor)
    except MigrateError as err:
        fail(err)
        return


def _redo(executor: MigrationExecutor) -> None:
    undone = executor.execute(Direction.DOWN, 1)
    applied = executor.execute(Direction.UP, 1)
    console.print(f"Reapplied migration ({undone} down, {applied} up).")


def skip(
    limit: int = typer.Option(0, "--limit", help="Max migrations to mark as applied (0 = all)"),
    database: str | None = DATABASE_OPT,
    migrations_dir: Path | None = DIR_OPT,
    dialect: str | None = DIALECT_OPT,
    table: str | None = TABLE_OPT,
    schema: str | None = SCHEMA_OPT,
    ignore_unknown: bool = IGNORE_UNKNOWN_OPT,
    json_out: bool = JSON_OPT,
) -> None:
    """Mark pending migrations as applied without running them."""
    options = CommonOptions(database, migrations_dir, dialect, table, schema, ignore_unknown)
    try:
        with open_executor(options) as executor:
            count = executor.skip(limit)
    except MigrateError as err:
        fail(err)
        return
    print_applied(count, verb="Skipped", as_json=json_out)


def status(
    database: str | None = DATABASE_OPT,
    migrations_dir: Path | None = DIR_OPT,
    dialect: str | None = DIALECT_OPT,
    table: str | None = TABLE_OPT,
    schema: str | None = SCHEMA_OPT,
    json_out: bool = JSON_OPT,
) -> None:
    """Show every migration and when it was applied."""
    options = CommonOptions(database, migrations_dir, dialect, table, schema)
    try:
        with open_executor(options) as executor:
            rows = executor.status()
    except MigrateError as err:
        fail(err)
        return
    print_status(rows, as_json=json_out)


def new(
    name: str = typer.Argument(..., help="Short name, e.g. add_users"),
    migrations_dir: Path | None = DIR_OPT,
) -> None:
    """Create a new, empty migration file."""
    if not _NAME_RE.match(name):
        err_console.print(f"[bold red]Error[/bold red]: invalid migration name {name!r}")
        raise typer.Exit(code=1)

    directory = migrations_dir or get_settings().migrations_dir
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    path = directory / f"{stamp}-{name}.sql"
    if path.exists():
        err_console.print(f"[bold red]Error[/bold red]: {path} already exists")
        raise typer.Exit(code=1)

    path.write_text(MIGRATION_TEMPLATE, encoding="utf-8")
    console.print(f"Created migration {path}")
