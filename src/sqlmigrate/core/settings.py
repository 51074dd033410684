"""Environment-driven settings for sqlmigrate.

``MigrateSettings`` gathers everything a run needs (database URL, dialect,
migrations directory, bookkeeping table) from ``SQLMIGRATE_*`` environment
variables and an optional ``.env`` file. The CLI overlays its command-line
options on top through :func:`get_settings`.

Examples:
    >>> from sqlmigrate.core.settings import get_settings
    >>> s = get_settings(database="sqlite:///app.db", table_name="")
    >>> s.table_name
    'migrations'

Tags:
    settings, configuration, pydantic, environment, sqlmigrate
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TABLE_NAME = "migrations"


class MigrateSettings(BaseSettings):
    """Settings for a migration run.

    Fields
    ──────
    database        : Database URL or SQLite path (``None`` = in-memory)
    dialect         : Dialect name; inferred from the URL when unset
    migrations_dir  : Directory holding ``*.sql`` migration files
    table_name      : Bookkeeping table name (blank means ``migrations``)
    schema_name     : Schema holding the bookkeeping table (blank = none)
    create_schema   : Create the schema before planning
    create_table    : Create the bookkeeping table before planning
    ignore_unknown  : Tolerate stored ids with no matching migration
    log_level       : structlog level
    json_logs       : Force JSON (True) or console (False) log output
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLMIGRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    database: str | None = None
    dialect: str | None = None

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Field(
        default=Path("migrations"),
        description="Directory containing *.sql migration files",
    )
    table_name: str = DEFAULT_TABLE_NAME
    schema_name: str = ""
    create_schema: bool = False
    create_table: bool = True
    ignore_unknown: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("table_name", mode="before")
    @classmethod
    def _default_blank_table(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TABLE_NAME
        return value

    @field_validator("schema_name", mode="before")
    @classmethod
    def _strip_schema(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("dialect", mode="before")
    @classmethod
    def _lower_dialect(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value


def get_settings(**overrides: Any) -> MigrateSettings:
    """Build settings from the environment with explicit overrides.

    Overrides whose value is ``None`` are dropped so that unset CLI options
    fall through to the environment.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    return MigrateSettings(**values)


__all__ = ["DEFAULT_TABLE_NAME", "MigrateSettings", "get_settings"]
