"""
Test support utilities for sqlmigrate tests.

Helpers that don't fit as pytest fixtures but are used across several
test files: migration builders, table inspection and fault injection.
"""

from __future__ import annotations

import sqlite3
import sys
from pathlib import Path

from sqlmigrate.core.migrations.models import Migration


def make_migration(migration_id: str, table: str | None = None, **kwargs) -> Migration:
    """Migration creating (up) and dropping (down) one table."""
    table = table or "t_" + migration_id.split(".")[0].replace("-", "_")
    kwargs.setdefault("up", (f"CREATE TABLE {table} (id INTEGER);",))
    kwargs.setdefault("down", (f"DROP TABLE {table};",))
    return Migration(migration_id, **kwargs)


def table_ids(conn: sqlite3.Connection, table: str = "migrations") -> list[str]:
    """Ids stored in a bookkeeping table, ordered."""
    return [row[0] for row in conn.execute(f'SELECT id FROM "{table}" ORDER BY id')]


def table_names(conn: sqlite3.Connection) -> set[str]:
    """Names of all tables in a SQLite database."""
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def write_package(root: Path, name: str, files: dict[str, str]) -> Path:
    """Create an importable package ``name`` under ``root`` holding ``files``.

    Keys may contain ``/`` to place files in sub-directories. The caller is
    responsible for putting ``root`` on ``sys.path``.
    """
    package = root / name
    package.mkdir(parents=True)
    (package / "__init__.py").write_text("", encoding="utf-8")
    for relative, text in files.items():
        target = package / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    sys.modules.pop(name, None)
    return package
