"""
Structural protocols for database access and migration discovery.

Everything in sqlmigrate talks to the database through the DB-API 2.0
shape below, so ``sqlite3``, ``psycopg2``, ``pymysql``, ``pyodbc``,
``oracledb`` and SQLAlchemy raw connections all work without adapters.

Architecture:
    ::

        protocols.py
        ├── Cursor            : execute / fetchall / close
        ├── Connection        : cursor / commit / rollback
        └── MigrationSource   : find_migrations()

    Consumers:
        repository.py (Connection, Cursor), migrations/executor.py
        (MigrationSource), migrations/source.py (implementations)

Guardrails:
    ❌ DON'T: Call ``conn.execute`` directly (psycopg2 has no such method)
    ✅ DO: Go through ``conn.cursor()`` like the DB-API specifies

Tags:
    protocol, connection, dbapi, database, sqlmigrate, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlmigrate.core.migrations.models import Migration


@runtime_checkable
class Cursor(Protocol):
    """DB-API 2.0 cursor subset."""

    def execute(self, sql: str, params: Sequence[Any] = ...) -> Any:
        ...

    def fetchall(self) -> list[Any]:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Connection(Protocol):
    """
    DB-API 2.0 connection subset used by the repository.

    ::

        ┌────────────────────────────────────────────────────────┐
        │ cursor()    → Cursor for one statement                 │
        │ commit()    → Commit the current transaction           │
        │ rollback()  → Roll back the current transaction        │
        └────────────────────────────────────────────────────────┘
    """

    def cursor(self) -> Any:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@runtime_checkable
class MigrationSource(Protocol):
    """Something that can list the available migrations.

    Implementations return a fresh list sorted by id on every call and must
    not mutate shared state, so repeated or concurrent calls are safe.
    """

    def find_migrations(self) -> list[Migration]:
        ...


__all__ = ["Cursor", "Connection", "MigrationSource"]
