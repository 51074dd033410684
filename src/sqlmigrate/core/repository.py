"""Bookkeeping-table repository and explicit transactions.

:class:`MigrationRepository` pairs a DB-API
:class:`~sqlmigrate.core.protocols.Connection` with a
:class:`~sqlmigrate.core.dialect.Dialect`. It is the only component that
talks to the database: the executor runs migration statements through it
too, so every round trip is traced in one place.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                     MigrationRepository                            │
    │                                                                    │
    │   conn: Connection         ← DB-API connection                     │
    │   dialect: Dialect         ← bookkeeping SQL templates             │
    │                                                                    │
    │   ensure_schema() / ensure_table()                                 │
    │   begin()                  → Transaction(exec, query, commit, ...) │
    │   save_record / delete_record / list_records   (tx optional)       │
    │   exec(sql, *args, tx=None) / query(sql, *args, tx=None)           │
    └────────────────────────────────────────────────────────────────────┘

Without ``tx`` each statement runs on the base connection and is committed
on its own. With ``tx`` it joins that transaction and nothing is committed
until :meth:`Transaction.commit`.
A transaction left open on the connection, for example by a failed
rollback, is refused with :class:`~sqlmigrate.core.errors.TransactionError`
rather than committed along with the next statement.

Usage:
    >>> import sqlite3
    >>> from sqlmigrate.core.dialect import SQLiteDialect
    >>> repo = MigrationRepository(sqlite3.connect(":memory:"), SQLiteDialect())
    >>> repo.ensure_table()
    >>> repo.list_records()
    []

Tags:
    repository, database, bookkeeping, transactions, sqlmigrate
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlmigrate.core.dialect import Dialect
from sqlmigrate.core.errors import TransactionError
from sqlmigrate.core.logging import get_logger
from sqlmigrate.core.migrations.models import ApplicationRecord
from sqlmigrate.core.protocols import Connection
from sqlmigrate.core.settings import DEFAULT_TABLE_NAME

logger = get_logger(__name__)


def args_string(args: Sequence[Any]) -> str:
    """Render bind arguments for trace logs: ``[1:'abc' 2:5]``."""
    return "[" + " ".join(f"{i}:{arg!r}" for i, arg in enumerate(args, start=1)) + "]"


def _to_utc(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"Unsupported applied_at value: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Transaction:
    """An open transaction on the repository's connection.

    Obtained from :meth:`MigrationRepository.begin`. Once committed or
    rolled back it is no longer ``active`` and further calls fail.

    Also usable as a context manager: leaving the block with an exception
    rolls back, leaving it normally commits.
    """

    def __init__(self, repository: MigrationRepository) -> None:
        self._repository = repository
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def _check_active(self) -> None:
        if not self._active:
            raise RuntimeError("Transaction is no longer active")

    def exec(self, sql: str, *args: Any) -> None:
        self._check_active()
        self._repository._run(sql, args, fetch=False, in_tx=True)

    def query(self, sql: str, *args: Any) -> list[tuple]:
        self._check_active()
        return self._repository._run(sql, args, fetch=True, in_tx=True)

    def commit(self) -> None:
        """Commit. If the driver refuses, the transaction stays active for rollback."""
        self._check_active()
        self._repository.conn.commit()
        self._active = False

    def rollback(self) -> None:
        self._check_active()
        self._active = False
        self._repository.conn.rollback()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if not self._active:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


class MigrationRepository:
    """Dialect-driven access to the bookkeeping table.

    Parameters:
        conn: DB-API connection (``sqlite3``, ``psycopg2``, SQLAlchemy raw
            connection, ...).
        dialect: Templates for the target engine.
        schema_name: Schema qualifier; blank means none.
        table_name: Bookkeeping table; blank means ``migrations``.
    """

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect,
        *,
        schema_name: str = "",
        table_name: str = DEFAULT_TABLE_NAME,
    ) -> None:
        self.conn = conn
        self.dialect = dialect
        self.schema_name = (schema_name or "").strip()
        self.table_name = (table_name or "").strip() or DEFAULT_TABLE_NAME

    @property
    def qualified_table(self) -> str:
        return self.dialect.quoted_table(self.schema_name, self.table_name)

    # -- Setup -------------------------------------------------------------

    def ensure_schema(self) -> None:
        """Create the schema if missing. No-op without a schema name."""
        if not self.schema_name:
            return
        sql = self.dialect.create_schema(self.schema_name)
        if sql:
            self.exec(sql)
            logger.debug("repository.schema_ensured", schema=self.schema_name)

    def ensure_table(self) -> None:
        """Create the bookkeeping table if missing."""
        sql = self.dialect.create_table(self.schema_name, self.table_name)
        if sql:
            self.exec(sql)
            logger.debug("repository.table_ensured", table=self.qualified_table)

    # -- Transactions ------------------------------------------------------

    def begin(self) -> Transaction:
        """Open an explicit transaction.

        Drivers that open transactions implicitly need nothing here; for
        those that don't, the dialect's begin statement is issued.

        Raises:
            TransactionError: The connection already reports an open
                transaction, for example one a failed rollback left behind.
        """
        self._refuse_open_transaction()
        sql = self.dialect.begin_transaction()
        if sql:
            cursor = self.conn.cursor()
            try:
                cursor.execute(sql)
            finally:
                cursor.close()
        return Transaction(self)

    @contextmanager
    def autocommit(self) -> Iterator[None]:
        """Run the block with driver autocommit on, where the driver has it.

        psycopg2, PyMySQL, oracledb and pyodbc open a transaction before the
        first statement unless ``autocommit`` is set, and statements such as
        ``CREATE INDEX CONCURRENTLY`` or ``VACUUM`` refuse to run inside one.
        SQLAlchemy raw connections are unwrapped to the driver connection.
        """
        target = getattr(self.conn, "driver_connection", None) or self.conn
        if not hasattr(target, "autocommit"):
            yield
            return
        previous = target.autocommit
        target.autocommit = True
        try:
            yield
        finally:
            target.autocommit = previous

    # -- Records -----------------------------------------------------------

    def save_record(self, record: ApplicationRecord, tx: Transaction | None = None) -> None:
        sql = self.dialect.insert_record(self.schema_name, self.table_name)
        self.exec(sql, record.id, self.dialect.bind_timestamp(record.applied_at), tx=tx)

    def delete_record(self, migration_id: str, tx: Transaction | None = None) -> None:
        sql = self.dialect.delete_record(self.schema_name, self.table_name)
        self.exec(sql, migration_id, tx=tx)

    def list_records(self, tx: Transaction | None = None) -> list[ApplicationRecord]:
        """All records ordered by id ascending; ``[]`` for an empty table."""
        sql = self.dialect.select_records(self.schema_name, self.table_name)
        rows = self.query(sql, tx=tx)
        records = [ApplicationRecord(id=str(row[0]), applied_at=_to_utc(row[1])) for row in rows]
        records.sort(key=lambda r: r.id)
        return records

    # -- Raw access --------------------------------------------------------

    def exec(self, sql: str, *args: Any, tx: Transaction | None = None) -> None:
        """Run one statement. Driver errors propagate unchanged."""
        if tx is not None:
            tx.exec(sql, *args)
        else:
            self._run(sql, args, fetch=False, in_tx=False)

    def query(self, sql: str, *args: Any, tx: Transaction | None = None) -> list[tuple]:
        """Run one query and return all rows as tuples."""
        if tx is not None:
            return tx.query(sql, *args)
        return self._run(sql, args, fetch=True, in_tx=False)

    def _run(self, sql: str, args: Sequence[Any], *, fetch: bool, in_tx: bool) -> Any:
        if not in_tx:
            self._refuse_open_transaction()
        started = time.perf_counter()
        cursor = self.conn.cursor()
        try:
            # no params at all so format-style drivers leave % alone
            if args:
                cursor.execute(sql, tuple(args))
            else:
                cursor.execute(sql)
            rows = [tuple(row) for row in cursor.fetchall()] if fetch else None
        except Exception:
            if not in_tx:
                self._rollback_quietly()
            raise
        finally:
            cursor.close()
            logger.debug(
                "sql.exec",
                statement=sql,
                args=args_string(args),
                elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
                tx=in_tx,
            )
        if not in_tx:
            self.conn.commit()
        return rows

    def _refuse_open_transaction(self) -> None:
        if getattr(self.conn, "in_transaction", False):
            raise TransactionError(
                "Connection already has an open transaction", phase="begin"
            )

    def _rollback_quietly(self) -> None:
        try:
            self.conn.rollback()
        except Exception as exc:  # noqa: BLE001
            logger.warning("repository.rollback_failed", error=str(exc))


__all__ = ["MigrationRepository", "Transaction", "args_string"]
