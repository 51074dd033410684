"""
Fault injection for deterministic database failures.

``FaultyConnection`` wraps a real DB-API connection and raises a driver
error when a chosen operation runs, so executor error paths can be tested
against real SQLite without mocks.

With ``implicit_begin=True`` it also behaves like psycopg2 or PyMySQL: a
transaction is opened before the first statement unless ``autocommit`` is
set.

Usage in test code::

    from tests._support.fault_injection import FaultyConnection

    conn = FaultyConnection(sqlite3.connect(":memory:"))
    conn.install_fault("execute", match="INSERT INTO", message="disk full")
    conn.install_fault("commit", message="commit refused")
    conn.install_fault("execute", match="INSERT", error=KeyboardInterrupt)
    # ... run the executor ...
    conn.clear_faults()
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any


class FaultInjectedError(sqlite3.OperationalError):
    """Raised in place of the real driver call."""


@dataclass
class FaultSpec:
    """A fault to inject into one kind of operation."""

    operation: str          # "execute", "commit" or "rollback"
    match: str = ""         # substring of the SQL for "execute"
    message: str = "Injected test fault"
    skip: int = 0           # matching calls to let through first
    error: type[BaseException] = FaultInjectedError

    def fires(self, operation: str, sql: str = "") -> bool:
        if operation != self.operation or self.match not in sql:
            return False
        if self.skip > 0:
            self.skip -= 1
            return False
        return True


class FaultyCursor:
    def __init__(self, cursor: Any, owner: FaultyConnection) -> None:
        self._cursor = cursor
        self._owner = owner

    def execute(self, sql: str, *params: Any) -> Any:
        self._owner.executed.append(sql)
        self._owner._check("execute", sql)
        self._owner._begin_implicitly(sql)
        return self._cursor.execute(sql, *params)

    def fetchall(self) -> list[Any]:
        return self._cursor.fetchall()

    def close(self) -> None:
        self._cursor.close()


class FaultyConnection:
    """DB-API connection wrapper that fails on installed faults."""

    def __init__(self, conn: sqlite3.Connection, *, implicit_begin: bool = False) -> None:
        self._conn = conn
        self._faults: list[FaultSpec] = []
        self.implicit_begin = implicit_begin
        self.autocommit = False
        self.executed: list[str] = []

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    def install_fault(
        self,
        operation: str,
        *,
        match: str = "",
        message: str = "Injected test fault",
        skip: int = 0,
        error: type[BaseException] = FaultInjectedError,
    ) -> None:
        self._faults.append(FaultSpec(operation, match=match, message=message, skip=skip, error=error))

    def clear_faults(self) -> None:
        self._faults.clear()

    def _check(self, operation: str, sql: str = "") -> None:
        for spec in self._faults:
            if spec.fires(operation, sql):
                raise spec.error(spec.message)

    def _begin_implicitly(self, sql: str) -> None:
        if not self.implicit_begin or self.autocommit or self._conn.in_transaction:
            return
        if sql.lstrip().upper().startswith("BEGIN"):
            return
        self._conn.execute("BEGIN")

    def cursor(self) -> FaultyCursor:
        return FaultyCursor(self._conn.cursor(), self)

    def commit(self) -> None:
        self._check("commit")
        self._conn.commit()

    def rollback(self) -> None:
        self._check("rollback")
        self._conn.rollback()

    def execute(self, sql: str, *params: Any) -> Any:
        """Direct access for assertions; never faulted."""
        return self._conn.execute(sql, *params)

    def close(self) -> None:
        self._conn.close()
