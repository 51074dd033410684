"""SQL dialect templates for the bookkeeping table.

Provides a ``Dialect`` protocol and one implementation per supported engine.
A dialect is pure: every method takes a schema and table name and returns
the SQL text for one bookkeeping operation, already quoted and with the
engine driver's bind-variable style. Only the repository calls these, so
the planner and executor never see engine-specific SQL.

Manifesto:
    The engine must run unchanged against SQLite, PostgreSQL, MySQL,
    SQL Server, Oracle and Snowflake. Everything that differs between
    them (quoting, bind style, "if not exists" idioms, timestamp types)
    lives here and nowhere else.

    - **Pure templates:** No connection, no state, trivially testable
    - **Explicit registry:** Callers build a ``DialectRegistry``; there is
      no module-level mutable map
    - **Driver bind style:** ``?`` / ``%s`` / ``:1`` per DB-API driver

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                  MigrationRepository                             │
    │   sql = dialect.insert_record(schema, table)                     │
    │   cursor.execute(sql, (id, dialect.bind_timestamp(now)))         │
    └──────────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌────────┐ ┌──────────┐ ┌────────┐ ┌────────┐ ┌────────┐ ┌──────────┐
    │ SQLite │ │ Postgres │ │ MySQL  │ │ MSSQL  │ │ Oracle │ │Snowflake │
    │ ?, ?   │ │ %s, %s   │ │ %s, %s │ │ ?, ?   │ │ :1, :2 │ │ %s, %s   │
    │ "t"    │ │ s."t"    │ │ `s`.`t`│ │ [s].[t]│ │ s."T"  │ │ s."t"    │
    └────────┘ └──────────┘ └────────┘ └────────┘ └────────┘ └──────────┘

Examples:
    >>> from sqlmigrate.core.dialect import DialectRegistry
    >>> d = DialectRegistry.default().get("sqlite")
    >>> d.insert_record("", "migrations")
    'INSERT INTO "migrations" ("id", "applied_at") VALUES (?, ?);'

Guardrails:
    ❌ DON'T: Build bookkeeping SQL outside this module
    ✅ DO: Add a method to ``Dialect`` and implement it for every engine

Tags:
    dialect, sql, portability, database, sqlmigrate, multi-backend

Doc-Types:
    - API Reference
    - Database Portability Guide
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from sqlmigrate.core.errors import UnknownDialectError


@runtime_checkable
class Dialect(Protocol):
    """Bookkeeping SQL contract.

    The bookkeeping table has exactly two columns: ``id`` (text, primary
    key) and ``applied_at`` (timestamp, not null). An empty ``schema``
    means "no schema qualifier".
    """

    @property
    def name(self) -> str:
        """Canonical dialect name (e.g. ``'postgres'``)."""
        ...

    def quoted_table(self, schema: str, table: str) -> str:
        """Schema-qualified, quoted table name for use in SQL."""
        ...

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:
        """Create-schema-if-absent statement.

        Returns ``""`` for engines without a separate schema concept; the
        repository skips empty statements.
        """
        ...

    def create_table(self, schema: str, table: str) -> str:
        """Create-table-if-absent statement for the bookkeeping table."""
        ...

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        """Insert one record; binds ``(id, applied_at)``."""
        ...

    def delete_record(self, schema: str, table: str) -> str:
        """Delete one record; binds ``(id,)``."""
        ...

    def select_records(self, schema: str, table: str) -> str:
        """Select ``id, applied_at`` ordered by id ascending."""
        ...

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        """Statement that opens an explicit transaction, or ``""``.

        Only needed for drivers that do not open one implicitly before DDL
        (Python's ``sqlite3``).
        """
        ...

    def bind_timestamp(self, value: datetime) -> Any:
        """Convert a UTC ``datetime`` into the driver's bind value."""
        ...


def _strip(schema: str) -> str:
    return (schema or "").strip()


# =========================================================================
# Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite: ``?`` binds, no schemas, timestamps stored as ISO text."""

    @property
    def name(self) -> str:
        return "sqlite"

    def quoted_table(self, schema: str, table: str) -> str:  # noqa: ARG002
        return f'"{table}"'

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:  # noqa: ARG002
        return ""

    def create_table(self, schema: str, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quoted_table(schema, table)} "
            '("id" TEXT NOT NULL PRIMARY KEY, "applied_at" DATETIME NOT NULL);'
        )

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        return f'INSERT INTO {self.quoted_table(schema, table)} ("id", "applied_at") VALUES (?, ?);'

    def delete_record(self, schema: str, table: str) -> str:
        return f'DELETE FROM {self.quoted_table(schema, table)} WHERE "id" = ?;'

    def select_records(self, schema: str, table: str) -> str:
        return f'SELECT "id", "applied_at" FROM {self.quoted_table(schema, table)} ORDER BY "id" ASC;'

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        return "BEGIN"

    def bind_timestamp(self, value: datetime) -> Any:
        return value.astimezone(timezone.utc).isoformat(sep=" ")


class PostgresDialect:
    """PostgreSQL: ``%s`` binds (psycopg2), ``CREATE ... IF NOT EXISTS``."""

    timestamp_type = "TIMESTAMP WITH TIME ZONE"

    @property
    def name(self) -> str:
        return "postgres"

    def quoted_table(self, schema: str, table: str) -> str:
        schema = _strip(schema)
        if not schema:
            return f'"{table}"'
        return f'{schema}."{table}"'

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:
        return f"CREATE SCHEMA IF NOT EXISTS {_strip(schema)};"

    def create_table(self, schema: str, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quoted_table(schema, table)} "
            f'("id" TEXT NOT NULL PRIMARY KEY, "applied_at" {self.timestamp_type} NOT NULL);'
        )

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        return f'INSERT INTO {self.quoted_table(schema, table)} ("id", "applied_at") VALUES (%s, %s);'

    def delete_record(self, schema: str, table: str) -> str:
        return f'DELETE FROM {self.quoted_table(schema, table)} WHERE "id" = %s;'

    def select_records(self, schema: str, table: str) -> str:
        return f'SELECT "id", "applied_at" FROM {self.quoted_table(schema, table)} ORDER BY "id" ASC;'

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        return ""

    def bind_timestamp(self, value: datetime) -> Any:
        return value


class SnowflakeDialect(PostgresDialect):
    """Snowflake: PostgreSQL-style templates with ``TIMESTAMP_TZ``."""

    timestamp_type = "TIMESTAMP_TZ"

    @property
    def name(self) -> str:
        return "snowflake"

    def create_table(self, schema: str, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quoted_table(schema, table)} "
            f'("id" VARCHAR NOT NULL PRIMARY KEY, "applied_at" {self.timestamp_type} NOT NULL);'
        )


class MySQLDialect:
    """MySQL / MariaDB: backtick quoting, ``%s`` binds, configurable engine.

    Parameters:
        engine: Storage engine for the bookkeeping table.
        encoding: Default charset for the bookkeeping table.
    """

    def __init__(self, engine: str = "InnoDB", encoding: str = "UTF8") -> None:
        self.engine = engine
        self.encoding = encoding

    @property
    def name(self) -> str:
        return "mysql"

    def quoted_table(self, schema: str, table: str) -> str:
        schema = _strip(schema)
        if not schema:
            return f"`{table}`"
        return f"`{schema}`.`{table}`"

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:
        return f"CREATE SCHEMA IF NOT EXISTS `{_strip(schema)}`;"

    def create_table(self, schema: str, table: str) -> str:
        suffix = ""
        if self.engine:
            suffix += f" ENGINE={self.engine}"
        if self.encoding:
            suffix += f" CHARSET={self.encoding}"
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quoted_table(schema, table)} "
            f"(`id` VARCHAR(255) NOT NULL PRIMARY KEY, `applied_at` DATETIME NOT NULL){suffix};"
        )

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        return f"INSERT INTO {self.quoted_table(schema, table)} (`id`, `applied_at`) VALUES (%s, %s);"

    def delete_record(self, schema: str, table: str) -> str:
        return f"DELETE FROM {self.quoted_table(schema, table)} WHERE `id` = %s;"

    def select_records(self, schema: str, table: str) -> str:
        return f"SELECT `id`, `applied_at` FROM {self.quoted_table(schema, table)} ORDER BY `id` ASC;"

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        return ""

    def bind_timestamp(self, value: datetime) -> Any:
        # DATETIME has no zone; store naive UTC
        return value.astimezone(timezone.utc).replace(tzinfo=None)


class MSSQLDialect:
    """SQL Server: bracket quoting, ``?`` binds (pyodbc), ``DATETIME2``."""

    @property
    def name(self) -> str:
        return "mssql"

    @staticmethod
    def _quote(identifier: str) -> str:
        return "[" + identifier.replace("]", "]]") + "]"

    def quoted_table(self, schema: str, table: str) -> str:
        schema = _strip(schema)
        if not schema:
            return self._quote(table)
        return f"{self._quote(schema)}.{self._quote(table)}"

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:
        schema = _strip(schema)
        literal = schema.replace("'", "''")
        return f"IF SCHEMA_ID(N'{literal}') IS NULL EXEC('CREATE SCHEMA {self._quote(literal)}');"

    def create_table(self, schema: str, table: str) -> str:
        qualified = self.quoted_table(schema, table)
        literal = qualified.replace("'", "''")
        return (
            f"IF OBJECT_ID(N'{literal}', N'U') IS NULL "
            f"CREATE TABLE {qualified} "
            "([id] NVARCHAR(255) NOT NULL PRIMARY KEY, [applied_at] DATETIME2 NOT NULL);"
        )

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        return f"INSERT INTO {self.quoted_table(schema, table)} ([id], [applied_at]) VALUES (?, ?);"

    def delete_record(self, schema: str, table: str) -> str:
        return f"DELETE FROM {self.quoted_table(schema, table)} WHERE [id] = ?;"

    def select_records(self, schema: str, table: str) -> str:
        return f"SELECT [id], [applied_at] FROM {self.quoted_table(schema, table)} ORDER BY [id] ASC;"

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        return ""

    def bind_timestamp(self, value: datetime) -> Any:
        return value.astimezone(timezone.utc).replace(tzinfo=None)


class OracleDialect:
    """Oracle: upper-cased quoted identifiers, ``:1`` binds (oracledb).

    Oracle drivers reject a trailing ``;`` on plain SQL, so these templates
    carry none. Schemas are users in Oracle and are never created here.
    """

    @property
    def name(self) -> str:
        return "oracle"

    @staticmethod
    def _quote(identifier: str) -> str:
        return f'"{identifier.upper()}"'

    def quoted_table(self, schema: str, table: str) -> str:
        schema = _strip(schema)
        if not schema:
            return self._quote(table)
        return f"{schema}.{self._quote(table)}"

    # -- DDL ---------------------------------------------------------------

    def create_schema(self, schema: str) -> str:  # noqa: ARG002
        return ""

    def create_table(self, schema: str, table: str) -> str:
        ddl = (
            f"CREATE TABLE {self.quoted_table(schema, table)} "
            '("ID" VARCHAR2(255) NOT NULL PRIMARY KEY, '
            '"APPLIED_AT" TIMESTAMP WITH TIME ZONE NOT NULL)'
        ).replace("'", "''")
        # ORA-00955: name is already used by an existing object
        return (
            "BEGIN\n"
            f"  EXECUTE IMMEDIATE '{ddl}';\n"
            "EXCEPTION\n"
            "  WHEN OTHERS THEN\n"
            "    IF SQLCODE != -955 THEN RAISE; END IF;\n"
            "END;"
        )

    # -- DML ---------------------------------------------------------------

    def insert_record(self, schema: str, table: str) -> str:
        return f'INSERT INTO {self.quoted_table(schema, table)} ("ID", "APPLIED_AT") VALUES (:1, :2)'

    def delete_record(self, schema: str, table: str) -> str:
        return f'DELETE FROM {self.quoted_table(schema, table)} WHERE "ID" = :1'

    def select_records(self, schema: str, table: str) -> str:
        return f'SELECT "ID", "APPLIED_AT" FROM {self.quoted_table(schema, table)} ORDER BY "ID" ASC'

    # -- Driver hooks ------------------------------------------------------

    def begin_transaction(self) -> str:
        return ""

    def bind_timestamp(self, value: datetime) -> Any:
        return value


# =========================================================================
# Registry
# =========================================================================


class DialectRegistry:
    """Explicit name → dialect lookup table.

    Built by the caller and passed where needed; two registries never
    share state.

    Example:
        >>> registry = DialectRegistry.default()
        >>> registry.get("postgresql").name
        'postgres'
        >>> registry.register("cockroach", PostgresDialect())
        >>> "cockroach" in registry
        True
    """

    def __init__(self) -> None:
        self._dialects: dict[str, Dialect] = {}

    @classmethod
    def default(cls) -> DialectRegistry:
        """Fresh registry with every built-in dialect and its aliases."""
        registry = cls()
        sqlite = SQLiteDialect()
        postgres = PostgresDialect()
        mysql = MySQLDialect()
        mssql = MSSQLDialect()
        oracle = OracleDialect()
        registry.register("sqlite", sqlite)
        registry.register("sqlite3", sqlite)
        registry.register("postgres", postgres)
        registry.register("postgresql", postgres)
        registry.register("mysql", mysql)
        registry.register("mariadb", mysql)
        registry.register("mssql", mssql)
        registry.register("sqlserver", mssql)
        registry.register("oracle", oracle)
        registry.register("oci8", oracle)
        registry.register("godror", oracle)
        registry.register("snowflake", SnowflakeDialect())
        return registry

    def register(self, name: str, dialect: Dialect) -> None:
        """Register ``dialect`` under ``name`` (lower-cased)."""
        self._dialects[name.strip().lower()] = dialect

    def get(self, name: str) -> Dialect:
        """Look up a dialect by name.

        Raises:
            UnknownDialectError: If ``name`` is not registered.
        """
        key = (name or "").strip().lower()
        if key not in self._dialects:
            raise UnknownDialectError(name, self.names())
        return self._dialects[key]

    def names(self) -> list[str]:
        """All registered names, aliases included, sorted."""
        return sorted(self._dialects)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._dialects


__all__ = [
    # Protocol
    "Dialect",
    # Implementations
    "SQLiteDialect",
    "PostgresDialect",
    "SnowflakeDialect",
    "MySQLDialect",
    "MSSQLDialect",
    "OracleDialect",
    # Registry
    "DialectRegistry",
]
