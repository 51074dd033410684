"""
Migration executor: plan against the live database, then apply.

``MigrationExecutor`` is the entry point callers use. It discovers the
migration set from a source, reads history through the repository, asks
the planner for steps and runs them one at a time, each inside its own
transaction unless the migration opts out.

Manifesto:
    - **Fail fast:** The first failing step stops the run
    - **Atomic steps:** A step's statements and its bookkeeping row commit
      together or not at all
    - **Honest progress:** Errors report how many steps were committed

Architecture:
    ::

        MigrationExecutor.execute(direction, max_steps)
              │
              ├─► repository.ensure_schema / ensure_table
              ├─► source.find_migrations()  +  repository.list_records()
              ├─► planner.plan(...)
              └─► for step in plan:
                     tx = repository.begin()            (notransaction: autocommit)
                     tx.exec(statement)  ...            StatementError
                     save_record / delete_record        BookkeepingError
                     tx.commit()                        TransactionError(commit)
                     failure or KeyboardInterrupt       tx.rollback(), re-raise

Examples:
    >>> import sqlite3
    >>> from sqlmigrate import Direction, MemorySource, Migration, MigrationExecutor
    >>> source = MemorySource([Migration("001_people.sql", up=("CREATE TABLE people (id INT);",))])
    >>> executor = MigrationExecutor(sqlite3.connect(":memory:"), source)
    >>> executor.execute(Direction.UP)
    1

Tags:
    executor, migrations, transactions, sqlmigrate

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmigrate.core.dialect import Dialect, DialectRegistry
from sqlmigrate.core.errors import (
    BookkeepingError,
    ConfigError,
    MigrateError,
    StatementError,
    TransactionError,
)
from sqlmigrate.core.logging import LogContext, get_logger
from sqlmigrate.core.migrations.models import (
    ApplicationRecord,
    Direction,
    MigrationStatus,
    PlannedStep,
)
from sqlmigrate.core.migrations.planner import plan as compute_plan
from sqlmigrate.core.protocols import Connection, MigrationSource
from sqlmigrate.core.repository import MigrationRepository, Transaction
from sqlmigrate.core.settings import DEFAULT_TABLE_NAME, MigrateSettings

logger = get_logger(__name__)


def clean_statement(statement: str) -> str:
    """Strip one trailing newline, then one space, then one semicolon."""
    statement = statement.removesuffix("\n")
    statement = statement.removesuffix(" ")
    return statement.removesuffix(";")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MigrationExecutor:
    """Plans and applies migrations against one connection.

    Parameters
    ----------
    conn
        DB-API connection to migrate.
    source
        Where migrations come from (``DirectorySource``, ``MemorySource``...).
    dialect
        Dialect name looked up in ``registry``, or a ``Dialect`` instance.
    table_name, schema_name
        Location of the bookkeeping table.
    ignore_unknown
        Allow stored ids that no discovered migration has.
    create_table, create_schema
        Create the bookkeeping table / schema before planning.
    registry
        Dialect lookup table; ``DialectRegistry.default()`` when omitted.
    """

    def __init__(
        self,
        conn: Connection,
        source: MigrationSource,
        dialect: str | Dialect = "sqlite",
        *,
        table_name: str = DEFAULT_TABLE_NAME,
        schema_name: str = "",
        ignore_unknown: bool = False,
        create_table: bool = True,
        create_schema: bool = False,
        registry: DialectRegistry | None = None,
    ) -> None:
        if isinstance(dialect, str):
            dialect = (registry or DialectRegistry.default()).get(dialect)
        self.source = source
        self.ignore_unknown = ignore_unknown
        self.create_table = create_table
        self.create_schema = create_schema
        self.repository = MigrationRepository(
            conn,
            dialect,
            schema_name=schema_name,
            table_name=table_name,
        )

    @classmethod
    def from_settings(
        cls,
        conn: Connection,
        source: MigrationSource,
        settings: MigrateSettings,
        *,
        dialect: str | Dialect | None = None,
        registry: DialectRegistry | None = None,
    ) -> MigrationExecutor:
        """Build an executor from ``MigrateSettings``.

        ``dialect`` overrides ``settings.dialect``; one of them must be set.
        """
        chosen = dialect or settings.dialect
        if not chosen:
            raise ConfigError("No dialect configured")
        return cls(
            conn,
            source,
            chosen,
            table_name=settings.table_name,
            schema_name=settings.schema_name,
            ignore_unknown=settings.ignore_unknown,
            create_table=settings.create_table,
            create_schema=settings.create_schema,
            registry=registry,
        )

    @property
    def dialect(self) -> Dialect:
        return self.repository.dialect

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _prepare(self) -> None:
        try:
            if self.create_schema and self.repository.schema_name:
                self.repository.ensure_schema()
            if self.create_table:
                self.repository.ensure_table()
        except MigrateError:
            raise
        except Exception as exc:
            raise BookkeepingError(
                f"Cannot prepare {self.repository.qualified_table}: {exc}", cause=exc
            ) from exc

    def _list_records(self) -> list[ApplicationRecord]:
        try:
            return self.repository.list_records()
        except MigrateError:
            raise
        except Exception as exc:
            raise BookkeepingError(
                f"Cannot read {self.repository.qualified_table}: {exc}", cause=exc
            ) from exc

    def _plan(
        self,
        direction: Direction,
        *,
        max_steps: int = 0,
        target_version: int | None = None,
    ) -> list[PlannedStep]:
        direction = Direction(direction)
        if max_steps < 0:
            raise ConfigError(f"max_steps must be >= 0, got {max_steps}")
        if target_version is not None and target_version < 0:
            raise ConfigError(
                f"Target version must be >= 0, got {target_version}"
            ).with_context(version=target_version)

        self._prepare()
        migrations = self.source.find_migrations()
        records = self._list_records()

        steps = compute_plan(
            migrations,
            records,
            direction,
            max_steps=max_steps,
            target_version=target_version,
            ignore_unknown=self.ignore_unknown,
        )
        logger.info(
            "migration.plan",
            direction=direction.value,
            steps=len(steps),
            catch_up=sum(1 for s in steps if s.catch_up),
        )
        return steps

    def plan(self, direction: Direction, max_steps: int = 0) -> list[PlannedStep]:
        """Steps ``execute`` would run, without running them."""
        return self._plan(direction, max_steps=max_steps)

    def plan_to_version(self, direction: Direction, version: int) -> list[PlannedStep]:
        """Steps ``execute_to_version`` would run, without running them."""
        return self._plan(direction, target_version=version)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, direction: Direction, max_steps: int = 0) -> int:
        """Apply up to ``max_steps`` steps (0 = all). Returns the count applied."""
        steps = self._plan(direction, max_steps=max_steps)
        return self._run(steps, Direction(direction), bookkeeping_only=False)

    def execute_to_version(self, direction: Direction, version: int) -> int:
        """Apply steps up to and including ``version``. Returns the count applied."""
        steps = self._plan(direction, target_version=version)
        return self._run(steps, Direction(direction), bookkeeping_only=False)

    def skip(self, max_steps: int = 0, direction: Direction = Direction.UP) -> int:
        """Record the planned steps as applied (or removed) without running them."""
        steps = self._plan(direction, max_steps=max_steps)
        return self._run(steps, Direction(direction), bookkeeping_only=True)

    def _run(self, steps: list[PlannedStep], direction: Direction, *, bookkeeping_only: bool) -> int:
        applied = 0
        with LogContext(direction=direction.value, table=self.repository.qualified_table):
            for step in steps:
                try:
                    self._apply_step(step, bookkeeping_only=bookkeeping_only)
                except MigrateError as err:
                    err.applied = applied
                    logger.error(
                        "migration.failed",
                        migration_id=step.id,
                        step_direction=step.direction.value,
                        applied=applied,
                        error=err.message,
                    )
                    raise
                except BaseException:
                    # KeyboardInterrupt / SystemExit; the step is already rolled back
                    logger.error(
                        "migration.interrupted",
                        migration_id=step.id,
                        step_direction=step.direction.value,
                        applied=applied,
                    )
                    raise
                applied += 1
                logger.info(
                    "migration.skipped" if bookkeeping_only else "migration.applied",
                    migration_id=step.id,
                    step_direction=step.direction.value,
                    catch_up=step.catch_up,
                )
        return applied

    def _apply_step(self, step: PlannedStep, *, bookkeeping_only: bool) -> None:
        if step.disable_transaction:
            with self.repository.autocommit():
                self._run_step(step, None, bookkeeping_only=bookkeeping_only)
            return

        try:
            tx = self.repository.begin()
        except Exception as exc:
            raise TransactionError(
                f"Cannot begin transaction for {step.id}: {exc}",
                phase="begin",
                migration_id=step.id,
                cause=exc,
            ) from exc

        try:
            self._run_step(step, tx, bookkeeping_only=bookkeeping_only)
            try:
                tx.commit()
            except Exception as exc:
                raise TransactionError(
                    f"Cannot commit migration {step.id}: {exc}",
                    phase="commit",
                    migration_id=step.id,
                    cause=exc,
                ).with_context(direction=step.direction.value) from exc
        except BaseException:
            self._rollback(tx, step)
            raise

    def _run_step(self, step: PlannedStep, tx: Transaction | None, *, bookkeeping_only: bool) -> None:
        if not bookkeeping_only:
            for statement in step.statements:
                sql = clean_statement(statement)
                try:
                    self.repository.exec(sql, tx=tx)
                except Exception as exc:
                    raise StatementError(
                        f"Error executing migration {step.id}: {exc}",
                        migration_id=step.id,
                        statement=sql,
                        cause=exc,
                    ).with_context(direction=step.direction.value) from exc

        try:
            if step.direction is Direction.UP:
                self.repository.save_record(ApplicationRecord(step.id, utcnow()), tx=tx)
            else:
                self.repository.delete_record(step.id, tx=tx)
        except Exception as exc:
            raise BookkeepingError(
                f"Error recording migration {step.id}: {exc}",
                migration_id=step.id,
                cause=exc,
            ).with_context(direction=step.direction.value) from exc

    def _rollback(self, tx: Transaction, step: PlannedStep) -> None:
        if not tx.active:
            return
        try:
            tx.rollback()
        except Exception as exc:  # noqa: BLE001
            logger.error("migration.rollback_failed", migration_id=step.id, error=str(exc))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def list_applied(self) -> list[ApplicationRecord]:
        """Stored records ordered by id."""
        self._prepare()
        return self._list_records()

    def status(self) -> list[MigrationStatus]:
        """One row per discovered migration plus rows for unknown stored ids."""
        self._prepare()
        migrations = self.source.find_migrations()
        applied = {r.id: r.applied_at for r in self._list_records()}
        known = {m.id for m in migrations}

        rows = [MigrationStatus(m.id, applied_at=applied.get(m.id)) for m in migrations]
        rows.extend(
            MigrationStatus(migration_id, applied_at=at, unknown=True)
            for migration_id, at in applied.items()
            if migration_id not in known
        )
        rows.sort(key=lambda row: row.id)
        return rows

    def __repr__(self) -> str:
        return (
            f"MigrationExecutor(dialect={self.dialect.name!r}, "
            f"table={self.repository.qualified_table!r}, source={self.source!r})"
        )


__all__ = ["MigrationExecutor", "clean_statement", "utcnow"]
