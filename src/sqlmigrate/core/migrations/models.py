"""Value types shared by sources, the planner and the executor."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

_LEADING_DIGITS = re.compile(r"^[0-9]+")


class Direction(str, Enum):
    """Which way a plan runs."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Migration:
    """One named schema change with its up and down statements.

    ``id`` is unique within a source, usually the file name. Migrations
    order by ``id`` as plain strings, never by version.

    Example:
        >>> m = Migration("0012_add_users.sql", up=("CREATE TABLE users (id INT)",))
        >>> m.version
        12
    """

    id: str
    up: tuple[str, ...] = ()
    down: tuple[str, ...] = ()
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False

    def __post_init__(self) -> None:
        # accept lists from callers, store tuples
        object.__setattr__(self, "up", tuple(self.up))
        object.__setattr__(self, "down", tuple(self.down))

    def __lt__(self, other: Migration) -> bool:
        if not isinstance(other, Migration):
            return NotImplemented
        return self.id < other.id

    @property
    def version(self) -> int | None:
        """Leading ASCII digits of ``id`` as an int, ``None`` without any."""
        match = _LEADING_DIGITS.match(self.id)
        if match is None:
            return None
        return int(match.group(0))

    def statements(self, direction: Direction) -> tuple[str, ...]:
        return self.up if direction is Direction.UP else self.down

    def transaction_disabled(self, direction: Direction) -> bool:
        if direction is Direction.UP:
            return self.disable_transaction_up
        return self.disable_transaction_down


def sort_migrations(migrations: Iterable[Migration]) -> list[Migration]:
    """Return a new list ordered by id ascending."""
    return sorted(migrations, key=lambda m: m.id)


@dataclass(frozen=True)
class ApplicationRecord:
    """Row of the bookkeeping table: migration ``id`` applied at ``applied_at`` (UTC)."""

    id: str
    applied_at: datetime


@dataclass(frozen=True)
class PlannedStep:
    """One step of a plan.

    ``direction`` is the direction this step runs in; catch-up steps are
    always ``UP`` even inside a ``DOWN`` plan.
    """

    migration: Migration
    direction: Direction
    statements: tuple[str, ...]
    disable_transaction: bool
    catch_up: bool = False

    @property
    def id(self) -> str:
        return self.migration.id

    @classmethod
    def for_migration(
        cls, migration: Migration, direction: Direction, *, catch_up: bool = False
    ) -> PlannedStep:
        return cls(
            migration=migration,
            direction=direction,
            statements=migration.statements(direction),
            disable_transaction=migration.transaction_disabled(direction),
            catch_up=catch_up,
        )


@dataclass(frozen=True)
class MigrationStatus:
    """Status row for one migration id.

    ``unknown`` marks a stored id with no matching migration.
    """

    id: str
    applied_at: datetime | None = None
    unknown: bool = False

    @property
    def applied(self) -> bool:
        return self.applied_at is not None


__all__ = [
    "Direction",
    "Migration",
    "sort_migrations",
    "ApplicationRecord",
    "PlannedStep",
    "MigrationStatus",
]
