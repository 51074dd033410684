"""
Plan computation: which migrations run, in what order, in which direction.

Pure function of (migration set, stored history, request). Nothing here
touches a database, so every ordering rule is unit-testable with plain
values.

Algorithm:
    ::

        records ──sort──► drift check ──► last = max(applied id)
                                              │
             ┌────────────────────────────────┴──────────────────┐
             ▼                                                   ▼
        catch-up: not applied, id < last            primary candidates
        (always UP, ascending)                      UP:   ids after last
                                                    DOWN: ids <= last, descending
                                                         │
                                                         ▼
                                                    bound by target version
                                                    or max_steps
             │                                           │
             └──────────────► plan = catch-up + bounded primary

Examples:
    >>> from sqlmigrate.core.migrations.models import Direction, Migration
    >>> ms = [Migration("001"), Migration("002"), Migration("003")]
    >>> [s.id for s in plan(ms, [], Direction.UP, max_steps=2)]
    ['001', '002']

Guardrails:
    ❌ DON'T: Order migrations by version number
    ✅ DO: Order by id as plain strings; versions only bound a plan

Tags:
    planner, migrations, catch-up, ordering, sqlmigrate
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence

from sqlmigrate.core.errors import (
    ConfigError,
    DriftError,
    UnknownVersionError,
    VersionSchemeError,
)
from sqlmigrate.core.migrations.models import (
    ApplicationRecord,
    Direction,
    Migration,
    PlannedStep,
    sort_migrations,
)


def _check_drift(migrations: Sequence[Migration], applied_ids: Sequence[str]) -> None:
    known = {m.id for m in migrations}
    for applied_id in applied_ids:
        if applied_id not in known:
            raise DriftError(applied_id)


def _catch_up(
    migrations: Sequence[Migration], applied_ids: Sequence[str], last: str
) -> list[Migration]:
    applied = set(applied_ids)
    return [m for m in migrations if m.id not in applied and m.id < last]


def candidates(
    migrations: Sequence[Migration], last: str | None, direction: Direction
) -> list[Migration]:
    """Primary candidates relative to the last applied id.

    When ``last`` is not a discovered id (possible with ``ignore_unknown``),
    the cursor sits after the greatest discovered id that sorts at or
    before it. It is not parked at the end of the list: with stored
    ``001, 002b`` over ``001..003``, UP still yields ``003`` and DOWN
    yields ``002, 001``.
    """
    if last is None:
        index = -1
    else:
        index = bisect_right([m.id for m in migrations], last) - 1

    if direction is Direction.UP:
        return list(migrations[index + 1:])
    if index == -1:
        return []
    return list(reversed(migrations[: index + 1]))


def _bound_to_version(
    pending: Sequence[Migration], direction: Direction, version: int
) -> list[Migration]:
    for position, migration in enumerate(pending):
        current = migration.version
        if current is None:
            raise VersionSchemeError(migration.id, version)
        if direction is Direction.UP and current > version:
            raise UnknownVersionError(version, direction.value)
        if direction is Direction.DOWN and current < version:
            raise UnknownVersionError(version, direction.value)
        if current == version:
            return list(pending[: position + 1])
    raise UnknownVersionError(version, direction.value)


def plan(
    migrations: Sequence[Migration],
    records: Sequence[ApplicationRecord],
    direction: Direction,
    *,
    max_steps: int = 0,
    target_version: int | None = None,
    ignore_unknown: bool = False,
) -> list[PlannedStep]:
    """Compute the ordered steps for a request.

    Args:
        migrations: Discovered migrations (sorted here, any order accepted).
        records: Stored application records (any order).
        direction: Requested direction for the primary steps.
        max_steps: Limit on primary steps; ``0`` means unlimited. Ignored
            when ``target_version`` is given.
        target_version: Stop at the migration with this version, inclusive.
        ignore_unknown: Skip the drift check.

    Raises:
        ConfigError: Negative ``max_steps`` or ``target_version``.
        DriftError: A stored id names no discovered migration.
        VersionSchemeError: Version-targeted request over an id without a
            numeric prefix.
        UnknownVersionError: The target version is passed or never reached.
    """
    if max_steps < 0:
        raise ConfigError(f"max_steps must be >= 0, got {max_steps}")
    if target_version is not None and target_version < 0:
        raise ConfigError(
            f"Target version must be >= 0, got {target_version}"
        ).with_context(version=target_version)

    ordered = sort_migrations(migrations)
    applied_ids = sorted(r.id for r in records)

    if not ignore_unknown:
        _check_drift(ordered, applied_ids)

    last = applied_ids[-1] if applied_ids else None

    steps: list[PlannedStep] = []
    if last is not None:
        steps.extend(
            PlannedStep.for_migration(m, Direction.UP, catch_up=True)
            for m in _catch_up(ordered, applied_ids, last)
        )

    pending = candidates(ordered, last, direction)

    if target_version is not None:
        for migration in ordered:
            if migration.version is None:
                raise VersionSchemeError(migration.id, target_version)
        pending = _bound_to_version(pending, direction, target_version)
    elif 0 < max_steps < len(pending):
        pending = pending[:max_steps]

    steps.extend(PlannedStep.for_migration(m, direction) for m in pending)
    return steps


__all__ = ["plan", "candidates"]
