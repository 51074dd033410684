"""
Shared pytest fixtures and configuration for sqlmigrate tests.

This module provides:
- In-memory SQLite connections, repositories and executors
- Migration builders and a temporary migrations directory
- structlog reset between tests

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_something(executor, conn):
        ...
"""

import sqlite3
import sys
import textwrap
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure sqlmigrate and tests._support are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmigrate.core.dialect import SQLiteDialect
from sqlmigrate.core.logging import clear_context
from sqlmigrate.core.migrations.executor import MigrationExecutor
from sqlmigrate.core.migrations.models import Migration
from sqlmigrate.core.migrations.source import MemorySource
from sqlmigrate.core.repository import MigrationRepository
from tests._support import make_migration


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "cli" in test_path.parts:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() calls so no test writes to a stale stream."""
    yield
    structlog.reset_defaults()
    clear_context()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory SQLite connection."""
    c = sqlite3.connect(":memory:")
    yield c
    c.close()


@pytest.fixture
def repository(conn: sqlite3.Connection) -> MigrationRepository:
    """Repository over the default ``migrations`` table, table created."""
    repo = MigrationRepository(conn, SQLiteDialect())
    repo.ensure_table()
    return repo


# =============================================================================
# Migration Fixtures
# =============================================================================


@pytest.fixture
def three_migrations() -> list[Migration]:
    """001/002/003 each creating its own table."""
    return [
        make_migration("001_people.sql", "people"),
        make_migration("002_pets.sql", "pets"),
        make_migration("003_toys.sql", "toys"),
    ]


@pytest.fixture
def executor(conn: sqlite3.Connection, three_migrations: list[Migration]) -> MigrationExecutor:
    """Executor over ``three_migrations`` on an in-memory database."""
    return MigrationExecutor(conn, MemorySource(three_migrations), "sqlite")


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """Directory with two annotated migration files."""
    d = tmp_path / "migrations"
    d.mkdir()
    (d / "1_initial.sql").write_text(
        textwrap.dedent("""\
            -- +migrate Up
            CREATE TABLE people (id INT);

            -- +migrate Down
            DROP TABLE people;
        """),
        encoding="utf-8",
    )
    (d / "2_record.sql").write_text(
        textwrap.dedent("""\
            -- +migrate Up
            INSERT INTO people (id) VALUES (1);

            -- +migrate Down
            DELETE FROM people WHERE id = 1;
        """),
        encoding="utf-8",
    )
    return d
