"""Tests for create_connection and ConnectionInfo."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from sqlmigrate.core.connection import ConnectionInfo, create_connection
from sqlmigrate.core.errors import ConfigError


class TestSQLite:
    @pytest.mark.parametrize("db", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory(self, db):
        conn, info = create_connection(db)
        try:
            assert isinstance(conn, sqlite3.Connection)
            assert info.is_sqlite
            assert info.persistent is False
            assert info.dialect_name == "sqlite"
        finally:
            conn.close()

    def test_file_path(self, tmp_path: Path):
        target = tmp_path / "nested" / "app.db"
        conn, info = create_connection(str(target))
        try:
            conn.execute("CREATE TABLE t (id INT)")
        finally:
            conn.close()
        assert target.exists()
        assert info.resolved_path == str(target.resolve())
        assert info.persistent is True

    def test_sqlite_url(self, tmp_path: Path):
        target = tmp_path / "app.db"
        conn, info = create_connection(f"sqlite:///{target}")
        conn.close()
        assert info.backend == "sqlite"
        assert target.exists()


class TestSQLAlchemyUrls:
    def test_unknown_scheme_is_config_error(self):
        with pytest.raises(ConfigError):
            create_connection("nosuchdb://user@host/db")


class TestConnectionInfo:
    @pytest.mark.parametrize(
        ("backend", "dialect"),
        [
            ("postgresql", "postgres"),
            ("mariadb", "mysql"),
            ("mssql", "mssql"),
            ("oracle", "oracle"),
            ("snowflake", "snowflake"),
            ("db2", None),
        ],
    )
    def test_dialect_name(self, backend, dialect):
        assert ConnectionInfo(backend=backend, url="").dialect_name == dialect

    def test_repr_redacts_password(self):
        info = ConnectionInfo(backend="postgresql", url="postgresql://app:s3cret@db:5432/app")
        text = repr(info)
        assert "s3cret" not in text
        assert "app:***@db:5432/app" in text

    def test_repr_prefers_path(self):
        info = ConnectionInfo(backend="sqlite", url="app.db", resolved_path="/tmp/app.db")
        assert "path='/tmp/app.db'" in repr(info)
