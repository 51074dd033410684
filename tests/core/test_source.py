"""Tests for migration sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlmigrate.core.errors import ParseError, SourceError, SourceNotFoundError
from sqlmigrate.core.migrations.models import Migration
from sqlmigrate.core.migrations.source import DirectorySource, MemorySource, PackageSource
from sqlmigrate.core.protocols import MigrationSource
from tests._support import write_package

UP_DOWN = "-- +migrate Up\nSELECT 1;\n-- +migrate Down\nSELECT 2;\n"


# ── MemorySource ──────────────────────────────────────────────────────


class TestMemorySource:
    def test_satisfies_protocol(self):
        assert isinstance(MemorySource([]), MigrationSource)

    def test_sorted_by_id(self):
        source = MemorySource([Migration("3"), Migration("1"), Migration("2")])
        assert [m.id for m in source.find_migrations()] == ["1", "2", "3"]

    def test_repeated_calls_identical_after_caller_mutation(self):
        backing = [Migration("2"), Migration("1")]
        source = MemorySource(backing)
        first = source.find_migrations()
        backing.append(Migration("0"))
        backing.reverse()
        second = source.find_migrations()
        assert first == second
        assert [m.id for m in second] == ["1", "2"]

    def test_result_is_fresh_list(self):
        source = MemorySource([Migration("1")])
        source.find_migrations().clear()
        assert len(source.find_migrations()) == 1

    def test_duplicate_ids_rejected(self):
        with pytest.raises(SourceError, match="Duplicate"):
            MemorySource([Migration("1"), Migration("1")])

    def test_empty(self):
        assert MemorySource().find_migrations() == []


# ── DirectorySource ───────────────────────────────────────────────────


class TestDirectorySource:
    def test_reads_sql_files(self, migrations_dir: Path):
        migrations = DirectorySource(migrations_dir).find_migrations()
        assert [m.id for m in migrations] == ["1_initial.sql", "2_record.sql"]
        assert migrations[0].up == ("CREATE TABLE people (id INT);\n",)
        assert migrations[0].down == ("DROP TABLE people;\n",)

    def test_ignores_other_files(self, migrations_dir: Path):
        (migrations_dir / "README.md").write_text("notes", encoding="utf-8")
        (migrations_dir / "nested.sql").mkdir()
        ids = [m.id for m in DirectorySource(migrations_dir).find_migrations()]
        assert ids == ["1_initial.sql", "2_record.sql"]

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(SourceNotFoundError) as exc_info:
            DirectorySource(tmp_path / "nope").find_migrations()
        assert exc_info.value.context.source == str(tmp_path / "nope")

    def test_parse_error_names_file(self, tmp_path: Path):
        (tmp_path / "1_bad.sql").write_text("SELECT 1;\n", encoding="utf-8")
        with pytest.raises(ParseError) as exc_info:
            DirectorySource(tmp_path).find_migrations()
        assert "1_bad.sql" in str(exc_info.value)
        assert exc_info.value.context.migration_id == "1_bad.sql"
        assert isinstance(exc_info.value.__cause__, ParseError)

    def test_undecodable_file_is_source_error(self, tmp_path: Path):
        (tmp_path / "1_bad.sql").write_bytes(b"-- +migrate Up\n\xff\xfe SELECT 1;\n")
        with pytest.raises(SourceError, match="1_bad.sql") as exc_info:
            DirectorySource(tmp_path).find_migrations()
        assert exc_info.value.context.migration_id == "1_bad.sql"
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_encoding_option(self, tmp_path: Path):
        (tmp_path / "1_a.sql").write_bytes("-- +migrate Up\nSELECT 'é';\n".encode("latin-1"))
        migrations = DirectorySource(tmp_path, encoding="latin-1").find_migrations()
        assert migrations[0].up == ("SELECT 'é';\n",)

    def test_sorted_regardless_of_creation_order(self, tmp_path: Path):
        for name in ["3_c.sql", "1_a.sql", "2_b.sql"]:
            (tmp_path / name).write_text(UP_DOWN, encoding="utf-8")
        ids = [m.id for m in DirectorySource(tmp_path).find_migrations()]
        assert ids == ["1_a.sql", "2_b.sql", "3_c.sql"]


# ── PackageSource ─────────────────────────────────────────────────────


class TestPackageSource:
    def test_reads_package_resources(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        write_package(
            tmp_path,
            "bundled_migrations_a",
            {"sql/2_b.sql": UP_DOWN, "sql/1_a.sql": UP_DOWN, "sql/notes.txt": "x"},
        )
        monkeypatch.syspath_prepend(str(tmp_path))

        migrations = PackageSource("bundled_migrations_a", "sql").find_migrations()
        assert [m.id for m in migrations] == ["1_a.sql", "2_b.sql"]
        assert migrations[0].down == ("SELECT 2;\n",)

    def test_package_root(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        write_package(tmp_path, "bundled_migrations_b", {"1_a.sql": UP_DOWN})
        monkeypatch.syspath_prepend(str(tmp_path))
        assert [m.id for m in PackageSource("bundled_migrations_b").find_migrations()] == ["1_a.sql"]

    def test_missing_package(self):
        with pytest.raises(SourceNotFoundError):
            PackageSource("no_such_package_for_sqlmigrate").find_migrations()

    def test_missing_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        write_package(tmp_path, "bundled_migrations_c", {})
        monkeypatch.syspath_prepend(str(tmp_path))
        with pytest.raises(SourceNotFoundError, match="bundled_migrations_c:missing"):
            PackageSource("bundled_migrations_c", "missing").find_migrations()

    def test_undecodable_resource_is_source_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        package = write_package(tmp_path, "bundled_migrations_d", {})
        (package / "1_bad.sql").write_bytes(b"\xff\xfe")
        monkeypatch.syspath_prepend(str(tmp_path))
        with pytest.raises(SourceError, match="1_bad.sql") as exc_info:
            PackageSource("bundled_migrations_d").find_migrations()
        assert exc_info.value.context.source == "bundled_migrations_d"
