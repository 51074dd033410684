"""Migration sources: where the migration set comes from.

Every source satisfies :class:`~sqlmigrate.core.protocols.MigrationSource`
and returns a fresh list sorted by id on each call.

==================  ==============================================
Source              Storage
==================  ==============================================
``MemorySource``    Migrations built in code (tests, embedding)
``DirectorySource`` ``*.sql`` files in a directory
``PackageSource``   ``*.sql`` resources inside a Python package
==================  ==============================================
"""

from __future__ import annotations

from collections.abc import Iterable
from importlib import resources
from pathlib import Path

from sqlmigrate.core.errors import ParseError, SourceError, SourceNotFoundError
from sqlmigrate.core.logging import get_logger
from sqlmigrate.core.migrations.models import Migration, sort_migrations
from sqlmigrate.core.migrations.parser import parse_migration

logger = get_logger(__name__)

MIGRATION_SUFFIX = ".sql"


def _check_unique(migrations: list[Migration], source: str) -> None:
    seen: set[str] = set()
    for migration in migrations:
        if migration.id in seen:
            raise SourceError(
                f"Duplicate migration id {migration.id!r}"
            ).with_context(migration_id=migration.id, source=source)
        seen.add(migration.id)


def _decode(migration_id: str, data: bytes, encoding: str, source: str) -> str:
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as exc:
        raise SourceError(
            f"Cannot decode migration {migration_id} as {encoding}: {exc}", cause=exc
        ).with_context(migration_id=migration_id, source=source) from exc


def _parse(migration_id: str, text: str, source: str) -> Migration:
    try:
        parsed = parse_migration(text)
    except ParseError as exc:
        raise ParseError(
            f"Error parsing migration {migration_id}: {exc.message}",
            line=exc.line,
            cause=exc,
        ).with_context(migration_id=migration_id, source=source) from exc
    return parsed.to_migration(migration_id)


class MemorySource:
    """Migrations held in memory.

    The sequence is copied at construction, so later changes to the
    caller's list are not observed.
    """

    def __init__(self, migrations: Iterable[Migration] = ()) -> None:
        self._migrations = tuple(migrations)
        _check_unique(list(self._migrations), "memory")

    def find_migrations(self) -> list[Migration]:
        return sort_migrations(self._migrations)

    def __repr__(self) -> str:
        return f"MemorySource({len(self._migrations)} migrations)"


class DirectorySource:
    """Every ``*.sql`` file in one directory; id is the file name.

    Parameters
    ----------
    path
        Directory to scan (not recursive).
    encoding
        Text encoding of the migration files.
    """

    def __init__(self, path: str | Path, *, encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def find_migrations(self) -> list[Migration]:
        if not self.path.is_dir():
            raise SourceNotFoundError(
                f"Migration directory not found: {self.path}"
            ).with_context(source=str(self.path))

        migrations: list[Migration] = []
        try:
            files = [p for p in self.path.iterdir() if p.suffix == MIGRATION_SUFFIX and p.is_file()]
            for file in files:
                text = _decode(file.name, file.read_bytes(), self.encoding, str(self.path))
                migrations.append(_parse(file.name, text, str(self.path)))
        except OSError as exc:
            raise SourceError(
                f"Cannot read migrations from {self.path}: {exc}", cause=exc
            ).with_context(source=str(self.path)) from exc

        _check_unique(migrations, str(self.path))
        logger.debug("source.scanned", source=str(self.path), count=len(migrations))
        return sort_migrations(migrations)

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.path)!r})"


class PackageSource:
    """``*.sql`` resources shipped inside an importable package.

    Example::

        source = PackageSource("myapp", "migrations")
    """

    def __init__(self, package: str, directory: str = "", *, encoding: str = "utf-8") -> None:
        self.package = package
        self.directory = directory.strip("/")
        self.encoding = encoding

    @property
    def location(self) -> str:
        if self.directory:
            return f"{self.package}:{self.directory}"
        return self.package

    def find_migrations(self) -> list[Migration]:
        try:
            root = resources.files(self.package)
        except ModuleNotFoundError as exc:
            raise SourceNotFoundError(
                f"Migration package not found: {self.package}", cause=exc
            ).with_context(source=self.location) from exc

        folder = root
        for part in filter(None, self.directory.split("/")):
            folder = folder.joinpath(part)
        if not folder.is_dir():
            raise SourceNotFoundError(
                f"Migration resource directory not found: {self.location}"
            ).with_context(source=self.location)

        migrations: list[Migration] = []
        try:
            for entry in folder.iterdir():
                if entry.is_file() and entry.name.endswith(MIGRATION_SUFFIX):
                    text = _decode(entry.name, entry.read_bytes(), self.encoding, self.location)
                    migrations.append(_parse(entry.name, text, self.location))
        except OSError as exc:
            raise SourceError(
                f"Cannot read migrations from {self.location}: {exc}", cause=exc
            ).with_context(source=self.location) from exc

        _check_unique(migrations, self.location)
        return sort_migrations(migrations)

    def __repr__(self) -> str:
        return f"PackageSource({self.location!r})"


__all__ = ["MemorySource", "DirectorySource", "PackageSource", "MIGRATION_SUFFIX"]
