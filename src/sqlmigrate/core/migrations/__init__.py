"""Migration engine: models, parser, sources and planner.

Modules
-------
models    Direction, Migration, ApplicationRecord, PlannedStep, MigrationStatus
parser    parse_migration() for ``-- +migrate`` annotated files
source    MemorySource, DirectorySource, PackageSource
planner   plan() - pure plan computation
executor  MigrationExecutor (import from ``sqlmigrate`` or the module)

Tags:
    sqlmigrate, migrations, schema, database, DDL
"""

from sqlmigrate.core.migrations.models import (
    ApplicationRecord,
    Direction,
    Migration,
    MigrationStatus,
    PlannedStep,
    sort_migrations,
)
from sqlmigrate.core.migrations.parser import ParsedMigration, parse_migration
from sqlmigrate.core.migrations.planner import plan
from sqlmigrate.core.migrations.source import DirectorySource, MemorySource, PackageSource

__all__ = [
    "ApplicationRecord",
    "Direction",
    "Migration",
    "MigrationStatus",
    "PlannedStep",
    "sort_migrations",
    "ParsedMigration",
    "parse_migration",
    "plan",
    "DirectorySource",
    "MemorySource",
    "PackageSource",
]
