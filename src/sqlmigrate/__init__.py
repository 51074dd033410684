"""
sqlmigrate - SQL migration reconciliation and execution.

Keeps a database schema in step with an ordered set of hand-written SQL
migrations, tracking what has been applied in a bookkeeping table.

Packages:
- sqlmigrate.core: errors, logging, settings, dialects, repository, connections
- sqlmigrate.core.migrations: models, parser, sources, planner, executor
- sqlmigrate.cli: the ``sqlmigrate`` command line
"""

__version__ = "0.1.0"

from sqlmigrate.core.migrations.executor import MigrationExecutor  # noqa: E402
from sqlmigrate.core.migrations.models import (  # noqa: E402
    ApplicationRecord,
    Direction,
    Migration,
    MigrationStatus,
    PlannedStep,
)
from sqlmigrate.core.migrations.planner import plan  # noqa: E402
from sqlmigrate.core.migrations.source import (  # noqa: E402
    DirectorySource,
    MemorySource,
    PackageSource,
)
from sqlmigrate.core.dialect import DialectRegistry  # noqa: E402
from sqlmigrate.core.errors import MigrateError  # noqa: E402

__all__ = [
    "__version__",
    "MigrationExecutor",
    "ApplicationRecord",
    "Direction",
    "Migration",
    "MigrationStatus",
    "PlannedStep",
    "plan",
    "DirectorySource",
    "MemorySource",
    "PackageSource",
    "DialectRegistry",
    "MigrateError",
]
