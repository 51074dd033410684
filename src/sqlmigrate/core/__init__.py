"""
sqlmigrate.core - infrastructure shared by the migration engine.

Modules
-------
errors      MigrateError hierarchy
logging     structlog configuration and helpers
settings    MigrateSettings (pydantic-settings)
protocols   DB-API Connection / Cursor and MigrationSource protocols
dialect     Bookkeeping SQL templates and DialectRegistry
repository  MigrationRepository and Transaction
connection  create_connection() URL factory
"""
