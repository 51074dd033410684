"""
Structured error types for sqlmigrate.

Every failure the engine can report is a :class:`MigrateError` subclass.
Errors carry a category, structured context (migration id, direction,
version, statement) and the chained driver exception, so callers can tell
"the plan was unsafe" from "a statement failed" from "the commit failed"
without parsing messages.

Manifesto:
    - **Typed hierarchy:** One class per failure kind in the taxonomy
    - **Never retried:** Every error is terminal for the current run
    - **Rich context:** Migration id and version travel with the error
    - **Partial progress:** ``applied`` reports steps committed before failure

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        MigrateError                          │
        │         (category, context, cause, applied)                  │
        ├──────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError         SourceError         PlanError           │
        │  (CONFIG)            (SOURCE)            (PLAN)              │
        │     │                   │                   │                │
        │  UnknownDialect      SourceNotFound      DriftError          │
        │                      ParseError          UnknownVersionError │
        │                                          VersionSchemeError  │
        │                                                              │
        │  DatabaseError (DATABASE)                                    │
        │     │                                                        │
        │  StatementError   BookkeepingError   TransactionError        │
        │                                      (TRANSACTION)           │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = StatementError("no such table: users", migration_id="002_users.sql")
    >>> err.context.migration_id
    '002_users.sql'
    >>> err.to_dict()["category"]
    'DATABASE'

Guardrails:
    ❌ DON'T: Raise bare Exception from engine code
    ✅ DO: Pick the MigrateError subclass that names the failure

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as ``cause=`` so ``__cause__`` keeps the traceback

Tags:
    error-handling, exception-hierarchy, migrations, sqlmigrate

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Unknown dialect, invalid option values
    SOURCE = "SOURCE"             # Migration directory or package unreadable
    PARSE = "PARSE"               # Migration text could not be split
    PLAN = "PLAN"                 # Drift or bounding failures
    DATABASE = "DATABASE"         # Statement or bookkeeping failures
    TRANSACTION = "TRANSACTION"   # Begin, commit or rollback failures
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in :meth:`to_dict`, so log lines stay
    short for errors that have nothing to do with a particular migration.

    Attributes:
        migration_id: Id of the migration being planned or applied
        direction: ``"up"`` or ``"down"``
        version: Target version for version-bounded plans
        statement: SQL text that failed
        source: Description of the migration source (path, package)
        metadata: Additional key-value pairs
    """

    migration_id: str | None = None
    direction: str | None = None
    version: int | None = None
    statement: str | None = None
    source: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration_id", "direction", "version", "statement", "source"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigrateError(Exception):
    """
    Base exception for all sqlmigrate errors.

    Subclasses set ``default_category``. ``applied`` is filled in by the
    executor when a run stops part way through: it is the number of steps
    that were committed before this error was raised (``None`` outside of a
    run, for example when planning fails).

    Examples:
        >>> err = MigrateError("boom")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.with_context(migration_id="001_init.sql").context.migration_id
        '001_init.sql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        applied: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        self.applied = applied

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrateError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceError("unreadable").with_context(source="db/migrations")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.applied is not None:
            result["applied"] = self.applied
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(MigrateError):
    """Configuration error. The caller must fix the configuration."""

    default_category = ErrorCategory.CONFIG


class UnknownDialectError(ConfigError):
    """Requested dialect name is not in the registry."""

    def __init__(self, name: str, known: list[str] | None = None):
        self.dialect_name = name
        self.known = known or []
        message = f"Unknown dialect: {name!r}"
        if self.known:
            message += f". Supported: {', '.join(self.known)}"
        super().__init__(message)


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(MigrateError):
    """The migration set could not be discovered."""

    default_category = ErrorCategory.SOURCE


class SourceNotFoundError(SourceError):
    """Migration directory or package does not exist."""


class ParseError(SourceError):
    """A migration's text could not be split into up and down statements."""

    default_category = ErrorCategory.PARSE

    def __init__(self, message: str, *, line: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.line = line

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.line is not None:
            result["line"] = self.line
        return result


# =============================================================================
# PLANNING ERRORS
# =============================================================================


class PlanError(MigrateError):
    """A safe plan cannot be computed."""

    default_category = ErrorCategory.PLAN


class DriftError(PlanError):
    """The bookkeeping table holds an id that no discovered migration has."""

    def __init__(self, migration_id: str, message: str | None = None):
        super().__init__(
            message or f"Unknown migration in database: {migration_id}",
            context=ErrorContext(migration_id=migration_id),
        )
        self.migration_id = migration_id


class UnknownVersionError(PlanError):
    """A target version is never reached, or is passed out of order."""

    def __init__(self, version: int, direction: str | None = None, message: str | None = None):
        super().__init__(
            message or f"Unknown migration with version {version} in database",
            context=ErrorContext(version=version, direction=direction),
        )
        self.version = version


class VersionSchemeError(PlanError):
    """Version-targeted planning over ids without a numeric prefix."""

    def __init__(self, migration_id: str, version: int | None = None):
        super().__init__(
            f"Migration {migration_id} has no numeric version prefix; "
            "version-targeted planning needs every id to start with a number",
            context=ErrorContext(migration_id=migration_id, version=version),
        )
        self.migration_id = migration_id


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(MigrateError):
    """A database round trip failed while applying a migration."""

    default_category = ErrorCategory.DATABASE

    def __init__(self, message: str, *, migration_id: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.migration_id = migration_id
        if migration_id is not None:
            self.context.migration_id = migration_id


class StatementError(DatabaseError):
    """A SQL statement inside a migration failed."""

    def __init__(
        self,
        message: str,
        *,
        statement: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.statement = statement
        if statement is not None:
            self.context.statement = statement


class BookkeepingError(DatabaseError):
    """Saving, deleting or listing application records failed."""


class TransactionError(DatabaseError):
    """Opening, committing or rolling back a transaction failed.

    ``phase`` is one of ``"begin"``, ``"commit"`` or ``"rollback"`` so that
    "statements ran, commit failed" can be told apart from a statement error.
    """

    default_category = ErrorCategory.TRANSACTION

    def __init__(self, message: str, *, phase: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.phase = phase
        self.context.metadata["phase"] = phase


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigrateError",
    "ConfigError",
    "UnknownDialectError",
    "SourceError",
    "SourceNotFoundError",
    "ParseError",
    "PlanError",
    "DriftError",
    "UnknownVersionError",
    "VersionSchemeError",
    "DatabaseError",
    "StatementError",
    "BookkeepingError",
    "TransactionError",
]
