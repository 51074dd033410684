"""Connection factory: create DB-API connections from URL strings.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/app.db``                            SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``mysql``           ``mysql+pymysql://user:pw@host/db``          MySQL
``mssql``           ``mssql+pyodbc://user:pw@dsn``               SQL Server
``oracle``          ``oracle+oracledb://user:pw@host/svc``       Oracle
``snowflake``       ``snowflake://user:pw@account/db``           Snowflake
==================  ==========================================  ============

SQLite goes straight to :mod:`sqlite3`. Every other URL is handed to
SQLAlchemy (``create_engine(url, poolclass=NullPool).raw_connection()``),
which picks the DB-API driver for the URL; the engine is only used to open
that one connection.

Usage
-----
::

    from sqlmigrate.core.connection import create_connection

    conn, info = create_connection("sqlite:///app.db")
    info.dialect_name   # 'sqlite'
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlmigrate.core.errors import ConfigError, DatabaseError
from sqlmigrate.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────

_DIALECT_BY_BACKEND = {
    "sqlite": "sqlite",
    "postgresql": "postgres",
    "postgres": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
    "mssql": "mssql",
    "oracle": "oracle",
    "snowflake": "snowflake",
}


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``..."""

    url: str
    """The original URL or path used to create the connection."""

    persistent: bool = True
    """Whether data survives process exit."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={_redact(self.url)!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def dialect_name(self) -> str | None:
        """Dialect registry name for this backend, ``None`` if unknown."""
        return _DIALECT_BY_BACKEND.get(self.backend)


def _redact(url: str) -> str:
    if "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is ``"memory"``, ``"sqlite"``, ``"file"`` or the backend
    name of a SQLAlchemy URL (driver suffix removed).
    """
    if db is None or db.strip() in ("", "memory", ":memory:"):
        return "memory", ":memory:"
    db = db.strip()

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        scheme = db.split("://", 1)[0].split("+", 1)[0].lower()
        if scheme == "postgres":
            # SQLAlchemy only accepts the long spelling
            db = "postgresql" + db[len("postgres"):]
            scheme = "postgresql"
        return scheme, db

    return "file", db


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite(target: str, *, timeout: float) -> tuple[Any, ConnectionInfo]:
    if target == ":memory:":
        return sqlite3.connect(":memory:", timeout=timeout), ConnectionInfo(
            backend="sqlite", url=":memory:", persistent=False
        )

    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())
    conn = sqlite3.connect(resolved, timeout=timeout)
    return conn, ConnectionInfo(backend="sqlite", url=target, resolved_path=resolved)


def _create_sqlalchemy(scheme: str, url: str) -> tuple[Any, ConnectionInfo]:
    from sqlalchemy import create_engine
    from sqlalchemy.exc import ArgumentError, NoSuchModuleError
    from sqlalchemy.pool import NullPool

    try:
        engine = create_engine(url, poolclass=NullPool)
    except (ArgumentError, NoSuchModuleError) as exc:
        raise ConfigError(f"Unsupported database URL {_redact(url)!r}: {exc}", cause=exc) from exc
    except ImportError as exc:
        raise ConfigError(
            f"Database driver for {scheme!r} is not installed: {exc}", cause=exc
        ) from exc

    try:
        conn = engine.raw_connection()
    except Exception as exc:
        raise DatabaseError(f"Cannot connect to {_redact(url)}: {exc}", cause=exc) from exc

    logger.debug("connection.opened", backend=scheme, url=_redact(url))
    return conn, ConnectionInfo(backend=scheme, url=url)


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    timeout: float = 5.0,
) -> tuple[Any, ConnectionInfo]:
    """Create a DB-API connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, a file path or
        ``sqlite:///`` URL for file SQLite, or any SQLAlchemy URL.
    timeout:
        SQLite busy timeout in seconds.

    Returns
    -------
    tuple[Connection, ConnectionInfo]

    Raises
    ------
    ConfigError
        The URL or its driver is not usable.
    DatabaseError
        The database could not be reached.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        return _create_sqlite(":memory:", timeout=timeout)
    if scheme in ("sqlite", "file"):
        return _create_sqlite(target, timeout=timeout)
    return _create_sqlalchemy(scheme, target)


__all__ = ["ConnectionInfo", "create_connection"]
