"""
CLI layer for sqlmigrate.

A Typer application whose commands wire settings, a connection and a
``MigrationExecutor`` together. Engine logic lives in ``sqlmigrate.core``;
this package only parses arguments and renders output.

Entry point::

    sqlmigrate --help
"""

from sqlmigrate.cli.app import app

__all__ = ["app"]
