"""Split annotated migration files into up and down statements.

File format::

    -- +migrate Up
    CREATE TABLE people (id INT);

    -- +migrate StatementBegin
    CREATE FUNCTION touch() RETURNS trigger AS $$
    BEGIN
        NEW.updated_at = now();
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    -- +migrate StatementEnd

    -- +migrate Down notransaction
    DROP TABLE people;

A statement ends at a line whose code (ignoring a trailing ``--`` comment)
ends with ``;``. Lines between ``StatementBegin`` and ``StatementEnd`` form
one statement whatever their semicolons. Each statement keeps its line
breaks; the executor trims the trailing newline and semicolon.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlmigrate.core.errors import ParseError
from sqlmigrate.core.migrations.models import Direction, Migration

COMMAND_PREFIX = "-- +migrate "
NO_TRANSACTION = "notransaction"


@dataclass(frozen=True)
class ParsedMigration:
    up: tuple[str, ...] = ()
    down: tuple[str, ...] = ()
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False

    def to_migration(self, migration_id: str) -> Migration:
        return Migration(
            id=migration_id,
            up=self.up,
            down=self.down,
            disable_transaction_up=self.disable_transaction_up,
            disable_transaction_down=self.disable_transaction_down,
        )


def _ends_with_semicolon(line: str) -> bool:
    last = ""
    for word in line.split():
        if word.startswith("--"):
            break
        last = word
    return last.endswith(";")


def parse_migration(text: str) -> ParsedMigration:
    """Parse migration text into statements per direction.

    Raises:
        ParseError: On SQL outside an Up/Down section, a missing Up/Down
            annotation, an unterminated statement, an unbalanced
            StatementBegin/StatementEnd, or an unknown command.
    """
    statements: dict[Direction, list[str]] = {Direction.UP: [], Direction.DOWN: []}
    no_tx = {Direction.UP: False, Direction.DOWN: False}
    current: Direction | None = None
    seen_direction = False
    in_block = False
    block_line = 0
    buffer: list[str] = []

    def flush() -> None:
        if current is None:
            raise ParseError("Statement outside an Up/Down section")
        statements[current].append("".join(buffer))
        buffer.clear()

    lines = text.splitlines()
    for lineno, raw in enumerate(lines, start=1):
        stripped = raw.strip()

        if stripped == COMMAND_PREFIX.strip() or stripped.startswith(COMMAND_PREFIX):
            words = stripped[len(COMMAND_PREFIX):].split()
            if not words:
                raise ParseError("Empty migrate command", line=lineno)
            command, options = words[0], words[1:]

            match command:
                case "Up" | "Down":
                    if in_block:
                        raise ParseError(
                            f"'{command}' inside StatementBegin block opened at line {block_line}",
                            line=lineno,
                        )
                    if "".join(buffer).strip():
                        raise ParseError(
                            "Statement not terminated with ';' before next section",
                            line=lineno,
                        )
                    buffer.clear()
                    current = Direction.UP if command == "Up" else Direction.DOWN
                    seen_direction = True
                    for option in options:
                        if option == NO_TRANSACTION:
                            no_tx[current] = True
                        else:
                            raise ParseError(f"Unknown option {option!r} for '{command}'", line=lineno)
                case "StatementBegin":
                    if current is None:
                        raise ParseError("StatementBegin before any Up/Down annotation", line=lineno)
                    if in_block:
                        raise ParseError("Nested StatementBegin", line=lineno)
                    if "".join(buffer).strip():
                        raise ParseError("Statement not terminated with ';' before StatementBegin", line=lineno)
                    buffer.clear()
                    in_block = True
                    block_line = lineno
                case "StatementEnd":
                    if not in_block:
                        raise ParseError("StatementEnd without StatementBegin", line=lineno)
                    in_block = False
                    flush()
                case _:
                    raise ParseError(f"Unknown migrate command {command!r}", line=lineno)
            continue

        if in_block:
            buffer.append(raw + "\n")
            continue

        if not buffer and (not stripped or stripped.startswith("--")):
            continue

        if current is None:
            raise ParseError("SQL found before any '-- +migrate Up' or 'Down' annotation", line=lineno)

        buffer.append(raw + "\n")
        if _ends_with_semicolon(raw):
            flush()

    if in_block:
        raise ParseError(f"StatementBegin at line {block_line} has no StatementEnd", line=block_line)
    if "".join(buffer).strip():
        raise ParseError("Final statement not terminated with ';'", line=len(lines))
    if not seen_direction:
        raise ParseError("No '-- +migrate Up' or '-- +migrate Down' annotation found")

    return ParsedMigration(
        up=tuple(statements[Direction.UP]),
        down=tuple(statements[Direction.DOWN]),
        disable_transaction_up=no_tx[Direction.UP],
        disable_transaction_down=no_tx[Direction.DOWN],
    )


__all__ = ["ParsedMigration", "parse_migration", "COMMAND_PREFIX", "NO_TRANSACTION"]
