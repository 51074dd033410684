"""Tests for the ``-- +migrate`` annotation parser."""

from __future__ import annotations

import textwrap

import pytest

from sqlmigrate.core.errors import ErrorCategory, ParseError
from sqlmigrate.core.migrations.parser import parse_migration


def parse(text: str):
    return parse_migration(textwrap.dedent(text))


# ── Basic splitting ───────────────────────────────────────────────────


class TestSections:
    def test_up_and_down(self):
        result = parse("""\
            -- +migrate Up
            CREATE TABLE people (id INT);

            -- +migrate Down
            DROP TABLE people;
        """)
        assert result.up == ("CREATE TABLE people (id INT);\n",)
        assert result.down == ("DROP TABLE people;\n",)
        assert result.disable_transaction_up is False
        assert result.disable_transaction_down is False

    def test_multiple_statements(self):
        result = parse("""\
            -- +migrate Up
            CREATE TABLE a (id INT);
            CREATE TABLE b (id INT);
        """)
        assert len(result.up) == 2
        assert result.down == ()

    def test_multiline_statement(self):
        result = parse("""\
            -- +migrate Up
            CREATE TABLE a (
                id INT
            );
        """)
        assert result.up == ("CREATE TABLE a (\n    id INT\n);\n",)

    def test_only_down_section(self):
        result = parse("""\
            -- +migrate Down
            DROP TABLE a;
        """)
        assert result.up == ()
        assert result.down == ("DROP TABLE a;\n",)

    def test_empty_sections(self):
        result = parse("""\
            -- +migrate Up
            -- +migrate Down
        """)
        assert result.up == ()
        assert result.down == ()


class TestComments:
    def test_comment_lines_outside_statements_skipped(self):
        result = parse("""\
            -- leading comment
            -- +migrate Up
            -- explains the table
            CREATE TABLE a (id INT);
        """)
        assert result.up == ("CREATE TABLE a (id INT);\n",)

    def test_trailing_comment_after_semicolon(self):
        result = parse("""\
            -- +migrate Up
            CREATE TABLE a (id INT); -- the a table
            CREATE TABLE b (id INT);
        """)
        assert len(result.up) == 2

    def test_semicolon_inside_comment_does_not_end_statement(self):
        result = parse("""\
            -- +migrate Up
            CREATE TABLE a -- not done;
            (id INT);
        """)
        assert result.up == ("CREATE TABLE a -- not done;\n(id INT);\n",)


class TestOptions:
    def test_notransaction(self):
        result = parse("""\
            -- +migrate Up notransaction
            CREATE INDEX CONCURRENTLY idx ON a (id);
            -- +migrate Down
            DROP INDEX idx;
        """)
        assert result.disable_transaction_up is True
        assert result.disable_transaction_down is False

    def test_unknown_option(self):
        with pytest.raises(ParseError, match="Unknown option"):
            parse("""\
                -- +migrate Up sometimes
                SELECT 1;
            """)


class TestStatementBlocks:
    def test_block_is_one_statement(self):
        result = parse("""\
            -- +migrate Up
            -- +migrate StatementBegin
            CREATE FUNCTION f() RETURNS trigger AS $$
            BEGIN
                RETURN NEW;
            END;
            $$ LANGUAGE plpgsql;
            -- +migrate StatementEnd
            CREATE TABLE a (id INT);
        """)
        assert len(result.up) == 2
        assert result.up[0].startswith("CREATE FUNCTION")
        assert "END;" in result.up[0]
        assert result.up[1] == "CREATE TABLE a (id INT);\n"

    def test_begin_without_end(self):
        with pytest.raises(ParseError, match="no StatementEnd"):
            parse("""\
                -- +migrate Up
                -- +migrate StatementBegin
                SELECT 1;
            """)

    def test_end_without_begin(self):
        with pytest.raises(ParseError, match="without StatementBegin"):
            parse("""\
                -- +migrate Up
                SELECT 1;
                -- +migrate StatementEnd
            """)


# ── Errors ────────────────────────────────────────────────────────────


class TestErrors:
    def test_sql_before_annotation(self):
        with pytest.raises(ParseError) as exc_info:
            parse("""\
                CREATE TABLE a (id INT);
                -- +migrate Up
            """)
        assert exc_info.value.line == 1
        assert exc_info.value.category is ErrorCategory.PARSE

    def test_no_annotation(self):
        with pytest.raises(ParseError, match="No '-- \\+migrate Up'"):
            parse("-- just a comment\n")

    def test_unterminated_final_statement(self):
        with pytest.raises(ParseError, match="not terminated"):
            parse("""\
                -- +migrate Up
                CREATE TABLE a (id INT)
            """)

    def test_unterminated_before_next_section(self):
        with pytest.raises(ParseError, match="not terminated"):
            parse("""\
                -- +migrate Up
                CREATE TABLE a (id INT)
                -- +migrate Down
                DROP TABLE a;
            """)

    def test_unknown_command(self):
        with pytest.raises(ParseError, match="Unknown migrate command"):
            parse("""\
                -- +migrate Sideways
            """)

    def test_to_dict_carries_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse("SELECT 1;\n")
        assert exc_info.value.to_dict()["line"] == 1


class TestToMigration:
    def test_builds_migration(self):
        m = parse("""\
            -- +migrate Up notransaction
            SELECT 1;
        """).to_migration("1_select.sql")
        assert m.id == "1_select.sql"
        assert m.up == ("SELECT 1;\n",)
        assert m.disable_transaction_up is True
