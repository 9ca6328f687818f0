"""Unit tests for value and identifier escaping."""
import pytest
from aiodbpool.sql import escape_identifier, escape_literal, quote_identifier
from sqlalchemy.dialects import sqlite


@pytest.fixture
def dialect():
    return sqlite.dialect()


class TestQuoteIdentifier:

    @pytest.mark.parametrize(('identifier', 'dialect', 'expected'), [
        ('users', 'postgresql', '"users"'),
        ('users', 'sqlite', '"users"'),
        ('my"table', 'postgresql', '"my""table"'),
        ('Mixed Case', 'sqlite', '"Mixed Case"'),
    ])
    def test_quote(self, identifier, dialect, expected):
        assert quote_identifier(identifier, dialect) == expected

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match='Unknown dialect'):
            quote_identifier('users', 'oracle')

    def test_dotted_identifier(self):
        assert escape_identifier('public.users') == '"public"."users"'
        assert escape_identifier('users') == '"users"'


class TestEscapeLiteral:

    @pytest.mark.parametrize(('value', 'expected'), [
        ('test', "'test'"),
        ("O'Brien", "'O''Brien'"),
        (42, '42'),
        (None, 'NULL'),
    ], ids=['string', 'embedded_quote', 'integer', 'none'])
    def test_scalar(self, dialect, value, expected):
        assert escape_literal(value, dialect) == expected

    def test_sequence(self, dialect):
        assert escape_literal([1, 'a', None], dialect) == "1, 'a', NULL"

    def test_string_is_not_a_sequence(self, dialect):
        assert escape_literal('abc', dialect) == "'abc'"
