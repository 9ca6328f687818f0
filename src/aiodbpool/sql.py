"""
SQL escaping for values and identifiers.

- `quote_identifier()` - Quote a single table/column name
- `escape_identifier()` - Quote a possibly dotted name (schema.table.column)
- `escape_literal()` - Render a Python value as an SQL literal for a dialect
"""
from collections.abc import Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Dialect

__all__ = [
    'escape_identifier',
    'escape_literal',
    'quote_identifier',
]


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name
        dialect: Database dialect name

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')


def escape_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Quote every dot-separated part of `identifier`.

    >>> escape_identifier('public.users')
    '"public"."users"'
    """
    return '.'.join(quote_identifier(part, dialect) for part in identifier.split('.'))


def escape_literal(value: Any, dialect: Dialect) -> str:
    """Render `value` as an SQL literal using the dialect's literal processors.

    Lists and tuples render as a comma separated list of literals, suitable
    for ``IN (...)``. Values the dialect cannot render inline raise
    `sqlalchemy.exc.CompileError`.
    """
    if value is None:
        return 'NULL'
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return ', '.join(escape_literal(item, dialect) for item in value)

    compiled = sa.literal(value).compile(dialect=dialect,
                                         compile_kwargs={'literal_binds': True})
    return str(compiled)
