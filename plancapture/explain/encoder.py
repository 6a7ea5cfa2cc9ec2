"""
Parameter rendering for the two execution paths.

The helper function receives parameters through driver binding. EXPLAIN
EXECUTE only accepts literal arguments, so the prepared statement path renders
each value as a quoted string literal instead. Values here were captured from
statements that already executed; quoting still escapes them fully.
"""

from collections.abc import Sequence


def quote_literal(value: str) -> str:
    """
    Quote a value as a Postgres string literal.

    Mirrors quote_literal(): single quotes are doubled, and values containing
    a backslash are written as an escape string with backslashes doubled, which
    reads back the same whatever standard_conforming_strings is set to.
    """
    literal = value.replace("'", "''")
    if "\\" in literal:
        literal = literal.replace("\\", "\\\\")
        return " E'" + literal + "'"
    return "'" + literal + "'"


def encode_literal_params(parameters: Sequence[str]) -> str:
    """Render parameters as a comma-separated list of quoted literals."""
    return ", ".join(quote_literal(value) for value in parameters)


def encode_bind_params(parameters: Sequence[str]) -> list[str]:
    """Parameters for driver-side binding; psycopg2 adapts the list to a text array."""
    return list(parameters)
