"""
Statement classification for plan capture.

Only a single SELECT, INSERT, UPDATE or DELETE statement is ever re-run under
EXPLAIN. Text that does not parse, holds more than one statement, or holds a
statement of any other kind (DDL, CALL, session or utility commands) is
declined without raising; the statement itself already ran successfully, only
the capture is skipped.
"""

from enum import Enum

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from plancapture.utils.logger import get_logger

logger = get_logger(__name__)

DIALECT = "postgres"


class StatementKind(str, Enum):
    """Statement kinds that may be explained."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def _statement_kind(statement: exp.Expression) -> StatementKind | None:
    # "TABLE t" is a SELECT to Postgres, but sqlglot does not parse it into a
    # query, so that shorthand is declined.
    # Set operations, parenthesized queries and bare VALUES are SELECTs to Postgres
    if isinstance(statement, (exp.Query, exp.Values)):
        return StatementKind.SELECT
    if isinstance(statement, exp.Insert):
        return StatementKind.INSERT
    if isinstance(statement, exp.Update):
        return StatementKind.UPDATE
    if isinstance(statement, exp.Delete):
        return StatementKind.DELETE
    return None


def classify_statement(query: str) -> StatementKind | None:
    """
    Classify raw SQL text.

    Args:
        query: Statement text as observed

    Returns:
        The statement kind when the text is exactly one explainable
        statement, otherwise None.
    """
    try:
        parsed = sqlglot.parse(query, read=DIALECT)
    except SqlglotError as e:
        logger.debug(f"Skipping EXPLAIN for unparseable query: {e}")
        return None
    except RecursionError:
        # Deeply nested expressions exhaust the recursive descent parser
        logger.debug("Skipping EXPLAIN for query nested too deeply to parse")
        return None

    # Stray semicolons yield empty entries; they are not statements
    statements = [statement for statement in parsed if statement is not None]
    if len(statements) != 1:
        return None

    return _statement_kind(statements[0])


def is_explainable(query: str) -> bool:
    """Whether the query text may be re-executed under EXPLAIN."""
    return classify_statement(query) is not None
