"""Execution strategy selection for an eligible sample."""

from collections.abc import Sequence
from enum import Enum


class ExplainStrategy(str, Enum):
    """How a plan is captured on a given connection."""

    # pganalyze.explain() with bound parameters
    HELPER = "helper"
    # PREPARE, EXPLAIN EXECUTE with literal arguments, DEALLOCATE
    PREPARED_STATEMENT = "prepared_statement"
    # EXPLAIN directly on the query text
    DIRECT = "direct"


def select_strategy(helper_available: bool, parameters: Sequence[str]) -> ExplainStrategy:
    """
    Choose the capture strategy.

    The helper is preferred whenever it is installed. Without it, parameterized
    queries need a named prepared statement since EXPLAIN cannot take bind
    parameters itself.
    """
    if helper_available:
        return ExplainStrategy.HELPER
    if parameters:
        return ExplainStrategy.PREPARED_STATEMENT
    return ExplainStrategy.DIRECT
