"""
Explain execution for eligible samples.

Runs the selected strategy on the database's connection and returns a new
sample carrying either the captured plan or the driver's error text. Driver
errors are attributed to the sample and never escape; each sample gets a
single attempt.
"""

import json
from typing import Any

import psycopg2

from plancapture.explain.context import ConnectionContext
from plancapture.explain.encoder import encode_bind_params, encode_literal_params
from plancapture.explain.errors import EmptyPlanError
from plancapture.explain.queries import (
    HELPER_EXPLAIN_SQL,
    deallocate_sql,
    direct_explain_sql,
    explain_execute_sql,
    prepare_sql,
)
from plancapture.explain.strategy import ExplainStrategy, select_strategy
from plancapture.models.sample import ExplainFormat, ExplainSource, QuerySample
from plancapture.utils.logger import get_logger

logger = get_logger(__name__)


def _error_text(error: Exception) -> str:
    return str(error).strip()


def _plan_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _fetch_plan(connection: Any, sql: str, params: Any = None) -> str:
    with connection.cursor() as cursor:
        cursor.execute(sql, params)
        row = cursor.fetchone()
    if not row or row[0] is None:
        raise EmptyPlanError()
    return _plan_text(row[0])


def _execute(connection: Any, sql: str) -> None:
    with connection.cursor() as cursor:
        cursor.execute(sql)


def _deallocate(context: ConnectionContext) -> None:
    try:
        _execute(context.connection, deallocate_sql())
        context.statement_prepared = False
    except psycopg2.Error as e:
        logger.debug(f"DEALLOCATE failed in database \"{context.database}\": {_error_text(e)}")


def explain_with_helper(context: ConnectionContext, sample: QuerySample) -> dict[str, str]:
    """Capture the plan through pganalyze.explain()."""
    try:
        plan = _fetch_plan(
            context.connection,
            HELPER_EXPLAIN_SQL,
            (sample.query, encode_bind_params(sample.parameters)),
        )
    except (psycopg2.Error, EmptyPlanError) as e:
        return {"explain_error": _error_text(e)}
    return {"explain_output": plan}


def explain_prepared(context: ConnectionContext, sample: QuerySample) -> dict[str, str]:
    """Capture the plan of a parameterized query via PREPARE / EXPLAIN EXECUTE."""
    if context.statement_prepared:
        # A previous DEALLOCATE failed; the name would still be taken
        _deallocate(context)

    try:
        _execute(context.connection, prepare_sql(sample.query))
    except psycopg2.Error as e:
        return {"explain_error": _error_text(e)}
    context.statement_prepared = True

    try:
        sql = explain_execute_sql(encode_literal_params(sample.parameters))
        plan = _fetch_plan(context.connection, sql)
        result = {"explain_output": plan}
    except (psycopg2.Error, EmptyPlanError) as e:
        result = {"explain_error": _error_text(e)}
    finally:
        _deallocate(context)

    return result


def explain_direct(context: ConnectionContext, sample: QuerySample) -> dict[str, str]:
    """Capture the plan of a query without parameters."""
    try:
        plan = _fetch_plan(context.connection, direct_explain_sql(sample.query))
    except (psycopg2.Error, EmptyPlanError) as e:
        return {"explain_error": _error_text(e)}
    return {"explain_output": plan}


_STRATEGIES = {
    ExplainStrategy.HELPER: explain_with_helper,
    ExplainStrategy.PREPARED_STATEMENT: explain_prepared,
    ExplainStrategy.DIRECT: explain_direct,
}


def explain_sample(context: ConnectionContext, sample: QuerySample) -> QuerySample:
    """
    Capture the plan for one eligible sample.

    The source and format tags are set whether or not the capture succeeds,
    recording that an attempt was made.

    Args:
        context: Probed connection of the sample's database
        sample: Sample already classified as explainable

    Returns:
        A copy of the sample with the explain fields populated
    """
    strategy = select_strategy(context.helper_available, sample.parameters)
    outcome = _STRATEGIES[strategy](context, sample)

    if "explain_error" in outcome:
        logger.debug(
            f"EXPLAIN ({strategy.value}) failed in database \"{context.database}\": "
            f"{outcome['explain_error']}"
        )

    return sample.model_copy(
        update={
            "explain_source": ExplainSource.STATEMENT_LOG,
            "explain_format": ExplainFormat.JSON,
            **outcome,
        }
    )
