from __future__ import annotations

from typing import Any

import psycopg2
import pytest

from plancapture.config import ServerConfig
from plancapture.models.sample import QuerySample
from plancapture.pipeline import explain_pipeline as module
from plancapture.pipeline.explain_pipeline import ExplainPipeline, run_explain
from plancapture.utils.logger import get_logger

MARKER = "/* pganalyze-collector */ "
PLAN = '[{"Plan": {"Node Type": "Result"}}]'
NO_HELPER = [("pg_proc", (False,)), ("is_superuser", (False,)), ("EXPLAIN", (PLAN,))]
WITH_HELPER = [("pg_proc", (True,)), ("pganalyze.explain", (PLAN,))]


class FakeConnector:
    def __init__(self, make_connection, responses: dict[str, Any] | None = None) -> None:
        self.make_connection = make_connection
        self.responses = responses or {}
        self.connections: dict[str, Any] = {}
        self.calls: list[str] = []

    def __call__(self, server: ServerConfig, database: str) -> Any:
        self.calls.append(database)
        response = self.responses.get(database, NO_HELPER)
        if isinstance(response, Exception):
            raise response
        conn = self.make_connection(response)
        self.connections[database] = conn
        return conn


def test_default_database_scenario(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(fake_connection)

    result = ExplainPipeline(server, connect=connector).run(
        [QuerySample(database="", query="SELECT 1", parameters=[])]
    )

    conn = connector.connections["appdb"]
    assert conn.statements[-1] == MARKER + "EXPLAIN (VERBOSE, FORMAT JSON) SELECT 1"
    assert result.samples[0].explain_output == PLAN
    assert result.stats.samples_explained == 1
    assert result.stats.databases_processed == 1
    assert conn.closed


def test_filtered_and_ineligible_samples_pass_through(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(fake_connection)
    samples = [
        QuerySample(database="appdb", query="SELECT 1", has_explain=True, explain_output="{}"),
        QuerySample(database="elsewhere", query="SELECT 1"),
        QuerySample(database="appdb", query="SELECT 1; SELECT 2"),
        QuerySample(database="appdb", query="VACUUM ANALYZE t"),
        QuerySample(database="appdb", query="SELECT * FROM ("),
        QuerySample(database="appdb", query="pg_start_backup('x')"),
    ]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert len(result.samples) == len(samples)
    for before, after in zip(samples, result.samples):
        assert after is before
    assert result.stats.samples_filtered == 3
    assert result.stats.samples_ineligible == 3
    assert not any("EXPLAIN" in sql for sql in connector.connections["appdb"].statements)


def test_output_keeps_input_order_across_databases(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(fake_connection, {"reporting": WITH_HELPER})
    samples = [
        QuerySample(database="reporting", query="SELECT 1"),
        QuerySample(database="appdb", query="SELECT 2"),
        QuerySample(database="other", query="SELECT 3"),
        QuerySample(database="reporting", query="SELECT 4"),
    ]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert [s.query for s in result.samples] == ["SELECT 1", "SELECT 2", "SELECT 3", "SELECT 4"]
    assert result.samples[2] is samples[2]
    assert connector.calls == ["reporting", "appdb"]
    helper_calls = [
        sql for sql in connector.connections["reporting"].statements if "pganalyze.explain" in sql
    ]
    assert len(helper_calls) == 2


def test_connection_failure_skips_database(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(
        fake_connection, {"reporting": ConnectionError("PostgreSQL connection failed: timeout")}
    )
    samples = [
        QuerySample(database="reporting", query="SELECT 1"),
        QuerySample(database="appdb", query="SELECT 2"),
    ]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert result.samples[0] is samples[0]
    assert result.samples[1].explain_output == PLAN
    assert result.stats.databases_skipped == 1
    assert result.stats.databases_processed == 1
    assert "reporting" in result.stats.errors[0]


def test_probe_failure_closes_connection_and_skips(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(
        fake_connection, {"appdb": [("pg_proc", psycopg2.OperationalError("probe broke"))]}
    )
    samples = [QuerySample(query="SELECT 1")]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert result.samples[0] is samples[0]
    assert connector.connections["appdb"].closed
    assert result.stats.databases_skipped == 1


def test_errors_are_recorded_per_sample(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(
        fake_connection,
        {
            "appdb": [
                ("pg_proc", (False,)),
                ("is_superuser", (True,)),
                ("missing_table", psycopg2.ProgrammingError('relation "missing_table" does not exist')),
                ("EXPLAIN", (PLAN,)),
            ]
        },
    )
    samples = [
        QuerySample(query="SELECT * FROM missing_table"),
        QuerySample(query="SELECT * FROM t WHERE id = $1", parameters=["5"]),
    ]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert result.samples[0].explain_error == 'relation "missing_table" does not exist'
    assert result.samples[1].explain_output == PLAN
    assert result.stats.samples_failed == 1
    assert result.stats.samples_explained == 1
    assert connector.connections["appdb"].statements[-1] == MARKER + "DEALLOCATE pganalyze_explain"


def test_advisory_logged_without_helper_or_superuser(
    server: ServerConfig, fake_connection, monkeypatch
) -> None:
    messages: list[str] = []

    class RecordingLogger:
        def info(self, message: str) -> None:
            messages.append(message)

        def debug(self, message: str) -> None:
            pass

    monkeypatch.setattr(module, "logger", RecordingLogger())

    ExplainPipeline(server, connect=FakeConnector(fake_connection)).run(
        [QuerySample(query="SELECT 1")]
    )

    assert any('helper function not found in database "appdb"' in m for m in messages)


def test_second_pass_is_a_no_op(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(fake_connection)
    first = run_explain(server, [QuerySample(query="SELECT 1")], connect=connector)

    resubmitted = [sample.with_explain_flag() for sample in first]
    second = run_explain(server, resubmitted, connect=connector)

    assert second[0] is resubmitted[0]
    assert connector.calls == ["appdb"]


@pytest.mark.parametrize("workers", [1, 4])
def test_concurrent_units_produce_same_output(
    server: ServerConfig, fake_connection, workers: int
) -> None:
    server.db_all_names = True
    samples = [QuerySample(database=f"db{i % 3}", query=f"SELECT {i}") for i in range(9)]

    result = ExplainPipeline(
        server, connect=FakeConnector(fake_connection), workers=workers
    ).run(samples)

    assert [s.query for s in result.samples] == [s.query for s in samples]
    assert all(s.explain_output == PLAN for s in result.samples)
    assert result.stats.databases_processed == 3


def test_deeply_nested_query_does_not_abort_batch(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(fake_connection)
    nested = QuerySample(query="SELECT " + "(" * 300 + "1" + ")" * 300)
    samples = [QuerySample(query="SELECT 1"), nested, QuerySample(database="reporting", query="SELECT 2")]

    result = ExplainPipeline(server, connect=connector).run(samples)

    assert result.samples[0].explain_output == PLAN
    assert result.samples[1] is nested
    assert result.samples[2].explain_output == PLAN
    assert result.stats.samples_ineligible == 1


def test_null_plan_counts_as_failure(server: ServerConfig, fake_connection) -> None:
    connector = FakeConnector(
        fake_connection, {"appdb": [("pg_proc", (True,)), ("pganalyze.explain", (None,))]}
    )

    result = ExplainPipeline(server, connect=connector).run([QuerySample(query="SELECT 1")])

    assert result.samples[0].explain_error == "EXPLAIN returned no plan"
    assert result.stats.samples_failed == 1
    assert result.stats.samples_explained == 0


def test_records_carry_their_database(server: ServerConfig, fake_connection) -> None:
    records: list[dict] = []
    handler_id = get_logger().add(lambda message: records.append(message.record), level="DEBUG")
    connector = FakeConnector(
        fake_connection, {"reporting": ConnectionError("PostgreSQL connection failed: timeout")}
    )

    try:
        ExplainPipeline(server, connect=connector, workers=2).run(
            [QuerySample(database="reporting", query="SELECT 1"), QuerySample(query="SELECT 2")]
        )
    finally:
        get_logger().remove(handler_id)

    skipped = [r for r in records if "Could not connect" in r["message"]]
    assert [r["extra"]["database"] for r in skipped] == ["reporting"]
    advisory = [r for r in records if "helper function not found" in r["message"]]
    assert [r["extra"]["database"] for r in advisory] == ["appdb"]
