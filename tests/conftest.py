from __future__ import annotations

from typing import Any

import pytest

from plancapture.config import ServerConfig, SystemType


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection
        self._row: Any = None

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        self.connection.executed.append((sql, params))
        self._row = None
        for fragment, response in self.connection.responses:
            if fragment in sql:
                if isinstance(response, Exception):
                    raise response
                self._row = response
                return

    def fetchone(self) -> Any:
        return self._row


class FakeConnection:
    """Records every statement; replies by the first matching SQL fragment."""

    def __init__(self, responses: list[tuple[str, Any]] | None = None) -> None:
        self.responses = list(responses or [])
        self.executed: list[tuple[str, Any]] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]


@pytest.fixture
def fake_connection():
    def _make(responses: list[tuple[str, Any]] | None = None) -> FakeConnection:
        return FakeConnection(responses)

    return _make


@pytest.fixture
def server() -> ServerConfig:
    return ServerConfig(
        host="localhost",
        port=5432,
        user="monitor",
        password="secret",
        db_name="appdb",
        db_extra_names=["reporting"],
        system_type=SystemType.SELF_HOSTED,
    )
