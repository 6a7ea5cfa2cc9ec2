from __future__ import annotations

import json

from typer.testing import CliRunner

from plancapture import main as module
from plancapture.config import get_settings
from plancapture.models.sample import QuerySample
from plancapture.pipeline.explain_pipeline import ExplainBatchResult, ExplainStats

runner = CliRunner()


class StubPipeline:
    instances: list["StubPipeline"] = []

    def __init__(self, server, workers: int = 1) -> None:
        self.server = server
        self.workers = workers
        self.received: list[QuerySample] = []
        StubPipeline.instances.append(self)

    def run(self, samples):
        self.received = list(samples)
        explained = [
            sample.model_copy(update={"explain_output": "[]"}) for sample in samples
        ]
        return ExplainBatchResult(samples=explained, stats=ExplainStats(samples_explained=len(samples)))


def _patch(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PLANCAPTURE_ENV_FILE", raising=False)
    get_settings.cache_clear()
    monkeypatch.setattr(module, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(module, "ExplainPipeline", StubPipeline)
    StubPipeline.instances.clear()


def test_run_writes_transformed_samples(monkeypatch, tmp_path) -> None:
    _patch(monkeypatch, tmp_path)
    samples_file = tmp_path / "samples.json"
    samples_file.write_text(
        json.dumps([{"database": "appdb", "query": "SELECT 1", "parameters": []}]),
        encoding="utf-8",
    )
    output_file = tmp_path / "out.json"

    result = runner.invoke(module.app, ["run", str(samples_file), "--output", str(output_file)])

    assert result.exit_code == 0
    written = json.loads(output_file.read_text(encoding="utf-8"))
    assert written[0]["query"] == "SELECT 1"
    assert written[0]["explain_output"] == "[]"
    assert StubPipeline.instances[0].received[0].database == "appdb"


def test_run_rejects_invalid_samples(monkeypatch, tmp_path) -> None:
    _patch(monkeypatch, tmp_path)
    samples_file = tmp_path / "samples.json"
    samples_file.write_text(json.dumps([{"database": "appdb"}]), encoding="utf-8")

    result = runner.invoke(module.app, ["run", str(samples_file)])

    assert result.exit_code == 1
    assert StubPipeline.instances == []


def test_run_missing_file(monkeypatch, tmp_path) -> None:
    _patch(monkeypatch, tmp_path)

    result = runner.invoke(module.app, ["run", str(tmp_path / "missing.json")])

    assert result.exit_code == 1


def test_version_command() -> None:
    result = runner.invoke(module.app, ["version"])

    assert result.exit_code == 0
