from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from settings import get_settings

SAMPLE_READING: Dict[str, Any] = {
    "pm2_5_cf_1": 10,
    "pm2_5_cf_1_b": 12,
    "current_temp_f": 70.5,
    "current_humidity": 45,
}


class StubClient:
    instances: List["StubClient"] = []

    def __init__(self, hostname: str, timeout: Optional[float] = None) -> None:
        self.hostname = hostname
        self.timeout = timeout
        self.url = f"http://{hostname}/json"
        StubClient.instances.append(self)

    def fetch(self) -> Dict[str, Any]:
        return dict(SAMPLE_READING)


class OneShotScheduler:
    instances: List["OneShotScheduler"] = []

    def __init__(self, period: float) -> None:
        self.period = period
        OneShotScheduler.instances.append(self)

    def run(self, work) -> int:
        work()
        return 1

    def stop(self) -> None:
        pass


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for name in (
        "PURPLEAIR_HOSTNAME",
        "PURPLEAIR_PERIOD",
        "PURPLEAIR_DATA_PATH",
        "PURPLEAIR_STATE_PATH",
        "PURPLEAIR_LOG_PATH",
        "PURPLEAIR_REQUEST_TIMEOUT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    StubClient.instances.clear()
    OneShotScheduler.instances.clear()
    logging_calls: List[Dict[str, Any]] = []
    monkeypatch.setattr("cli.app.SensorClient", StubClient)
    monkeypatch.setattr("cli.app.PeriodicScheduler", OneShotScheduler)
    monkeypatch.setattr(
        "cli.app.configure_logging", lambda **kwargs: logging_calls.append(kwargs)
    )
    get_settings.cache_clear()
    yield logging_calls
    get_settings.cache_clear()


def test_single_cycle_writes_data_and_state(runner: CliRunner, tmp_path: Path) -> None:
    data = tmp_path / "data.tsv"
    state = tmp_path / "state.json"
    data.write_text("existing line\n")

    result = runner.invoke(
        app,
        ["sensor.local", "--period", "30", "--data", str(data), "--state", str(state)],
    )

    assert result.exit_code == 0
    lines = data.read_text().splitlines()
    assert lines[0] == "existing line"
    assert lines[1].endswith("\t70.5\t45\t11\t10\t12")
    assert json.loads(state.read_text())["pm25"] == 11
    assert StubClient.instances[0].hostname == "sensor.local"
    assert OneShotScheduler.instances[0].period == 30.0


def test_timeseries_defaults_to_stdout(runner: CliRunner) -> None:
    result = runner.invoke(app, ["sensor.local"])

    assert result.exit_code == 0
    assert result.stdout.endswith("\t70.5\t45\t11\t10\t12\n")
    assert OneShotScheduler.instances[0].period == 60.0
    assert StubClient.instances[0].timeout == 10.0


def test_hostname_falls_back_to_environment(runner: CliRunner, monkeypatch) -> None:
    monkeypatch.setenv("PURPLEAIR_HOSTNAME", "env-sensor")
    get_settings.cache_clear()

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert StubClient.instances[0].hostname == "env-sensor"


def test_missing_hostname_is_a_usage_error(runner: CliRunner) -> None:
    result = runner.invoke(app, [])

    assert result.exit_code == 2
    assert not StubClient.instances


@pytest.mark.parametrize("period", ["0", "-5"])
def test_non_positive_period_is_a_usage_error(runner: CliRunner, period: str) -> None:
    result = runner.invoke(app, ["sensor.local", f"--period={period}"])

    assert result.exit_code == 2
    assert not OneShotScheduler.instances


def test_verbosity_flags_select_log_level(
    runner: CliRunner, tmp_path: Path, _isolated_environment
) -> None:
    log_path = tmp_path / "poller.log"

    runner.invoke(app, ["sensor.local", "--verbose"])
    runner.invoke(app, ["sensor.local", "--debug", "--log", str(log_path)])
    runner.invoke(app, ["sensor.local"])

    levels = [call["level"] for call in _isolated_environment]
    assert levels == ["INFO", "DEBUG", "WARNING"]
    assert _isolated_environment[1]["log_path"] == str(log_path)


def test_unwritable_data_path_exits_with_failure(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["sensor.local", "--data", str(tmp_path / "missing" / "data.tsv")]
    )

    assert result.exit_code == 1


def test_publication_failure_exits_with_failure(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["sensor.local", "--state", str(tmp_path / "missing" / "state.json")]
    )

    assert result.exit_code == 1


class _FailingCloseStream(io.StringIO):
    name = "data.tsv"
    close_attempts = 0

    def close(self) -> None:
        self.close_attempts += 1
        if self.close_attempts == 1:
            raise OSError(28, "No space left on device")
        super().close()


def test_close_failure_is_reported_separately_from_open_failure(
    runner: CliRunner, monkeypatch, caplog
) -> None:
    stream = _FailingCloseStream()
    monkeypatch.setattr("cli.app.open_data_stream", lambda path: stream)

    with caplog.at_level(logging.ERROR, logger="cli.app"):
        result = runner.invoke(app, ["sensor.local", "--data", "data.tsv"])

    assert result.exit_code == 1
    assert stream.getvalue().endswith("\t70.5\t45\t11\t10\t12\n")
    assert any("cannot close data file" in message for message in caplog.messages)
    assert not any("cannot open data file" in message for message in caplog.messages)
