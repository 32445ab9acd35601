from __future__ import annotations

from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config

HEADER = (
    "Water Level (cm),Water Flow Speed (m/s),Turbine Spin (RPM),"
    "Electricity Generated (W),Battery storage (W),Water Pressure (psi)\n"
)


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.latest_calls = 0
        self.latest_payload: Dict[str, Any] = {
            "id": "abc",
            "timestamp": "2024-01-01T00:00:00Z",
            "waterLevel": 21.5,
            "waterFlow": 4.3,
            "turbineSpeed": 640.0,
            "electricityGenerated": 2.3,
            "batteryStorage": 3.4,
            "waterPressure": 20.1,
        }
        self.model_payload: Dict[str, Any] = {
            "trained": True,
            "dataset_size": 12,
            "battery_level": 3.4,
            "stored_predictions": 7,
            "weights": [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6], [0.7, 0.8]],
            "bounds": {"water_level": {"min": 10.0, "max": 28.0}},
        }
        self.closed = False

    def get_latest(self) -> Dict[str, Any]:
        self.latest_calls += 1
        return self.latest_payload

    def get_model_status(self) -> Dict[str, Any]:
        return self.model_payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch) -> List[StubClient]:
    created: List[StubClient] = []

    def factory(config):
        stub = StubClient(config)
        created.append(stub)
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return created


def test_latest_renders_reading(monkeypatch, runner: CliRunner) -> None:
    created = _install_stub(monkeypatch)

    result = runner.invoke(app, ["--base-url", "http://rig:5000/", "latest"])

    assert result.exit_code == 0
    assert "Latest Reading" in result.stdout
    assert "water level (cm): 21.5" in result.stdout
    stub = created[0]
    assert stub.config.base_url == "http://rig:5000"
    assert stub.latest_calls == 1
    assert stub.closed is True


def test_latest_repeats_with_count(monkeypatch, runner: CliRunner) -> None:
    created = _install_stub(monkeypatch)

    result = runner.invoke(app, ["latest", "--count", "3", "--interval", "0"])

    assert result.exit_code == 0
    assert created[0].latest_calls == 3


def test_latest_without_predictions(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch)
    monkeypatch.setattr(
        StubClient, "get_latest", lambda self: {"message": "No predictions available"}
    )

    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "No predictions available" in result.stdout


def test_model_command(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch)

    result = runner.invoke(app, ["model"])

    assert result.exit_code == 0
    assert "trained: True" in result.stdout
    assert "stored_predictions: 7" in result.stdout
    assert "turbine_speed" in result.stdout
    assert "water_level: 10.0 .. 28.0" in result.stdout


def test_train_command_fits_locally(monkeypatch, runner: CliRunner, tmp_path) -> None:
    _install_stub(monkeypatch)
    csv_path = tmp_path / "data.csv"
    csv_path.write_text(
        HEADER
        + "12,2.4,520,1.2,3.0,18.5\n"
        + "17,3.4,720,3.0,3.4,19.6\n"
        + "22,4.4,880,4.5,4.1,21.0\n"
        + "not,a,number,row,at,all\n"
        + "28,5.6,1100,6.7,5.4,23.0\n"
    )

    result = runner.invoke(app, ["train", str(csv_path)])

    assert result.exit_code == 0
    assert "admitted: 4" in result.stdout
    assert "skipped: 1" in result.stdout
    assert "Weights" in result.stdout
    assert "bias" in result.stdout


def test_train_command_fails_with_too_few_rows(monkeypatch, runner: CliRunner, tmp_path) -> None:
    _install_stub(monkeypatch)
    csv_path = tmp_path / "data.csv"
    csv_path.write_text(HEADER + "12,2.4,520,1.2,3.0,18.5\n")

    result = runner.invoke(app, ["train", str(csv_path)])

    assert result.exit_code == 1


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://example:5000/")
    monkeypatch.setenv("CLI_WATCH_INTERVAL", "oops")

    config = load_config()

    assert config.base_url == "http://example:5000"
    assert config.watch_interval == 5.0
