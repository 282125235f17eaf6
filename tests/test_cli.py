"""
Tests for the Typer CLI.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from repscheduler.cli import app as cli_module
from repscheduler.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep table cells and messages on one line
    monkeypatch.setattr(cli_module.console, "width", 200)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    store_path = tmp_path / "appointments.json"
    store_path.write_text(
        json.dumps(
            {
                "appointments": [
                    {
                        "id": "capitol", "repId": "rep-alice", "name": "Capitol",
                        "address": "Capitol Hill, Washington, DC", "lat": 38.8899, "lng": -77.0091,
                        "date": "2026-01-19", "time": "09:00", "duration": 30,
                    },
                    {
                        "id": "dupont", "repId": "rep-alice", "name": "Dupont",
                        "address": "Dupont Circle, Washington, DC", "lat": 38.9096, "lng": -77.0434,
                        "date": "2026-01-21", "time": "13:00", "duration": 30,
                    },
                    {
                        "id": "bob-1", "repId": "rep-bob", "name": "Bob's customer",
                        "address": "Old Town, Alexandria, VA", "lat": 38.8048, "lng": -77.0469,
                        "date": "2026-01-19", "time": "09:00", "duration": 480,
                    },
                ]
            }
        ),
        encoding="utf-8",
    )

    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
store_path: {store_path}
reps:
  - name: Alice
    rep_id: rep-alice
  - name: Bob
    rep_id: rep-bob
""",
        encoding="utf-8",
    )
    return path


def test_reps(config_path):
    result = runner.invoke(app, ["reps", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Alice" in result.stdout
    assert "rep-bob" in result.stdout


def test_slot(config_path):
    result = runner.invoke(app, ["slot", "2026-01-19", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "try 09:30" in result.stdout


def test_slot_for_other_rep(config_path):
    result = runner.invoke(
        app, ["slot", "2026-01-19", "--rep", "bob", "--duration", "60", "--config", str(config_path)]
    )

    assert result.exit_code == 0
    # Bob is booked all day, so the opening time comes back
    assert "try 09:00" in result.stdout


def test_slot_invalid_date(config_path):
    result = runner.invoke(app, ["slot", "19.01.2026", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Invalid date" in result.stdout


def test_suggest_mock(config_path):
    result = runner.invoke(
        app, ["suggest", "Union Station, Washington, DC", "--mock", "--config", str(config_path)]
    )

    assert result.exit_code == 0
    assert "Mon, Jan 19" in result.stdout
    assert "try 09:30" in result.stdout


def test_suggest_unknown_address(config_path):
    result = runner.invoke(app, ["suggest", "Nowhere Lane 99", "--mock", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Address not found" in result.stdout


def test_add_and_list(config_path):
    added = runner.invoke(
        app,
        [
            "add", "New Customer", "Union Station, Washington, DC",
            "--date", "2026-01-19", "--mock", "--config", str(config_path),
        ],
    )

    assert added.exit_code == 0
    assert "at 09:30" in added.stdout

    listed = runner.invoke(app, ["appointments", "--date", "2026-01-19", "--config", str(config_path)])

    assert listed.exit_code == 0
    assert "New Customer" in listed.stdout
    assert "Dupont" not in listed.stdout


def test_remove_unknown(config_path):
    result = runner.invoke(app, ["remove", "missing", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "could not be found" in result.stdout


def test_missing_config(tmp_path):
    result = runner.invoke(app, ["slot", "--config", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.stdout


def _stored_names(config_path: Path) -> list:
    raw = json.loads((config_path.parent / "appointments.json").read_text(encoding="utf-8"))
    return [record["name"] for record in raw["appointments"]]


def test_add_unknown_address_is_not_saved(config_path):
    result = runner.invoke(
        app, ["add", "X", "Nowhere Lane 99", "--date", "2026-01-19", "--mock", "--config", str(config_path)]
    )

    assert result.exit_code == 1
    assert "Could not find address" in result.stdout
    assert "X" not in _stored_names(config_path)


@pytest.mark.parametrize(
    "name, address, message",
    [
        ("   ", "Union Station, Washington, DC", "Name is required"),
        ("New Customer", "  ", "Address is required"),
    ],
)
def test_add_requires_name_and_address(config_path, name, address, message):
    result = runner.invoke(app, ["add", name, address, "--mock", "--config", str(config_path)])

    assert result.exit_code == 1
    assert message in result.stdout
    assert _stored_names(config_path) == ["Capitol", "Dupont", "Bob's customer"]


@pytest.mark.parametrize("command", [["slot", "2026-01-19"], ["suggest", "Union Station, Washington, DC", "--mock"]])
@pytest.mark.parametrize("duration", ["0", "-15"])
def test_non_positive_duration_is_rejected(config_path, command, duration):
    result = runner.invoke(app, [*command, f"--duration={duration}", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Duration must be greater than zero" in result.stdout


def test_status_update(config_path):
    result = runner.invoke(app, ["status", "capitol", "completed", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "marked completed" in result.stdout

    listed = runner.invoke(app, ["appointments", "--date", "2026-01-19", "--config", str(config_path)])

    assert "completed" in listed.stdout


def test_status_rejects_unknown_value(config_path):
    result = runner.invoke(app, ["status", "capitol", "postponed", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Unknown status" in result.stdout


def test_status_unknown_appointment(config_path):
    result = runner.invoke(app, ["status", "missing", "cancelled", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "could not be found" in result.stdout
