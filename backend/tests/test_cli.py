"""Tests for the vtms CLI commands."""
import json

from typer.testing import CliRunner

from vtms.cli import _parse_duration, app

runner = CliRunner()

_TRACK = (
    "mmsi,timestamp,lat,lon,sog,cog,heading\n"
    "1,2026-03-01T12:00:00Z,55.0,20.0,10,90,90\n"
    "2,2026-03-01T12:00:00Z,55.0,20.0139,10,270,270\n"
    "1,2026-03-01T12:00:30Z,55.0,20.0014,10,90,90\n"
    "2,2026-03-01T12:00:30Z,55.0,20.0125,10,270,270\n"
)


def test_config_lists_thresholds():
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "SAFETY_ZONE_RADIUS_NM" in result.output


def test_replay_prints_tables(tmp_path):
    path = tmp_path / "track.csv"
    path.write_text(_TRACK)

    result = runner.invoke(app, ["replay", str(path)])

    assert result.exit_code == 0, result.output
    assert "Replayed" in result.output
    assert "collision" in result.output.lower()


def test_replay_json_output(tmp_path):
    path = tmp_path / "track.csv"
    path.write_text(_TRACK)

    result = runner.invoke(app, ["--log-level", "WARNING", "replay", str(path), "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert set(payload) == {"collision_alerts", "activities", "rendezvous", "loitering", "vessels", "last_tick"}
    assert len(payload["collision_alerts"]) == 1
    assert payload["collision_alerts"][0]["vessels"] == ["1", "2"]
    assert payload["activities"][0]["evidence"]["kind"] == "collision_risk"
    assert {v["vessel_id"] for v in payload["vessels"]} == {"1", "2"}
    assert payload["last_tick"]["processed_vessels"] == 2


def test_replay_rejects_csv_without_required_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("mmsi,lat,lon\n1,55,20\n")

    result = runner.invoke(app, ["replay", str(path)])

    assert result.exit_code == 1
    assert "timestamp" in result.output


def test_simulate_runs_ticks():
    result = runner.invoke(app, ["simulate", "--ticks", "3", "--vessels", "20", "--seed", "1"])
    assert result.exit_code == 0, result.output
    assert "Simulated" in result.output


def test_parse_duration():
    assert _parse_duration("30s") == 30
    assert _parse_duration("5m") == 300
    assert _parse_duration("1h") == 3600
    assert _parse_duration("45") == 45
