"""
Tests for the publish_load_records action script.

**Purpose**: Verify flag handling, dry-run output and exit codes without a
broker or network: --csv-path feeds a local file, --dry-run swaps in the
console sink, and MqttSink is patched where a real sink would be built.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add project root to path so we can import actions module
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from actions.publish_load_records import build_settings, main, parse_args
from src.config.settings import Settings
from src.transform.extractor import RecordGrouping
from src.venues.mqtt_sink import SinkConnectError


CSV = (
    "utc_timestamp,DE_load_actual_entsoe_transparency,DE_load_forecast_entsoe_transparency\n"
    "2017-12-31T23:45:00Z,1.0,2.0\n"
    "2019-05-01T12:00:00Z,1000.0,1100.0\n"
    "2019-05-01T12:15:00Z,1001.0,\n"
)


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "opsd.csv"
    path.write_text(CSV)
    return path


def test_parse_args_defaults():
    args = parse_args([])

    assert args.mqtt_server is None
    assert args.csv_path is None
    assert args.grouping == "per_country"
    assert args.limit is None
    assert args.dry_run is False


def test_parse_args_rejects_negative_limit():
    with pytest.raises(SystemExit):
        parse_args(["--limit", "-1"])


def test_build_settings_applies_overrides():
    args = parse_args([
        "--mqtt-server", "broker.local:1884",
        "--topic", "loads",
        "--delay", "0.5",
        "--dataset-url", "https://mirror.test/opsd.csv",
        "--grouping", "last_write",
    ])

    settings = build_settings(args, Settings())

    assert settings.mqtt.host == "broker.local"
    assert settings.mqtt.port == 1884
    assert settings.mqtt.topic == "loads"
    assert settings.mqtt.publish_delay_seconds == 0.5
    assert settings.dataset.url == "https://mirror.test/opsd.csv"
    assert settings.pipeline.grouping is RecordGrouping.LAST_WRITE


def test_build_settings_keeps_environment_values_when_flags_absent():
    base = Settings()

    settings = build_settings(parse_args([]), base)

    assert settings.mqtt == base.mqtt
    assert settings.dataset == base.dataset


def test_dry_run_prints_messages(csv_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(csv_path), "--dry-run"])

    assert exc_info.value.code == 0
    out = capsys.readouterr().out.splitlines()
    messages = [line for line in out if line.startswith("sensor sensor,")]
    assert len(messages) == 2
    assert messages[0].startswith(
        "sensor sensor,country=DE load_actual=1000.000000,load_forecast=1100.000000 "
    )
    assert "load_actual=1001.000000,load_forecast=0.000000 " in messages[1]


def test_dry_run_limit(csv_path, capsys):
    with pytest.raises(SystemExit):
        main(["--csv-path", str(csv_path), "--dry-run", "--limit", "1"])

    out = capsys.readouterr().out
    assert out.count("sensor sensor,") == 1


def test_invalid_dataset_exits_1(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("utc_timestamp,DE_load_actual_entsoe_transparency\nnot-a-date,1.0\n")

    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(path), "--dry-run"])

    assert exc_info.value.code == 1
    assert "not-a-date" in capsys.readouterr().err


def test_missing_file_exits_2(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(tmp_path / "missing.csv"), "--dry-run"])

    assert exc_info.value.code == 2


def test_invalid_server_flag_exits_1(csv_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(csv_path), "--mqtt-server", "no-port"])

    assert exc_info.value.code == 1


@patch("actions.publish_load_records.MqttSink")
def test_broker_unreachable_exits_2(mock_sink_cls, csv_path, capsys):
    mock_sink_cls.return_value.connect.side_effect = SinkConnectError("connection refused")

    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(csv_path), "--delay", "0"])

    assert exc_info.value.code == 2
    assert "connection refused" in capsys.readouterr().err
    mock_sink_cls.return_value.publish.assert_not_called()


@patch("actions.publish_load_records.MqttSink")
def test_publishes_through_mqtt_sink(mock_sink_cls, csv_path, capsys):
    sink = mock_sink_cls.return_value

    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(csv_path), "--delay", "0", "--topic", "loads"])

    assert exc_info.value.code == 0
    assert sink.publish.call_count == 2
    assert sink.publish.call_args_list[0].args[0] == "loads"
    sink.close.assert_called_once()
    out = capsys.readouterr().out
    assert "Published 2/2 records" in out


def test_non_utf8_dataset_exits_1(tmp_path, capsys):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"utc_timestamp,DE_load_actual_entsoe_transparency\n2019-05-01T12:00:00Z,\xff\n")

    with pytest.raises(SystemExit) as exc_info:
        main(["--csv-path", str(path), "--dry-run"])

    assert exc_info.value.code == 1
    assert capsys.readouterr().err.startswith("Error: ")
