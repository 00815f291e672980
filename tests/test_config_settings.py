"""
Tests for src/config/settings.py.

Environment variables are set with pytest's monkeypatch so nothing leaks
between tests; the settings singleton is reset around each test.
"""

import pandas as pd
import pytest

from src.config.settings import (
    DEFAULT_DATASET_URL,
    DatasetSettings,
    MqttSettings,
    PipelineConfig,
    get_settings,
    reset_settings,
)
from src.data.schemas import DEFAULT_COUNTRIES, DEFAULT_METRICS
from src.transform.extractor import RecordGrouping


ENV_VARS = [
    "OPSD_DATASET_URL",
    "OPSD_TIMEOUT_SECONDS",
    "MQTT_SERVER",
    "MQTT_TOPIC",
    "MQTT_QOS",
    "MQTT_CLIENT_ID",
    "MQTT_PUBLISH_DELAY_SECONDS",
    "MQTT_ACK_TIMEOUT_SECONDS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_defaults_from_empty_environment():
    settings = get_settings()

    assert settings.dataset.url == DEFAULT_DATASET_URL
    assert settings.mqtt.server == "0.0.0.0:1883"
    assert settings.mqtt.topic == "sensor"
    assert settings.mqtt.qos == 0
    assert settings.mqtt.publish_delay_seconds == 1.0
    assert settings.pipeline.countries == DEFAULT_COUNTRIES
    assert settings.pipeline.metrics == DEFAULT_METRICS
    assert settings.pipeline.cutoff == pd.Timestamp("2018-01-01T00:00:00Z")
    assert settings.pipeline.grouping is RecordGrouping.PER_COUNTRY


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPSD_DATASET_URL", "https://mirror.test/opsd.csv")
    monkeypatch.setenv("MQTT_SERVER", "broker.local:8883")
    monkeypatch.setenv("MQTT_QOS", "1")
    monkeypatch.setenv("MQTT_PUBLISH_DELAY_SECONDS", "0.25")

    settings = get_settings()

    assert settings.dataset.url == "https://mirror.test/opsd.csv"
    assert settings.mqtt.host == "broker.local"
    assert settings.mqtt.port == 8883
    assert settings.mqtt.qos == 1
    assert settings.mqtt.publish_delay_seconds == 0.25


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("MQTT_TOPIC", "other")

    assert get_settings() is first

    reset_settings()
    assert get_settings().mqtt.topic == "other"


def test_non_numeric_env_raises(monkeypatch):
    monkeypatch.setenv("MQTT_QOS", "high")

    with pytest.raises(ValueError, match="MQTT_QOS"):
        MqttSettings.from_env()


@pytest.mark.parametrize(
    "server, host, port",
    [
        ("0.0.0.0:1883", "0.0.0.0", 1883),
        ("tcp://broker.local:1884", "broker.local", 1884),
        ("[::1]:1883", "[::1]", 1883),
    ],
)
def test_mqtt_server_parsing(server, host, port):
    settings = MqttSettings(server=server)

    assert settings.host == host
    assert settings.port == port


@pytest.mark.parametrize("server", ["localhost", ":1883", "localhost:port", "localhost:70000"])
def test_mqtt_server_invalid(server):
    with pytest.raises(ValueError):
        MqttSettings(server=server)


@pytest.mark.parametrize(
    "kwargs",
    [{"qos": 3}, {"topic": ""}, {"publish_delay_seconds": -1}, {"ack_timeout_seconds": 0}],
)
def test_mqtt_settings_validation(kwargs):
    with pytest.raises(ValueError):
        MqttSettings(**kwargs)


def test_dataset_settings_validation():
    with pytest.raises(ValueError):
        DatasetSettings(url="")
    with pytest.raises(ValueError):
        DatasetSettings(timeout_seconds=0)


def test_pipeline_config_coerces_grouping_string():
    config = PipelineConfig(grouping="last_write")

    assert config.grouping is RecordGrouping.LAST_WRITE


def test_pipeline_config_guard_defaults_to_cutoff():
    config = PipelineConfig(cutoff=pd.Timestamp("2020-01-01T00:00:00Z"))

    assert config.effective_guard_cutoff == pd.Timestamp("2020-01-01T00:00:00Z")


def test_pipeline_config_rejects_naive_cutoff():
    with pytest.raises(ValueError):
        PipelineConfig(cutoff=pd.Timestamp("2020-01-01"))


def test_pipeline_config_rejects_unknown_grouping():
    with pytest.raises(ValueError):
        PipelineConfig(grouping="per_row")
