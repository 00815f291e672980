"""
Configuration settings for the load publisher.

**Conceptual**: This module provides strongly-typed, immutable configuration
objects. Transport settings (dataset URL, MQTT broker) load from environment
variables (via .env files); transform settings (country whitelist, metric
names, cutoff) are constants bundled into a PipelineConfig that is passed
explicitly to the pipeline entry point. Nothing reads global mutable state.

All settings are validated at construction, so a bad MQTT_QOS or a
malformed broker address fails at startup rather than after a multi-minute
dataset download.

This module uses python-dotenv to load .env files and dataclasses for type safety.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd
from dotenv import load_dotenv

from src.data.schemas import DEFAULT_COUNTRIES, DEFAULT_CUTOFF, DEFAULT_METRICS
from src.transform.extractor import RecordGrouping

# Load .env from project root (no-op if the file does not exist)
load_dotenv(dotenv_path=Path(__file__).parent.parent.parent / ".env")


DEFAULT_DATASET_URL = (
    "https://data.open-power-system-data.org/time_series/latest/"
    "time_series_15min_singleindex.csv"
)
DEFAULT_MQTT_SERVER = "0.0.0.0:1883"
DEFAULT_TOPIC = "sensor"


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw}")


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")


@dataclass(frozen=True)
class DatasetSettings:
    """
    Configuration for the OPSD dataset download.

    **Conceptual**: The 15-minute singleindex file is several hundred MB, so
    the default timeout is generous. The URL is overridable to point at a
    mirror or at a pinned release instead of "latest".

    Attributes:
        url: Dataset CSV URL.
        timeout_seconds: HTTP request timeout in seconds (default 300).
    """
    url: str = DEFAULT_DATASET_URL
    timeout_seconds: int = 300

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.url:
            raise ValueError(
                "OPSD_DATASET_URL is empty. Unset it to use the default dataset URL."
            )
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got: {self.timeout_seconds}"
            )

    @classmethod
    def from_env(cls) -> "DatasetSettings":
        """
        Load dataset settings from environment variables.

        **Environment variables**:
          - OPSD_DATASET_URL (optional): Defaults to the OPSD "latest" 15min file.
          - OPSD_TIMEOUT_SECONDS (optional): Defaults to 300.
        """
        return cls(
            url=os.getenv("OPSD_DATASET_URL", DEFAULT_DATASET_URL),
            timeout_seconds=_env_int("OPSD_TIMEOUT_SECONDS", "300"),
        )


@dataclass(frozen=True)
class MqttSettings:
    """
    Configuration for the MQTT sink.

    **Conceptual**: The broker address is a single "host:port" string (a
    "tcp://" prefix is accepted and ignored), matching the --mqtt-server flag
    of the CLI.

    **Rate limiting**: publish_delay_seconds is the pause between two
    consecutive messages. It protects the sink, not correctness; tests set it
    to 0.

    Attributes:
        server: Broker address, "host:port" (default "0.0.0.0:1883").
        topic: Topic every message is published to (default "sensor").
        qos: MQTT QoS level, 0-2 (default 0).
        client_id: MQTT client id; empty lets the client library pick one.
        publish_delay_seconds: Pause between messages (default 1.0).
        ack_timeout_seconds: How long to wait for a publish to complete.
        keepalive_seconds: MQTT keepalive interval.
    """
    server: str = DEFAULT_MQTT_SERVER
    topic: str = DEFAULT_TOPIC
    qos: int = 0
    client_id: str = ""
    publish_delay_seconds: float = 1.0
    ack_timeout_seconds: float = 10.0
    keepalive_seconds: int = 60

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.topic:
            raise ValueError("MQTT topic must not be empty")
        if self.qos not in (0, 1, 2):
            raise ValueError(f"MQTT QoS must be 0, 1 or 2, got: {self.qos}")
        if self.publish_delay_seconds < 0:
            raise ValueError(
                f"publish_delay_seconds must be non-negative, got: {self.publish_delay_seconds}"
            )
        if self.ack_timeout_seconds <= 0:
            raise ValueError(
                f"ack_timeout_seconds must be positive, got: {self.ack_timeout_seconds}"
            )
        _split_server(self.server)

    @property
    def host(self) -> str:
        return _split_server(self.server)[0]

    @property
    def port(self) -> int:
        return _split_server(self.server)[1]

    @classmethod
    def from_env(cls) -> "MqttSettings":
        """
        Load MQTT settings from environment variables.

        **Environment variables**:
          - MQTT_SERVER (optional): "host:port", defaults to "0.0.0.0:1883".
          - MQTT_TOPIC (optional): defaults to "sensor".
          - MQTT_QOS (optional): defaults to 0.
          - MQTT_CLIENT_ID (optional): defaults to "" (library-generated id).
          - MQTT_PUBLISH_DELAY_SECONDS (optional): defaults to 1.0.
          - MQTT_ACK_TIMEOUT_SECONDS (optional): defaults to 10.

        Raises:
            ValueError: If a numeric variable does not parse, or validation fails.
        """
        return cls(
            server=os.getenv("MQTT_SERVER", DEFAULT_MQTT_SERVER),
            topic=os.getenv("MQTT_TOPIC", DEFAULT_TOPIC),
            qos=_env_int("MQTT_QOS", "0"),
            client_id=os.getenv("MQTT_CLIENT_ID", ""),
            publish_delay_seconds=_env_float("MQTT_PUBLISH_DELAY_SECONDS", "1.0"),
            ack_timeout_seconds=_env_float("MQTT_ACK_TIMEOUT_SECONDS", "10"),
        )


def _split_server(server: str) -> Tuple[str, int]:
    """
    Split "host:port" (optionally "tcp://host:port") into its parts.

    Raises:
        ValueError: If the port is missing or not an integer in 1-65535.
    """
    address = server[len("tcp://"):] if server.startswith("tcp://") else server
    host, sep, port_str = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"MQTT server must be 'host:port', got: {server!r}")
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"MQTT server port must be an integer, got: {server!r}")
    if not 0 < port < 65536:
        raise ValueError(f"MQTT server port out of range, got: {server!r}")
    return host, port


@dataclass(frozen=True)
class PipelineConfig:
    """
    Transform configuration threaded through parse_dataset.

    **Conceptual**: These values are fixed by the dataset's naming convention
    and are not read from the environment. Tests build their own
    PipelineConfig to exercise narrower whitelists or a different cutoff.

    Attributes:
        countries: Country codes to extract, in resolution order.
        metrics: Metric names (header suffixes) to resolve.
        cutoff: Exclusive lower bound applied by the row filter.
        guard_cutoff: Exclusive lower bound of the extractor's redundant
                      check. None means "same as cutoff".
        grouping: How the columns of a row become Records.
    """
    countries: Tuple[str, ...] = DEFAULT_COUNTRIES
    metrics: Tuple[str, ...] = DEFAULT_METRICS
    cutoff: pd.Timestamp = DEFAULT_CUTOFF
    guard_cutoff: Optional[pd.Timestamp] = None
    grouping: RecordGrouping = RecordGrouping.PER_COUNTRY

    def __post_init__(self):
        if not self.countries:
            raise ValueError("PipelineConfig.countries must not be empty")
        if not self.metrics:
            raise ValueError("PipelineConfig.metrics must not be empty")
        if self.cutoff.tzinfo is None:
            raise ValueError("PipelineConfig.cutoff must be timezone-aware")
        # Coerce plain strings ("last_write") coming from the CLI
        object.__setattr__(self, "grouping", RecordGrouping(self.grouping))

    @property
    def effective_guard_cutoff(self) -> pd.Timestamp:
        return self.cutoff if self.guard_cutoff is None else self.guard_cutoff


@dataclass(frozen=True)
class Settings:
    """
    Top-level settings aggregating the dataset and MQTT subsystems.

    **Usage pattern**:
      ```python
      from src.config.settings import get_settings

      settings = get_settings()
      settings.mqtt.server      # "0.0.0.0:1883"
      settings.dataset.url      # OPSD "latest" URL
      ```
    """
    dataset: DatasetSettings = field(default_factory=DatasetSettings)
    mqtt: MqttSettings = field(default_factory=MqttSettings)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            dataset=DatasetSettings.from_env(),
            mqtt=MqttSettings.from_env(),
            pipeline=PipelineConfig(),
        )


_default_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings singleton, loading it from the environment on
    first call.

    Tests should build Settings(...) directly or call reset_settings() after
    changing environment variables.
    """
    global _default_settings

    if _default_settings is None:
        _default_settings = Settings.from_env()

    return _default_settings


def reset_settings():
    """Reset the global settings singleton (for testing)."""
    global _default_settings
    _default_settings = None
