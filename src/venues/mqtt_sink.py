"""
MQTT sink that publishes line-protocol messages with paho-mqtt.

**Conceptual**: The sink is the last collaborator in the pipeline. It owns
the broker connection and turns every publish into a blocking, acknowledged
call: publish() returns only once paho reports the message as sent (QoS 0)
or acknowledged (QoS 1/2). Anything else raises, which aborts the run.

**Threading**: paho runs its network loop in a background thread
(loop_start). The only state shared with that thread is the connect
result, handed over through a threading.Event.
"""

import threading
from typing import Optional

import paho.mqtt.client as mqtt

from src.config.settings import MqttSettings


class SinkError(Exception):
    """Base exception for MQTT sink errors."""
    pass


class SinkConnectError(SinkError):
    """Raised when the broker cannot be reached or refuses the connection."""
    pass


class PublishError(SinkError):
    """Raised when a message is rejected or not acknowledged in time."""
    pass


class MqttSink:
    """
    Blocking MQTT publisher.

    **Example usage**:
        >>> sink = MqttSink(MqttSettings(server="localhost:1883"))
        >>> sink.connect()
        >>> sink.publish("sensor", "sensor,country=DE load_actual=1.000000,load_forecast=2.000000 0")
        >>> sink.close()
    """

    def __init__(self, settings: MqttSettings):
        self.settings = settings
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self._connected = threading.Event()
        self._connect_reason: Optional[str] = None

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._connect_reason = str(reason_code)
        self._connected.set()

    def connect(self) -> None:
        """
        Connect to the broker and wait for CONNACK.

        Raises:
            SinkConnectError: If the TCP connection fails, the broker refuses
                              the connection, or no CONNACK arrives in time.
        """
        host, port = self.settings.host, self.settings.port
        try:
            rc = self.client.connect(host, port, keepalive=self.settings.keepalive_seconds)
        except OSError as e:
            raise SinkConnectError(f"Failed to connect to MQTT broker {host}:{port}: {e}") from e

        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise SinkConnectError(
                f"Failed to connect to MQTT broker {host}:{port}: {mqtt.error_string(rc)}"
            )

        self.client.loop_start()

        if not self._connected.wait(self.settings.ack_timeout_seconds):
            self.client.loop_stop()
            raise SinkConnectError(
                f"No CONNACK from MQTT broker {host}:{port} within "
                f"{self.settings.ack_timeout_seconds}s"
            )
        if self._connect_reason is not None:
            self.client.loop_stop()
            raise SinkConnectError(
                f"MQTT broker {host}:{port} refused the connection: {self._connect_reason}"
            )

    def publish(self, topic: str, payload: str) -> None:
        """
        Publish one message and block until paho confirms it.

        Raises:
            PublishError: If paho rejects the message or it is not
                          published within ack_timeout_seconds.
        """
        info = self.client.publish(topic, payload=payload, qos=self.settings.qos, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                f"Failed to publish to {topic!r}: {mqtt.error_string(info.rc)}"
            )

        try:
            info.wait_for_publish(timeout=self.settings.ack_timeout_seconds)
        except (RuntimeError, ValueError) as e:
            raise PublishError(f"Failed to publish to {topic!r}: {e}") from e

        if not info.is_published():
            raise PublishError(
                f"Message to {topic!r} not acknowledged within "
                f"{self.settings.ack_timeout_seconds}s"
            )

    def close(self) -> None:
        """Disconnect and stop the network loop."""
        self.client.disconnect()
        self.client.loop_stop()
