"""
Base abstractions for the pipeline's external collaborators.

**Conceptual**: The transform core never talks to the network. It receives
CSV bytes from a DatasetSource and hands line-protocol strings to a
MessageSink. Both are Protocols (structural typing), so tests can pass any
object with the right methods instead of patching HTTP or MQTT internals.

Implementations:
  - DatasetSource: OpsdClient (HTTP), LocalCsvSource (file on disk)
  - MessageSink: MqttSink (paho-mqtt), ConsoleSink (stdout, for dry runs)

**Sink lifecycle**: connect() once, publish() per message in order,
close() once. Every method raises on failure; there is no retry.
"""

from typing import Protocol


class DatasetSource(Protocol):
    """Anything that can produce the raw dataset CSV bytes."""

    def download(self) -> bytes:
        """
        Return the full CSV payload.

        Raises:
            DownloadError (or an implementation-specific error) on failure.
        """
        ...


class MessageSink(Protocol):
    """
    Anything that can deliver line-protocol messages to a topic.

    **Example**:
        >>> class RecordingSink:
        ...     def __init__(self):
        ...         self.messages = []
        ...     def connect(self): pass
        ...     def publish(self, topic, payload):
        ...         self.messages.append((topic, payload))
        ...     def close(self): pass
    """

    def connect(self) -> None:
        ...

    def publish(self, topic: str, payload: str) -> None:
        """Deliver one message; raise if delivery is not acknowledged."""
        ...

    def close(self) -> None:
        ...
