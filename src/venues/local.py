"""
Offline stand-ins for the dataset source and the MQTT sink.

LocalCsvSource reads a previously downloaded CSV from disk (the OPSD file is
large; re-downloading it for every run is slow). ConsoleSink prints every
message instead of publishing it, which is what --dry-run uses.
"""

import sys
from pathlib import Path
from typing import Optional, TextIO, Union

from src.venues.opsd_client import DownloadError


class LocalCsvSource:
    """DatasetSource backed by a file on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def download(self) -> bytes:
        """
        Raises:
            DownloadError: If the file cannot be read.
        """
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise DownloadError(f"Failed to read dataset file {self.path}: {e}") from e


class ConsoleSink:
    """MessageSink that writes "<topic> <payload>" lines to a stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def connect(self) -> None:
        pass

    def publish(self, topic: str, payload: str) -> None:
        print(f"{topic} {payload}", file=self.stream)

    def close(self) -> None:
        self.stream.flush()
