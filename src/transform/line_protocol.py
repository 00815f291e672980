"""
Line-protocol encoding of load Records.

**Message format** (one line, no trailing newline):

    sensor,country=DE load_actual=1000.000000,load_forecast=1100.000000 1556712000000000000

  - measurement: "sensor"
  - tag set: country=<country code>
  - field set: load_actual and load_forecast, "%f" formatted (6 decimals)
  - timestamp: Unix nanoseconds of the *encode-time* instant

**Why encode-time and not record.timestamp?** The downstream sink treats the
line-protocol timestamp as publish time; the measurement instant is not
carried in the message. Callers pass `now` explicitly (usually
clock.now()) so encoding stays a pure function.

parse_line is the inverse for the subset of line protocol produced here. It
exists for round-trip checks and dry-run tooling, not as a general parser
(no escaping, no string or integer field types).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from src.data.schemas import Record
from src.utils.time import to_unix_nanos


MEASUREMENT = "sensor"


@dataclass(frozen=True)
class LineProtocolPoint:
    """One decoded line-protocol message."""
    measurement: str
    tags: Dict[str, str]
    fields: Dict[str, float]
    timestamp_ns: int


def encode_record(record: Record, now: datetime) -> str:
    """
    Serialize one Record into a line-protocol message.

    Args:
        record: The Record to encode.
        now: Encode-time instant; becomes the message timestamp.

    Returns:
        The line-protocol message.

    Example:
        >>> rec = Record(pd.Timestamp("2019-05-01T12:00:00Z"), "DE", 1000.0, 1100.0)
        >>> encode_record(rec, datetime(2024, 1, 1, tzinfo=timezone.utc))
        'sensor,country=DE load_actual=1000.000000,load_forecast=1100.000000 1704067200000000000'
    """
    return (
        f"{MEASUREMENT},country={record.country_code} "
        f"load_actual={record.load_actual:f},"
        f"load_forecast={record.load_forecast:f} "
        f"{to_unix_nanos(now)}"
    )


def parse_line(message: str) -> LineProtocolPoint:
    """
    Parse a message produced by encode_record.

    Raises:
        ValueError: If the message does not have the
                    "<measurement>[,tags] <fields> <timestamp>" shape.
    """
    parts = message.strip().split(" ")
    if len(parts) != 3:
        raise ValueError(
            f"Expected 3 space-separated sections, got {len(parts)}: {message!r}"
        )
    series, field_set, timestamp = parts

    measurement, *tag_pairs = series.split(",")
    tags = dict(_split_pair(pair, message) for pair in tag_pairs)

    fields = {}
    for pair in field_set.split(","):
        key, value = _split_pair(pair, message)
        fields[key] = float(value)

    return LineProtocolPoint(
        measurement=measurement,
        tags=tags,
        fields=fields,
        timestamp_ns=int(timestamp),
    )


def _split_pair(pair: str, message: str):
    key, sep, value = pair.partition("=")
    if not sep or not key:
        raise ValueError(f"Malformed key=value pair {pair!r} in {message!r}")
    return key, value
