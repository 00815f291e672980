"""
Time helpers: clock abstraction, RFC 3339 parsing, and epoch conversion.

The publish loop stamps every line-protocol message with the *encode-time*
wall clock. Asking a Clock object for "now" instead of calling
datetime.now() directly keeps the encoder deterministic under test: pass a
RealClock in production and a FrozenClock in tests.

Dataset timestamps are parsed with a strict RFC 3339 contract. The OPSD
`utc_timestamp` column always carries an explicit offset (normally "Z"), and
a value without one is treated as malformed rather than silently assumed to
be UTC.
"""

import re
from datetime import datetime, timezone
from typing import Protocol

import pandas as pd


# YYYY-MM-DDTHH:MM:SS[.fraction](Z|+HH:MM|-HH:MM)
RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)


class Clock(Protocol):
    """
    Abstract time source protocol.

    **Conceptual**: A Clock is any object that can answer the question "what
    time is it right now?". The line-protocol encoder needs the current
    instant for every message; depending on this protocol lets tests freeze
    that instant and assert on exact nanosecond timestamps.

    **Usage**:
        # In production:
        publish_records(records, sink, clock=RealClock())

        # In tests:
        publish_records(records, sink, clock=FrozenClock(datetime(2024, 1, 1, tzinfo=timezone.utc)))
    """

    def now(self) -> datetime:
        """
        Return the current time according to this clock.

        Returns:
            datetime object representing "now" (timezone-aware, UTC).
        """
        ...


class RealClock:
    """Clock that returns the actual current system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Clock that always returns a fixed timestamp.

    **Usage**:
        clock = FrozenClock(datetime(2019, 5, 1, 12, tzinfo=timezone.utc))
        clock.now()  # always 2019-05-01T12:00:00+00:00
    """

    def __init__(self, fixed_now: datetime):
        """
        Args:
            fixed_now: The datetime to return on every call to now().
                       Should be timezone-aware (UTC recommended).
        """
        self._fixed_now = fixed_now

    def now(self) -> datetime:
        return self._fixed_now


def parse_rfc3339(value: str) -> pd.Timestamp:
    """
    Parse an RFC 3339 timestamp string into a UTC pd.Timestamp.

    **Functionally**:
      - Rejects anything that is not shaped like RFC 3339 (date, 'T', time,
        optional fraction, mandatory offset).
      - Rejects shape-valid but impossible values (month 13, hour 25).
      - Converts any explicit offset to UTC.

    Args:
        value: Raw timestamp text, e.g. "2019-05-01T12:00:00Z".

    Returns:
        Timezone-aware pd.Timestamp in UTC.

    Raises:
        ValueError: If the value is not a valid RFC 3339 timestamp.

    Example:
        >>> parse_rfc3339("2019-05-01T14:00:00+02:00")
        Timestamp('2019-05-01 12:00:00+0000', tz='UTC')
    """
    if not isinstance(value, str) or not RFC3339_PATTERN.fullmatch(value):
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    try:
        ts = pd.Timestamp(value.upper())
    except (ValueError, OverflowError) as e:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r} ({e})") from e

    return ts.tz_convert("UTC")


def to_unix_nanos(instant: datetime) -> int:
    """
    Convert an instant to integer nanoseconds since the Unix epoch.

    Naive datetimes are interpreted as UTC.

    Example:
        >>> to_unix_nanos(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc))
        1000000000
    """
    ts = pd.Timestamp(instant)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.value)
