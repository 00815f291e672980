"""
Tests for src/transform/line_protocol.py.
"""

from datetime import datetime, timezone

import pandas as pd
import pytest

from src.data.schemas import Record
from src.transform.line_protocol import encode_record, parse_line


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW_NS = 1_704_067_200_000_000_000


def make_record(country="DE", actual=1000.0, forecast=1100.0):
    return Record(
        timestamp=pd.Timestamp("2019-05-01T12:00:00Z"),
        country_code=country,
        load_actual=actual,
        load_forecast=forecast,
    )


def test_encode_exact_message():
    message = encode_record(make_record(), NOW)

    assert message == (
        "sensor,country=DE load_actual=1000.000000,load_forecast=1100.000000 "
        f"{NOW_NS}"
    )


def test_encode_uses_six_fractional_digits():
    message = encode_record(make_record(actual=0.1234567, forecast=0.0), NOW)

    assert "load_actual=0.123457," in message
    assert "load_forecast=0.000000 " in message


def test_encode_timestamp_is_encode_time_not_record_time():
    record = make_record()

    first = encode_record(record, NOW)
    second = encode_record(record, datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc))

    assert first.rsplit(" ", 1)[1] == str(NOW_NS)
    assert second.rsplit(" ", 1)[1] == str(NOW_NS + 1_000_000_000)
    assert str(record.timestamp.value) not in first


def test_encode_negative_values():
    message = encode_record(make_record(actual=-5.5), NOW)

    assert "load_actual=-5.500000," in message


@pytest.mark.parametrize(
    "country, actual, forecast",
    [("DE", 1000.0, 1100.0), ("LU", 0.0, 0.0), ("HU", 4321.125, 4400.5), ("BE", 9876.5, 0.25)],
)
def test_round_trip_recovers_country_and_loads(country, actual, forecast):
    point = parse_line(encode_record(make_record(country, actual, forecast), NOW))

    assert point.measurement == "sensor"
    assert point.tags == {"country": country}
    assert point.fields["load_actual"] == pytest.approx(actual, abs=1e-6)
    assert point.fields["load_forecast"] == pytest.approx(forecast, abs=1e-6)
    assert point.timestamp_ns == NOW_NS


@pytest.mark.parametrize(
    "message",
    [
        "sensor,country=DE",
        "sensor,country=DE load_actual=1.0",
        "sensor,country load_actual=1.0 0",
        "sensor,country=DE load_actual 0",
    ],
)
def test_parse_line_rejects_malformed(message):
    with pytest.raises(ValueError):
        parse_line(message)
