"""
Record extraction: one filtered row in, typed per-country Records out.

**Conceptual**: A single OPSD row holds the load figures of every country
side by side. The extractor walks the resolved columns of the row, strips
the "{country}_" prefix to recover the metric name, and accumulates the
values into Records.

**Grouping**: Writing every matching column of a row into ONE shared record
keeps only the country of the last matching column (carrying over fields
written by earlier countries). Existing consumers of the feed saw exactly
that, so RecordGrouping selects between it and one Record per country:

  - PER_COUNTRY (default): one Record per country present in the row.
  - LAST_WRITE: one Record per row, last matching column wins the country.

**Redundant cutoff guard**: The row has already passed filter_rows, but the
extractor re-parses the timestamp and checks it against its own cutoff. A
row that fails this guard yields no Records and no error.
"""

import math
import re
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from src.data.schemas import (
    DEFAULT_CUTOFF,
    InvalidNumberError,
    LOAD_ACTUAL_METRIC,
    LOAD_FORECAST_METRIC,
    Record,
    TIMESTAMP_COLUMN,
)
from src.transform.columns import timestamp_position
from src.transform.filters import parse_row_timestamp


class RecordGrouping(str, Enum):
    """How the columns of one row are grouped into Records."""

    PER_COUNTRY = "per_country"
    LAST_WRITE = "last_write"


# [+-]digits[.digits][e[+-]digits], or [+-].digits[...]
DECIMAL_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

# Metric name (header suffix) -> Record field
METRIC_FIELDS = {
    LOAD_ACTUAL_METRIC: "load_actual",
    LOAD_FORECAST_METRIC: "load_forecast",
}


def parse_load(value: str, row_index: int, column: str) -> float:
    """
    Parse one load cell. Empty cells are 0.0.

    Only plain decimal notation with an optional exponent is accepted;
    float() alone would also take padding, digit underscores, inf and nan.

    Raises:
        InvalidNumberError: If a non-empty cell is not a finite decimal number.
    """
    if value == "":
        return 0.0
    if not DECIMAL_PATTERN.fullmatch(value):
        raise InvalidNumberError(row_index, column, value)

    number = float(value)
    if math.isinf(number):
        raise InvalidNumberError(row_index, column, value)
    return number


def extract_records(
    row: Sequence[str],
    header: Sequence[str],
    column_index: Mapping[int, str],
    cutoff: pd.Timestamp = DEFAULT_CUTOFF,
    grouping: RecordGrouping = RecordGrouping.PER_COUNTRY,
    row_index: Optional[int] = None,
) -> List[Record]:
    """
    Build the Records of one row.

    **Functionally**:
      - Re-parses the utc_timestamp cell (same RFC 3339 contract as the filter).
      - Returns [] if that timestamp is not strictly after `cutoff`.
      - Sweeps the row's columns in file order; only positions present in
        `column_index` contribute. The metric is the header name with the
        "{country}_" prefix removed; unknown metrics are ignored.
      - Empty cells read as 0.0; other unparseable cells are fatal.

    Args:
        row: String cells aligned with `header`.
        header: Column names in file order.
        column_index: {position: country code} from resolve_columns.
        cutoff: Exclusive lower bound for the redundant guard.
        grouping: PER_COUNTRY or LAST_WRITE, see module docstring.
        row_index: Position of the row in the table body, for error messages.
                   Defaults to 0 when extracting a standalone row.

    Returns:
        Records in order of first column appearance (PER_COUNTRY), or a
        single Record (LAST_WRITE). Empty if no mapped column is present.

    Raises:
        MalformedHeaderError: If the header has no utc_timestamp column.
        InvalidTimestampError: If the timestamp cell is malformed.
        InvalidNumberError: If a mapped load cell is not a number.

    Example:
        >>> header = ["utc_timestamp", "DE_load_actual_entsoe_transparency"]
        >>> extract_records(["2019-05-01T12:00:00Z", "1000.0"], header, {1: "DE"})
        [Record(timestamp=Timestamp('2019-05-01 12:00:00+0000', tz='UTC'), country_code='DE', load_actual=1000.0, load_forecast=0.0)]
    """
    row_index = 0 if row_index is None else row_index
    timestamp = parse_row_timestamp(row, timestamp_position(header), row_index)

    if timestamp <= cutoff:
        return []

    grouping = RecordGrouping(grouping)
    if grouping is RecordGrouping.LAST_WRITE:
        return _extract_last_write(row, header, column_index, timestamp, row_index)
    return _extract_per_country(row, header, column_index, timestamp, row_index)


def _metric_of(column: str, country: str) -> str:
    return column[len(country) + 1:]


def _extract_per_country(row, header, column_index, timestamp, row_index) -> List[Record]:
    fields: Dict[str, Dict[str, float]] = {}

    for j, value in enumerate(row):
        country = column_index.get(j)
        if country is None or header[j] == TIMESTAMP_COLUMN:
            continue

        builder = fields.setdefault(country, {})
        field = METRIC_FIELDS.get(_metric_of(header[j], country))
        if field is not None:
            builder[field] = parse_load(value, row_index, header[j])

    return [
        Record(timestamp=timestamp, country_code=country, **values)
        for country, values in fields.items()
    ]


def _extract_last_write(row, header, column_index, timestamp, row_index) -> List[Record]:
    country_code = None
    values: Dict[str, float] = {}

    for j, value in enumerate(row):
        country = column_index.get(j)
        if country is None or header[j] == TIMESTAMP_COLUMN:
            continue

        # shared record: country and fields are overwritten, never reset
        country_code = country
        field = METRIC_FIELDS.get(_metric_of(header[j], country))
        if field is not None:
            values[field] = parse_load(value, row_index, header[j])

    if country_code is None:
        return []
    return [Record(timestamp=timestamp, country_code=country_code, **values)]
