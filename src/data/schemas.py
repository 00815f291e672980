"""
Data contracts for the OPSD time-series table and the per-country records.

**Conceptual**: The pipeline moves data through exactly two shapes:

  1. RawTable: the CSV as delivered, every cell still a string, aligned
     positionally with the header.
  2. Record: one typed, immutable load observation for one country at one
     instant.

Everything in between (column resolution, filtering, extraction) is a pure
function from one shape to the next. This module also defines the dataset
error taxonomy; every error here is fatal to a run and carries enough
context (row index, column name, raw value) to locate the bad cell in the
source file.
"""

from dataclasses import dataclass
from typing import Tuple

import pandas as pd


# Column carrying the measurement instant. The OPSD singleindex files always
# put it first.
TIMESTAMP_COLUMN = "utc_timestamp"

LOAD_ACTUAL_METRIC = "load_actual_entsoe_transparency"
LOAD_FORECAST_METRIC = "load_forecast_entsoe_transparency"

DEFAULT_COUNTRIES: Tuple[str, ...] = ("DE", "AT", "HU", "NL", "BE", "LU")
DEFAULT_METRICS: Tuple[str, ...] = (LOAD_ACTUAL_METRIC, LOAD_FORECAST_METRIC)

# Exclusive lower bound: records at exactly this instant are dropped.
DEFAULT_CUTOFF = pd.Timestamp("2018-01-01T00:00:00Z")


class DatasetError(Exception):
    """
    Base class for data-quality errors found while transforming the dataset.

    **Usage**: Callers that only need to distinguish "bad data" from "bad
    transport" catch DatasetError; nothing in the pipeline recovers from it.
    """
    pass


class MalformedHeaderError(DatasetError):
    """Raised when the header is empty or lacks the utc_timestamp column."""
    pass


class MalformedRowError(DatasetError):
    """Raised when a body row does not have the same cell count as the header."""

    def __init__(self, row_index: int, expected: int, actual: int):
        self.row_index = row_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Row {row_index}: expected {expected} cells, found {actual}"
        )


class InvalidTimestampError(DatasetError):
    """
    Raised when a utc_timestamp cell is not a valid RFC 3339 timestamp.

    Attributes:
        row_index: 0-based position of the row in the table body.
        raw_value: The offending cell text, unchanged.
    """

    def __init__(self, row_index: int, raw_value: str):
        self.row_index = row_index
        self.raw_value = raw_value
        super().__init__(
            f"Row {row_index}: invalid RFC 3339 timestamp {raw_value!r}"
        )


class InvalidNumberError(DatasetError):
    """
    Raised when a non-empty load cell cannot be parsed as a float.

    Attributes:
        row_index: 0-based position of the row in the table body.
        column: Header name of the offending column.
        raw_value: The offending cell text, unchanged.
    """

    def __init__(self, row_index: int, column: str, raw_value: str):
        self.row_index = row_index
        self.column = column
        self.raw_value = raw_value
        super().__init__(
            f"Row {row_index}, column {column!r}: invalid number {raw_value!r}"
        )


@dataclass(frozen=True)
class RawTable:
    """
    A CSV table as ordered string cells.

    Attributes:
        header: Column names in file order.
        rows: Body rows in file order; each row has len(header) cells.
    """
    header: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]

    def __post_init__(self):
        width = len(self.header)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise MalformedRowError(i, width, len(row))

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class Record:
    """
    One load observation for one country.

    **Invariants** (enforced by the extractor, not re-checked here):
      - timestamp is timezone-aware UTC and strictly after the cutoff.
      - country_code is one of the configured countries.
      - load fields are 0.0 when the source cell was empty.

    Attributes:
        timestamp: Measurement instant from the utc_timestamp column.
        country_code: Two-letter country code, e.g. "DE".
        load_actual: Actual total load in MW.
        load_forecast: Day-ahead load forecast in MW.
    """
    timestamp: pd.Timestamp
    country_code: str
    load_actual: float = 0.0
    load_forecast: float = 0.0
