"""
Cutoff filtering of body rows by their utc_timestamp cell.
"""

from typing import List, Sequence

import pandas as pd

from src.data.schemas import InvalidTimestampError
from src.utils.time import parse_rfc3339


def parse_row_timestamp(row: Sequence[str], timestamp_col: int, row_index: int) -> pd.Timestamp:
    """
    Parse the timestamp cell of one row.

    Raises:
        InvalidTimestampError: If the cell is not a valid RFC 3339 timestamp.
    """
    raw_value = row[timestamp_col]
    try:
        return parse_rfc3339(raw_value)
    except ValueError:
        raise InvalidTimestampError(row_index, raw_value) from None


def filter_rows(
    rows: Sequence[Sequence[str]],
    timestamp_col: int,
    cutoff: pd.Timestamp,
) -> List[Sequence[str]]:
    """
    Keep rows whose timestamp is strictly after the cutoff.

    **Functionally**:
      - The boundary is exclusive: a row stamped exactly at `cutoff` is dropped.
      - Order is preserved; nothing is deduplicated.
      - The first malformed timestamp aborts the whole filter. There is no
        skip-and-continue: a half-parsed dataset is never published.

    Args:
        rows: Table body, each row a sequence of string cells.
        timestamp_col: Position of the utc_timestamp column.
        cutoff: Timezone-aware exclusive lower bound.

    Returns:
        The surviving rows, in input order.

    Raises:
        InvalidTimestampError: On the first malformed timestamp cell.

    Example:
        >>> rows = [["2018-01-01T00:00:00Z"], ["2018-01-01T00:00:01Z"]]
        >>> filter_rows(rows, 0, pd.Timestamp("2018-01-01T00:00:00Z"))
        [['2018-01-01T00:00:01Z']]
    """
    return [rows[i] for i in filter_row_positions(rows, timestamp_col, cutoff)]


def filter_row_positions(
    rows: Sequence[Sequence[str]],
    timestamp_col: int,
    cutoff: pd.Timestamp,
) -> List[int]:
    """
    Same contract as filter_rows, but return the 0-based positions of the
    surviving rows so later stages can report errors against the source file.
    """
    kept = []
    for i, row in enumerate(rows):
        if parse_row_timestamp(row, timestamp_col, i) > cutoff:
            kept.append(i)
    return kept
