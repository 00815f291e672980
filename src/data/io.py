"""
CSV reader for the OPSD time-series payload.

**Conceptual**: This module is the only place where CSV bytes become a
RawTable. It deliberately does *no* type conversion: every cell is read as a
string and empty cells stay empty strings. Timestamp and number parsing
belong to the transform stage, which has the row/column context needed for
precise error messages.

**Rule**: Never call pd.read_csv directly in orchestration or transform
code. Always go through read_raw_table so that ragged rows and empty
payloads are reported with the dataset error taxonomy.
"""

import csv
import io
from pathlib import Path
from typing import Union

import pandas as pd

from src.data.schemas import (
    DatasetError,
    MalformedHeaderError,
    MalformedRowError,
    RawTable,
)


CsvSource = Union[bytes, str, Path]


def read_raw_table(source: CsvSource) -> RawTable:
    """
    Read a CSV payload into a RawTable of string cells.

    **Functionally**:
      - bytes are parsed in memory; str/Path are treated as file paths.
      - The payload must be UTF-8 (a leading BOM is dropped).
      - Every body row must have exactly as many cells as the header. The
        width check runs on the tokenized records before pandas sees them,
        since read_csv silently pads short rows and truncates long ones.
      - dtype=str and keep_default_na=False keep "" as "" (not NaN), so the
        extractor can apply its "empty means 0.0" rule.

    Args:
        source: Raw CSV bytes (as downloaded) or a path to a local CSV file.

    Returns:
        RawTable with header and rows in file order.

    Raises:
        MalformedHeaderError: If the payload is empty (no header row).
        MalformedRowError: If a body row has more or fewer cells than the header.
        DatasetError: If the payload is not UTF-8 or cannot be tokenized.
        FileNotFoundError: If a path source does not exist.

    Example:
        >>> table = read_raw_table(b"utc_timestamp,DE_load_actual_entsoe_transparency\\n"
        ...                        b"2019-05-01T12:00:00Z,1000.0\\n")
        >>> table.header
        ('utc_timestamp', 'DE_load_actual_entsoe_transparency')
    """
    payload = source if isinstance(source, bytes) else Path(source).read_bytes()

    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DatasetError(f"CSV payload is not valid UTF-8: {e}") from e

    check_row_widths(text)

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
    except pd.errors.EmptyDataError as e:
        raise MalformedHeaderError(f"CSV payload has no header row: {e}") from e
    except pd.errors.ParserError as e:
        raise DatasetError(f"Failed to parse CSV payload: {e}") from e

    return frame_to_raw_table(df)


def check_row_widths(text: str) -> None:
    """
    Reject the first body row whose cell count differs from the header's.

    Blank lines are skipped, as read_csv skips them, so row indices line up
    with the DataFrame positions.

    Raises:
        MalformedRowError: On the first ragged row.
        DatasetError: If the text cannot be tokenized as CSV.
    """
    records = (fields for fields in csv.reader(io.StringIO(text)) if fields)
    try:
        header = next(records, None)
        if header is None:
            return
        for row_index, fields in enumerate(records):
            if len(fields) != len(header):
                raise MalformedRowError(row_index, len(header), len(fields))
    except csv.Error as e:
        raise DatasetError(f"Failed to parse CSV payload: {e}") from e


def frame_to_raw_table(df: pd.DataFrame) -> RawTable:
    """
    Convert a string-typed DataFrame into a RawTable.

    Raises:
        MalformedRowError: If any row contains missing (NaN) cells.
    """
    header = tuple(str(col) for col in df.columns)

    missing = df.isna()
    if missing.to_numpy().any():
        row_index = int(missing.any(axis=1).to_numpy().nonzero()[0][0])
        present = int(df.iloc[row_index].notna().sum())
        raise MalformedRowError(row_index, len(header), present)

    rows = tuple(df.itertuples(index=False, name=None))
    return RawTable(header=header, rows=rows)
