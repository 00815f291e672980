"""
Column resolution: which header positions belong to which country.

**Conceptual**: The OPSD singleindex CSV has hundreds of columns named
"{COUNTRY}_{metric}", e.g. "DE_load_actual_entsoe_transparency". We only
care about a fixed whitelist of countries and metrics, so the header is
scanned once and reduced to a {position: country_code} mapping. Every later
stage works from that mapping and never re-inspects unrelated columns.
"""

from typing import Dict, Iterable, Sequence

from src.data.schemas import MalformedHeaderError, TIMESTAMP_COLUMN


def timestamp_position(header: Sequence[str]) -> int:
    """
    Return the position of the utc_timestamp column.

    Raises:
        MalformedHeaderError: If the header is empty or has no utc_timestamp column.
    """
    if len(header) == 0:
        raise MalformedHeaderError("CSV header is empty")

    try:
        return list(header).index(TIMESTAMP_COLUMN)
    except ValueError:
        raise MalformedHeaderError(
            f"CSV header is missing the '{TIMESTAMP_COLUMN}' column. "
            f"First columns: {list(header)[:5]}"
        ) from None


def resolve_columns(
    header: Sequence[str],
    countries: Iterable[str],
    metrics: Iterable[str],
) -> Dict[int, str]:
    """
    Map header positions to country codes.

    **Functionally**:
      - Country is the outer loop (configured order), header position the
        inner loop, metric the innermost loop.
      - A position is owned by the first country whose "{country}_{metric}"
        prefix matches it; later matches never overwrite.
      - The timestamp column is never part of the mapping.
      - Columns matching no configured prefix are simply absent.

    Args:
        header: Column names in file order.
        countries: Country codes to look for, e.g. ("DE", "AT").
        metrics: Metric names to look for, e.g. ("load_actual_entsoe_transparency",).

    Returns:
        Dict of {column position: country code}.

    Raises:
        MalformedHeaderError: If the header is empty or has no utc_timestamp column.

    Example:
        >>> resolve_columns(
        ...     ["utc_timestamp", "DE_load_actual_entsoe_transparency", "DE_solar_capacity"],
        ...     countries=["DE"],
        ...     metrics=["load_actual_entsoe_transparency"],
        ... )
        {1: 'DE'}
    """
    ts_pos = timestamp_position(header)
    metrics = tuple(metrics)

    index: Dict[int, str] = {}
    for country in countries:
        prefixes = tuple(f"{country}_{metric}" for metric in metrics)
        for j, column in enumerate(header):
            if j == ts_pos or j in index:
                continue
            for prefix in prefixes:
                if column.startswith(prefix):
                    index[j] = country
                    break

    return index
