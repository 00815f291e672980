"""
End-to-end pipeline: download -> parse -> publish.

**Conceptual**: This module composes the pure transform stages with the I/O
collaborators. The run is a batch with a strict fail-fast contract:

  1. The whole dataset is parsed into Records BEFORE the sink is even
     connected. A malformed timestamp or number anywhere in the file aborts
     the run with zero messages published.
  2. Records are encoded one at a time, right before they are published, so
     each message carries its own publish-time timestamp.
  3. The first publish error aborts the run. Messages already published stay
     published; there is no rollback and no resume.

**Pacing**: publish_records waits `delay_seconds` between consecutive
messages. The sleep function is injectable so tests run instantly.
"""

import time
from typing import Callable, List, Optional, Sequence

from src.config.settings import DEFAULT_TOPIC, PipelineConfig
from src.data.io import read_raw_table
from src.data.schemas import RawTable, Record
from src.transform.columns import resolve_columns, timestamp_position
from src.transform.extractor import extract_records
from src.transform.filters import filter_row_positions
from src.transform.line_protocol import encode_record
from src.utils.time import Clock, RealClock
from src.venues.base import DatasetSource, MessageSink


ProgressCallback = Callable[[int, int, str], None]


def transform_table(table: RawTable, config: PipelineConfig) -> List[Record]:
    """
    Turn a RawTable into the ordered list of Records.

    **Functionally**:
      - Resolves the header once (fails on an empty header or a missing
        utc_timestamp column).
      - Filters body rows against config.cutoff (fails on the first
        malformed timestamp).
      - Extracts Records from every surviving row, in row order, with the
        extractor's own guard cutoff and the configured grouping.

    Raises:
        MalformedHeaderError, InvalidTimestampError, InvalidNumberError
    """
    header = table.header
    column_index = resolve_columns(header, config.countries, config.metrics)
    ts_col = timestamp_position(header)

    records: List[Record] = []
    for i in filter_row_positions(table.rows, ts_col, config.cutoff):
        records.extend(
            extract_records(
                table.rows[i],
                header,
                column_index,
                cutoff=config.effective_guard_cutoff,
                grouping=config.grouping,
                row_index=i,
            )
        )
    return records


def parse_dataset(payload, config: Optional[PipelineConfig] = None) -> List[Record]:
    """
    Parse raw CSV bytes (or a CSV path) into Records.

    Args:
        payload: CSV bytes as downloaded, or a path to a local CSV file.
        config: Transform configuration; defaults to PipelineConfig().

    Returns:
        Records in dataset order.

    Raises:
        DatasetError: Any data-quality problem (see src.data.schemas).

    Example:
        >>> parse_dataset(
        ...     b"utc_timestamp,DE_load_actual_entsoe_transparency,DE_load_forecast_entsoe_transparency\\n"
        ...     b"2019-05-01T12:00:00Z,1000.0,1100.0\\n"
        ... )
        [Record(timestamp=Timestamp('2019-05-01 12:00:00+0000', tz='UTC'), country_code='DE', load_actual=1000.0, load_forecast=1100.0)]
    """
    config = config if config is not None else PipelineConfig()
    return transform_table(read_raw_table(payload), config)


def publish_records(
    records: Sequence[Record],
    sink: MessageSink,
    topic: str = DEFAULT_TOPIC,
    clock: Optional[Clock] = None,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    on_published: Optional[ProgressCallback] = None,
) -> int:
    """
    Encode and publish Records one at a time, in order.

    **Functionally**:
      - Each Record is encoded with clock.now() immediately before publishing.
      - `sleep(delay_seconds)` runs between consecutive messages (not after
        the last one, and not at all when delay_seconds is 0).
      - `on_published(i, total, message)` is called after each successful
        publish with a 1-based counter.

    Args:
        records: Records to publish.
        sink: A connected MessageSink.
        topic: Topic to publish to.
        clock: Source of encode-time instants (default RealClock()).
        delay_seconds: Pause between messages.
        sleep: Sleep function (time.sleep in production).
        on_published: Optional progress callback.

    Returns:
        Number of messages published.

    Raises:
        Whatever sink.publish raises; the loop stops at the first error.
    """
    clock = clock if clock is not None else RealClock()
    total = len(records)

    for i, record in enumerate(records):
        if i > 0 and delay_seconds > 0:
            sleep(delay_seconds)

        message = encode_record(record, clock.now())
        sink.publish(topic, message)

        if on_published is not None:
            on_published(i + 1, total, message)

    return total


def run(
    source: DatasetSource,
    sink: MessageSink,
    config: Optional[PipelineConfig] = None,
    topic: str = DEFAULT_TOPIC,
    clock: Optional[Clock] = None,
    delay_seconds: float = 1.0,
    limit: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    on_stage: Optional[Callable[[str], None]] = None,
    on_published: Optional[ProgressCallback] = None,
) -> int:
    """
    Run the full download -> parse -> publish workflow.

    Args:
        source: Where the CSV bytes come from.
        sink: Where messages go; connected here and always closed.
        config: Transform configuration.
        topic: MQTT topic.
        clock: Encode-time clock.
        delay_seconds: Pause between messages.
        limit: Publish only the first N records (None = all).
        sleep: Sleep function for pacing.
        on_stage: Called with a short status line before each stage.
        on_published: Progress callback forwarded to publish_records.

    Returns:
        Number of messages published.

    Raises:
        DownloadError, DatasetError, SinkError (first error wins).
    """
    notify = on_stage if on_stage is not None else (lambda _msg: None)

    notify("Downloading dataset...")
    payload = source.download()

    notify("Parsing dataset...")
    records = parse_dataset(payload, config)
    if limit is not None:
        records = records[:limit]

    notify("Publishing records...")
    sink.connect()
    try:
        return publish_records(
            records,
            sink,
            topic=topic,
            clock=clock,
            delay_seconds=delay_seconds,
            sleep=sleep,
            on_published=on_published,
        )
    finally:
        sink.close()
