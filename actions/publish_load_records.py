#!/usr/bin/env python3
"""
Download the OPSD load dataset and publish it to MQTT as line protocol.

**Usage**:
    python actions/publish_load_records.py
    python actions/publish_load_records.py --mqtt-server broker.local:1883
    python actions/publish_load_records.py --csv-path data/raw/time_series_15min_singleindex.csv --dry-run --limit 20

**What this script does**:
  1. Parse command line arguments (flags override .env / environment)
  2. Download the dataset (or read --csv-path)
  3. Parse it into per-country load records (records after 2018-01-01 UTC)
  4. Connect to the MQTT broker (or stdout with --dry-run)
  5. Publish one line-protocol message per record, pausing between messages

**Exit codes**:
  - 0: All records published
  - 1: Configuration or data error (bad flag, malformed CSV)
  - 2: Transport error (download failed, broker unreachable, publish failed)
  - 130: Interrupted (Ctrl+C)

**Example output**:
    $ python actions/publish_load_records.py --mqtt-server localhost:1883
    Downloading dataset...
    Parsing dataset...
    Publishing records...
    Published 1/1234 records
    Published 2/1234 records
    ...
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to Python path so we can import src modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config.settings import MqttSettings, Settings, get_settings
from src.data.schemas import DatasetError
from src.orchestration.pipeline import run
from src.transform.extractor import RecordGrouping
from src.venues.local import ConsoleSink, LocalCsvSource
from src.venues.mqtt_sink import MqttSink, SinkError
from src.venues.opsd_client import DownloadError, OpsdClient


def parse_args(argv=None):
    """
    Parse command line arguments.

    Returns:
        Namespace with attributes: mqtt_server, dataset_url, csv_path, topic,
        delay, grouping, limit, dry_run. Unset options are None so that
        environment settings stay in effect.
    """
    parser = argparse.ArgumentParser(
        description="Publish OPSD per-country load records to MQTT as line protocol",
        epilog="""
Examples:
  # Publish to a local broker
  python actions/publish_load_records.py --mqtt-server localhost:1883

  # Preview the first 10 messages from a downloaded copy, no broker needed
  python actions/publish_load_records.py --csv-path opsd.csv --dry-run --limit 10

  # Reproduce the legacy one-record-per-row behaviour
  python actions/publish_load_records.py --grouping last_write
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--mqtt-server",
        type=str,
        default=None,
        help="MQTT server address host:port (default: MQTT_SERVER or 0.0.0.0:1883)",
    )
    parser.add_argument(
        "--dataset-url",
        type=str,
        default=None,
        help="Dataset CSV URL (default: OPSD_DATASET_URL or the OPSD 'latest' 15min file)",
    )
    parser.add_argument(
        "--csv-path",
        type=str,
        default=None,
        help="Read the dataset from a local CSV file instead of downloading it",
    )
    parser.add_argument(
        "--topic",
        type=str,
        default=None,
        help="MQTT topic (default: MQTT_TOPIC or 'sensor')",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait between messages (default: MQTT_PUBLISH_DELAY_SECONDS or 1.0)",
    )
    parser.add_argument(
        "--grouping",
        choices=[g.value for g in RecordGrouping],
        default=RecordGrouping.PER_COUNTRY.value,
        help="per_country: one record per country and row (default); "
             "last_write: one record per row, last country column wins",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Publish only the first N records",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print messages to stdout instead of publishing them",
    )

    args = parser.parse_args(argv)

    if args.limit is not None and args.limit < 0:
        parser.error("--limit must be non-negative")

    return args


def build_settings(args, base: Settings) -> Settings:
    """
    Apply command line overrides on top of environment settings.

    Raises:
        ValueError: If an override fails settings validation.
    """
    dataset = base.dataset
    if args.dataset_url is not None:
        dataset = replace(dataset, url=args.dataset_url)

    mqtt_overrides = {}
    if args.mqtt_server is not None:
        mqtt_overrides["server"] = args.mqtt_server
    if args.topic is not None:
        mqtt_overrides["topic"] = args.topic
    if args.delay is not None:
        mqtt_overrides["publish_delay_seconds"] = args.delay
    mqtt: MqttSettings = replace(base.mqtt, **mqtt_overrides)

    pipeline = replace(base.pipeline, grouping=RecordGrouping(args.grouping))

    return Settings(dataset=dataset, mqtt=mqtt, pipeline=pipeline)


def print_progress(i: int, total: int, message: str) -> None:
    print(f"Published {i}/{total} records")


def main(argv=None):
    """
    Main entry point for the script.

    **Error handling strategy**: The run is fail-fast. The first error is
    printed to stderr and mapped to an exit code; nothing is retried.
    """
    try:
        args = parse_args(argv)

        try:
            settings = build_settings(args, get_settings())
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        if args.csv_path is not None:
            source = LocalCsvSource(args.csv_path)
        else:
            source = OpsdClient(settings.dataset)

        if args.dry_run:
            sink = ConsoleSink()
            on_published = None
        else:
            sink = MqttSink(settings.mqtt)
            on_published = print_progress

        try:
            published = run(
                source,
                sink,
                config=settings.pipeline,
                topic=settings.mqtt.topic,
                delay_seconds=0.0 if args.dry_run else settings.mqtt.publish_delay_seconds,
                limit=args.limit,
                on_stage=print,
                on_published=on_published,
            )
        except DatasetError as e:
            print(f"Error: invalid dataset: {e}", file=sys.stderr)
            sys.exit(1)
        except DownloadError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        except SinkError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        finally:
            if isinstance(source, OpsdClient):
                source.close()

        if not args.dry_run:
            print(f"Done! Published {published} records.")
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(130)  # Standard Unix exit code for Ctrl+C


if __name__ == "__main__":
    main()
