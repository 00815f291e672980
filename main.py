"""
opsd_load_publisher – Main entry point.

Thin wrapper around actions/publish_load_records.py so the publisher can be
started with `python main.py [flags]`.
"""

from actions.publish_load_records import main


if __name__ == "__main__":
    main()
