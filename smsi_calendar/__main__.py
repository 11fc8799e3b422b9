"""Command-line entry for smsi_calendar.

Runs a calendar query over events exported as JSON, or shows how a free-text
tag field is parsed.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from . import _init_logging

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the smsi_calendar CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="smsi_calendar",
        description="SMSI calendar - recurrence expansion and tag parsing tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m smsi_calendar query events.json
  python -m smsi_calendar query events.json --start 2024-01-01 --end 2024-06-30
  python -m smsi_calendar tags "#audit #urgent"
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="List occurrences inside a window")
    query.add_argument("events", metavar="EVENTS.json", help="JSON array of event records")
    query.add_argument("--start", metavar="ISO", help="Window start (default: now)")
    query.add_argument("--end", metavar="ISO", help="Window end (default: start of window + configured days)")
    query.add_argument("--config", metavar="PATH", help="Config file (default: ./smsi_calendar.yaml)")
    query.add_argument("--debug", action="store_true", help="Enable debug logging")

    tags = subparsers.add_parser("tags", help="Parse a free-text tag field")
    tags.add_argument("text", help="Tag text, e.g. '#a #b', 'a, b' or '[\"a\"]'")

    return parser


def _load_events(path: str) -> list[Any]:
    from .models import CalendarEvent

    records = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON array of events")
    return [CalendarEvent.from_record(record) for record in records]


def run_query(args: argparse.Namespace) -> int:
    """Execute the ``query`` command and print occurrences as JSON."""
    from .calendar_query import CalendarQueryEngine
    from .config_loader import load_config
    from .lite_logging import configure_logging
    from .timezone_utils import parse_instant

    settings = load_config(args.config)
    debug = args.debug or settings.log_level == "DEBUG"
    configure_logging(debug_mode=debug)
    if not debug:
        _init_logging(settings.log_level)

    events = _load_events(args.events)
    engine = CalendarQueryEngine(settings)
    occurrences = engine.query(events, parse_instant(args.start), parse_instant(args.end))

    json.dump([o.to_response() for o in occurrences], sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    logger.info("Listed %d occurrences from %d events", len(occurrences), len(events))
    return 0


def run_tags(args: argparse.Namespace) -> int:
    """Execute the ``tags`` command and print the parsed tags as JSON."""
    from .tag_parser import parse_tags

    json.dump(sorted(parse_tags(args.text)), sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run the smsi_calendar CLI."""
    _init_logging(os.environ.get("SMSI_CALENDAR_LOG_LEVEL"))

    parser = _create_parser()
    args = parser.parse_args(argv)

    from .exceptions import CalendarCoreError

    handlers = {"query": run_query, "tags": run_tags}
    try:
        return handlers[args.command](args)
    except (CalendarCoreError, OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
