"""Command line entry point: replay an event log and write the results table.

Usage
-----
::

    biathlon-report --config configs/config.json --events events --output resulting_table

Every fatal condition (bad config, unreadable event log, malformed event,
unwritable output) is logged and ends the process with exit status 1.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterator, Sequence

from .events import parse_event_line
from .exceptions import ConfigurationError, MalformedEvent
from .ledger import apply_event, new_ledger
from .report import build_report, render_report
from .types import Ledger
from .validation import RaceConfig, load_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def _iter_lines(path: Path) -> Iterator[str]:
    """Yield event lines; a read error after opening ends the stream early.

    Undecodable bytes are replaced, so only a real I/O failure cuts the log short.

    Raises:
        OSError: The file cannot be opened
    """
    with path.open("r", encoding="utf-8", errors="replace") as fh:
        try:
            for line in fh:
                yield line
        except OSError as e:
            logger.error(f"Error reading {path}: {e}; continuing with events read so far")


def replay(events_path: Path, config: RaceConfig) -> Ledger:
    """Decode and apply every event line of the log, in file order."""
    ledger = new_ledger()
    for lineno, line in enumerate(_iter_lines(events_path), start=1):
        if not line.strip():
            logger.debug(f"Skipping blank line {lineno}")
            continue
        try:
            event = parse_event_line(line)
            apply_event(ledger, event, config)
        except MalformedEvent as e:
            raise MalformedEvent(f"{events_path}:{lineno}: {e}") from e
    return ledger


def run(config_path: Path, events_path: Path, output_path: Path) -> int:
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        ledger = replay(events_path, config)
    except OSError as e:
        logger.error(f"Cannot open event log {events_path}: {e}")
        return 1
    except MalformedEvent as e:
        logger.error(f"Malformed event: {e}")
        return 1

    report = render_report(build_report(ledger, config))
    try:
        output_path.write_text(report, encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot write results to {output_path}: {e}")
        return 1

    logger.info(
        f"Processed {len(ledger)} competitors. Results saved to {output_path}."
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biathlon-report",
        description="Build the biathlon results table from a timing event log.",
    )
    parser.add_argument(
        "--config", "-c", default="configs/config.json", help="Race configuration JSON file"
    )
    parser.add_argument("--events", "-e", default="events", help="Event log file")
    parser.add_argument(
        "--output", "-o", default="resulting_table", help="Where to write the results table"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    return run(Path(args.config), Path(args.events), Path(args.output))


if __name__ == "__main__":
    sys.exit(main())
