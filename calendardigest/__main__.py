"""Command-line entry for calendardigest.

Parses the command line and delegates to the package's run_report()
entrypoint, exiting with its status.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import NoReturn, Optional

from . import run_report


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendardigest CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendardigest",
        description="Print a chronological digest of the events in iCalendar files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calendardigest team.ics                         # Next six weeks of team.ics
  calendardigest a.ics b.ics --window-weeks 2     # Two weeks, two calendars
  calendardigest club.ics --now 2025-10-01T00:00  # Report as of a fixed time
  calendardigest *.ics --on-error skip            # Skip unreadable files
        """,
    )

    parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        help="Calendar documents to report, in order",
    )
    parser.add_argument(
        "--window-weeks",
        type=int,
        metavar="N",
        help="Length of the look-ahead window in weeks (default: 6)",
    )
    parser.add_argument(
        "--now",
        metavar="ISO8601",
        help="Start of the window (default: current time, or CALENDARDIGEST_TEST_TIME)",
    )
    parser.add_argument(
        "--timezone",
        metavar="TZ",
        help="Report timezone, e.g. Europe/London (default: system local zone)",
    )
    parser.add_argument(
        "--width",
        type=int,
        metavar="N",
        help="Width of the event text column (default: 60)",
    )
    parser.add_argument(
        "--on-error",
        choices=("abort", "skip"),
        help="Stop at the first bad document or event, or skip it (default: abort)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML configuration file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Run the calendardigest CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        status = run_report(args)
    except KeyboardInterrupt:
        sys.exit(130)  # Standard exit code for SIGINT (128 + 2)
    sys.exit(status)


if __name__ == "__main__":
    main()
