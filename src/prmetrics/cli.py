"""Command-line argument parsing for the GitHub PR delivery metrics generator."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import DEFAULT_NO_TICKET_MARKER, DEFAULT_WINDOW_DAYS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for metrics generation.

    Returns:
        Parsed CLI arguments containing repository owner and name, the analysis
        window in days, the no-ticket marker, the worker count and log level.
    """
    parser = argparse.ArgumentParser(
        prog="gh-pr-delivery-metrics",
        description=(
            "Generate GitHub pull-request delivery metrics for a repository "
            "(review time, time to merge and lead time for changes)."
        ),
    )

    parser.add_argument(
        "--owner",
        required=True,
        help="GitHub user or organization owning the repository.",
    )
    parser.add_argument(
        "--repo",
        required=True,
        help="GitHub repository name to analyze.",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=DEFAULT_WINDOW_DAYS,
        help=f"Number of days of merged PRs to analyze (default: {DEFAULT_WINDOW_DAYS}).",
    )
    parser.add_argument(
        "--no-ticket-marker",
        default=DEFAULT_NO_TICKET_MARKER,
        help=(
            "Branch label substring marking PRs without a ticket "
            f"(default: {DEFAULT_NO_TICKET_MARKER})."
        ),
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=1,
        help="Number of pull request timelines fetched concurrently (default: 1).",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging verbosity (default: WARNING).",
    )

    return parser.parse_args(argv)
