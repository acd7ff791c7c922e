"""Command-line argument parsing for devstats."""

from __future__ import annotations

import argparse
from datetime import date, timedelta

from .config import DEFAULT_WORKERS

_DEFAULT_LOOKBACK_DAYS = 30


def _worker_count(value: str) -> int:
    """Argparse type for ``--workers``: at least one enrichment worker."""
    try:
        workers = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid worker count '{value}'") from exc

    if workers < 1:
        raise argparse.ArgumentTypeError("at least one worker is required")

    return workers


def _iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` CLI value."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date in YYYY-MM-DD format") from exc


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for contributor statistics.

    Returns:
        Parsed CLI arguments containing authors, repository, from date,
        worker count and verbosity.
    """
    parser = argparse.ArgumentParser(
        prog="devstats",
        description=(
            "Calculate mean/median/median absolute deviation of merge time, "
            "commits, comments and change size for all PRs merged by the given authors."
        ),
    )

    parser.add_argument(
        "-a",
        "--author",
        dest="authors",
        action="append",
        required=True,
        help="GitHub login to calculate PR statistics for (repeatable).",
    )
    parser.add_argument(
        "-r",
        "--repo",
        required=True,
        help="Repository to fetch PRs from, as owner/name.",
    )
    parser.add_argument(
        "-f",
        "--from",
        dest="from_date",
        type=_iso_date,
        default=date.today() - timedelta(days=_DEFAULT_LOOKBACK_DAYS),
        help="Only count PRs created after this date (default: 30 days ago).",
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=_worker_count,
        default=DEFAULT_WORKERS,
        help=f"Number of concurrent PR fetch workers (default: {DEFAULT_WORKERS}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args()
