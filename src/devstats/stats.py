"""Statistics and formatting helpers for contributor reporting.

This module provides utilities for:
- Computing mean, median and median absolute deviation of a sample.
- Formatting statistics as ``mean/median/mad`` cells.
- Building a plain text table of per-author statistics.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from .models import ContributorStats, Statistics


def calculate_median(sorted_values: Sequence[float]) -> float:
    """Calculate the median of an already sorted, non-empty sequence.

    Even-length samples return the average of the two middle values.
    """
    middle = len(sorted_values) // 2
    if len(sorted_values) % 2:
        return float(sorted_values[middle])
    return (sorted_values[middle - 1] + sorted_values[middle]) / 2.0


def calc_stats(sample: Sequence[float]) -> Statistics:
    """Compute mean, median and median absolute deviation of a sample.

    The sample is sorted as an internal copy and is never mutated. No values are
    clamped or dropped as outliers.

    Args:
        sample: Numeric samples in any order.

    Returns:
        ``Statistics`` for the sample, or the all-zero ``Statistics()`` when the
        sample is empty.
    """
    if not sample:
        return Statistics()

    sorted_values = sorted(sample)
    mean = sum(sorted_values) / len(sorted_values)
    median = calculate_median(sorted_values)
    deviations = sorted(abs(value - median) for value in sorted_values)

    return Statistics(
        mean=mean,
        median=median,
        median_absolute_deviation=calculate_median(deviations),
    )


def format_statistics(stats: Statistics) -> str:
    """Format statistics as ``mean/median/mad`` with two decimals each."""
    return f"{stats.mean:.2f}/{stats.median:.2f}/{stats.median_absolute_deviation:.2f}"


_HEADERS = (
    "Author",
    "Merge Time (mean/median/mad) hours",
    "Comments (mean/median/mad)",
    "Commits (mean/median/mad)",
    "Change Size +/- (mean/median/mad)",
    "# of PRs",
)


def generate_report(
    stats: Sequence[ContributorStats],
    repository: str,
    from_date: Optional[date] = None,
) -> str:
    """Generate a plain text table of contributor statistics.

    Args:
        stats: One record per author, in the order rows are printed.
        repository: Repository in ``owner/name`` form, used in the header.
        from_date: Lower creation date of the searched pull requests.

    Returns:
        Formatted multi-line text report.
    """
    rows: List[List[str]] = [list(_HEADERS)]
    for record in stats:
        rows.append(
            [
                record.author,
                format_statistics(record.merge_time),
                format_statistics(record.comments),
                format_statistics(record.commits),
                format_statistics(record.change_size),
                str(record.prs),
            ]
        )

    widths = [max(len(row[column]) for row in rows) for column in range(len(_HEADERS))]
    separator = "+-" + "-+-".join("-" * width for width in widths) + "-+"

    def _render(row: List[str]) -> str:
        return "| " + " | ".join(cell.ljust(width) for cell, width in zip(row, widths)) + " |"

    since = from_date.isoformat() if from_date is not None else "the beginning"
    lines = [
        f"Repository: {repository}",
        f"PR statistics since {since}",
        "",
        separator,
        _render(rows[0]),
        separator,
    ]
    lines.extend(_render(row) for row in rows[1:])
    lines.append(separator)
    lines.append(f"Total PRs: {sum(record.prs for record in stats)}")

    return "\n".join(lines)
