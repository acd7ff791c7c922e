"""Tests for statistical calculations and report rendering."""

import itertools
import random
import sys
from datetime import date
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from devstats.models import ContributorStats, Statistics
from devstats.stats import calc_stats, calculate_median, format_statistics, generate_report


def test_calc_stats_empty_sample_returns_zero_statistics():
    """Verify an empty sample yields the all-zero statistics state."""
    stats = calc_stats([])

    assert stats == Statistics(mean=0.0, median=0.0, median_absolute_deviation=0.0)


@pytest.mark.parametrize(
    "sample",
    [
        [1.0],
        [2.5, 7.5],
        [0.1, 0.2, 0.3],
        [3.0, -1.0, 12.5, 100.0, 4.25],
    ],
)
def test_calc_stats_mean_is_arithmetic_average(sample):
    """Verify the mean equals the arithmetic average of the sample."""
    assert calc_stats(sample).mean == pytest.approx(sum(sample) / len(sample))


def test_calc_stats_median_is_permutation_invariant():
    """Verify the median does not depend on sample order."""
    sample = [5.0, 1.0, 9.0, 3.0, 7.0]
    medians = {calc_stats(list(order)).median for order in itertools.permutations(sample)}

    assert medians == {5.0}


def test_calc_stats_even_sample_averages_middle_values():
    """Verify even-length samples use the average of the two middle values."""
    stats = calc_stats([48.0, 24.0])

    assert stats.mean == pytest.approx(36.0)
    assert stats.median == pytest.approx(36.0)
    assert stats.median_absolute_deviation == pytest.approx(12.0)


def test_calc_stats_median_absolute_deviation_is_robust_to_outlier():
    """Verify MAD is the median of absolute deviations and keeps outliers in the mean."""
    stats = calc_stats([1.0, 2.0, 3.0, 4.0, 100.0])

    assert stats.mean == pytest.approx(22.0)
    assert stats.median == pytest.approx(3.0)
    assert stats.median_absolute_deviation == pytest.approx(1.0)


def test_calc_stats_does_not_mutate_caller_sample():
    """Verify the caller's sample keeps its original order."""
    sample = [3.0, 1.0, 2.0]
    randomized = random.Random(7).sample(sample, len(sample))
    before = list(randomized)

    calc_stats(randomized)

    assert randomized == before


def test_calculate_median_odd_and_even_lengths():
    """Verify median helper handles odd and even sorted samples."""
    assert calculate_median([1.0, 2.0, 10.0]) == 2.0
    assert calculate_median([1.0, 2.0, 4.0, 10.0]) == pytest.approx(3.0)


def test_format_statistics_uses_two_decimals():
    """Verify statistics cells are printed as mean/median/mad with two decimals."""
    stats = Statistics(mean=36.0, median=36.0, median_absolute_deviation=12.345)

    assert format_statistics(stats) == "36.00/36.00/12.35"


def test_generate_report_contains_headers_rows_and_total():
    """Verify the report includes the header, one row per author, and the PR total."""
    alice = ContributorStats(
        author="alice",
        prs=2,
        merge_time=Statistics(36.0, 36.0, 12.0),
        commits=Statistics(3.0, 3.0, 1.0),
        comments=Statistics(1.5, 1.5, 0.5),
        change_size=Statistics(120.0, 120.0, 20.0),
    )
    bob = ContributorStats(
        author="bob",
        prs=0,
        merge_time=Statistics(),
        commits=Statistics(),
        comments=Statistics(),
        change_size=Statistics(),
    )

    report = generate_report([alice, bob], repository="cockroachdb/cockroach", from_date=date(2026, 9, 17))

    assert "Repository: cockroachdb/cockroach" in report
    assert "PR statistics since 2026-09-17" in report
    assert "Merge Time (mean/median/mad) hours" in report
    assert "36.00/36.00/12.00" in report
    assert "0.00/0.00/0.00" in report
    assert report.index("alice") < report.index("bob")
    assert report.endswith("Total PRs: 2")


def test_generate_report_without_from_date():
    """Verify the report header handles a missing from date."""
    report = generate_report([], repository="owner/name")

    assert "PR statistics since the beginning" in report
    assert "Total PRs: 0" in report
