"""Per-author statistics over merged pull requests.

For every requested author, in order, one pipeline run collects the author's
merged pull requests and the samples below are summarized with
:func:`devstats.stats.calc_stats`:

- merge time: hours from creation to merge
- commits: commits per pull request
- comments: comments per pull request
- change size: added plus deleted lines per pull request
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .config import DEFAULT_WORKERS
from .github_client import GitHubClient
from .models import ContributorStats, PullRequest, SearchOptions
from .pipeline import fetch_pull_requests
from .stats import calc_stats

logger = logging.getLogger(__name__)

_SECONDS_PER_HOUR = 3600.0


def compute_merge_hours(pr: PullRequest) -> float:
    """Return the fractional hours from creation to merge.

    Unmerged pull requests count as ``0.0`` so every metric keeps one sample per
    pull request.
    """
    if pr.merged_at is None:
        logger.warning(
            "Pull request has no merge timestamp, counting merge time as zero",
            extra={"pr_number": pr.number},
        )
        return 0.0

    return (pr.merged_at - pr.created_at).total_seconds() / _SECONDS_PER_HOUR


def summarize_pull_requests(author: str, pull_requests: Sequence[PullRequest]) -> ContributorStats:
    """Build the statistics record of one author from their enriched pull requests."""
    merge_hours = [compute_merge_hours(pr) for pr in pull_requests]
    commits = [float(pr.commits) for pr in pull_requests]
    comments = [float(pr.comments) for pr in pull_requests]
    change_size = [float(pr.change_size) for pr in pull_requests]

    return ContributorStats(
        author=author,
        prs=len(pull_requests),
        merge_time=calc_stats(merge_hours),
        commits=calc_stats(commits),
        comments=calc_stats(comments),
        change_size=calc_stats(change_size),
    )


class StatsAggregator:
    """Runs the pull request pipeline once per author and summarizes each run.

    Authors are processed one after another. ``results`` holds the records
    computed so far, so they remain available when a later author fails.
    """

    def __init__(
        self,
        client: GitHubClient,
        options: SearchOptions,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        self._client = client
        self._options = options
        self._workers = workers
        self.results: List[ContributorStats] = []

    def run(self) -> List[ContributorStats]:
        """Compute statistics for every author.

        Raises:
            ConfigurationError: If the repository identifier is malformed.
            DevstatsError: The first fatal pipeline error; remaining authors
                are not attempted.
        """
        self.results = []
        for author in self._options.authors:
            result = fetch_pull_requests(self._client, self._options, author, workers=self._workers)
            if result.error is not None:
                logger.error(
                    "Aborting statistics run",
                    extra={"author": author, "partial_prs": len(result.pull_requests)},
                )
                raise result.error

            if result.skipped:
                logger.info(
                    "Skipped pull requests that could not be fetched",
                    extra={"author": author, "skipped": result.skipped},
                )
            self.results.append(summarize_pull_requests(author, result.pull_requests))

        return list(self.results)
