"""Domain models for GitHub pull request statistics.

These dataclasses intentionally model only the subset of API payload fields that
are required for contributor statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class SearchOptions:
    """What to search for: authors, repository and an optional lower creation date."""

    from_date: Optional[date]
    authors: Tuple[str, ...]
    repository: str


@dataclass(slots=True)
class RawMatch:
    """Represents one issue-or-pull-request item returned by the search API."""

    number: int
    is_pull_request: bool


@dataclass(slots=True)
class SearchPage:
    """Represents one page of search results and the page that follows it."""

    items: List[RawMatch]
    next_page: Optional[int]


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Represents the full pull request record used for statistics."""

    number: int
    created_at: datetime
    merged_at: Optional[datetime]
    commits: int
    comments: int
    additions: int
    deletions: int

    @property
    def change_size(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True, slots=True)
class Statistics:
    """Mean, median and median absolute deviation of one metric."""

    mean: float = 0.0
    median: float = 0.0
    median_absolute_deviation: float = 0.0


@dataclass(frozen=True, slots=True)
class ContributorStats:
    """Represents aggregated pull request statistics for one author."""

    author: str
    prs: int
    merge_time: Statistics
    commits: Statistics
    comments: Statistics
    change_size: Statistics


@dataclass(slots=True)
class PipelineResult:
    """Pull requests enriched for one author, with the first fatal error if any."""

    pull_requests: List[PullRequest] = field(default_factory=list)
    error: Optional[Exception] = None
    skipped: int = 0
