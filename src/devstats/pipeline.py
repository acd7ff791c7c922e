"""Concurrent search, enrichment and reduction of pull requests for one author.

One producer walks the paginated search results onto a bounded input channel,
a fixed pool of workers turns each match into a full pull request record, and
the reduction stage drains the output channel in the calling thread:

    SearchStage -> [matches] -> EnrichmentPool (W workers) -> [pull requests] -> ReduceStage

The first stage to raise cancels every other stage; that first exception is the
pipeline's error and is returned together with whatever was enriched so far.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, Generic, Iterator, List, Optional, Tuple, TypeVar

from .config import DEFAULT_WORKERS, parse_repository
from .errors import ConfigurationError, FetchError, RequestCancelledError
from .github_client import GitHubClient
from .models import PipelineResult, PullRequest, RawMatch, SearchOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_QUEUE_SIZE = 1024
SEARCH_PAGE_SIZE = 100
_POLL_INTERVAL_SECONDS = 0.05


class BoundedChannel(Generic[T]):
    """Bounded FIFO that producers close once they are done.

    ``put`` blocks while the channel is full and ``drain`` blocks while it is
    empty and still open. Both wake up every poll interval to observe an
    optional cancel event. Closing never blocks; items queued before the close
    are still handed out.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()

    def put(self, item: T, cancel: Optional[threading.Event] = None) -> bool:
        """Queue an item, returning ``False`` if cancelled before it fit."""
        if self._closed.is_set():
            raise RuntimeError("put on a closed channel")

        while cancel is None or not cancel.is_set():
            try:
                self._queue.put(item, timeout=_POLL_INTERVAL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def drain(self, cancel: Optional[threading.Event] = None) -> Iterator[T]:
        """Yield items until the channel is closed and empty, or cancelled."""
        while cancel is None or not cancel.is_set():
            try:
                item = self._queue.get(timeout=_POLL_INTERVAL_SECONDS)
            except queue.Empty:
                # Every put happens before close, so closed + empty is final.
                if self._closed.is_set() and self._queue.empty():
                    return
                continue
            yield item


def build_search_query(author: str, repository: str, from_date: Optional[date] = None) -> str:
    """Build the issue search query for merged pull requests of one author."""
    parts = ["is:pull-request is:closed is:merged", f"repo:{repository}"]
    if from_date is not None:
        parts.append(f"created:>{from_date.isoformat()}")
    parts.append(f"author:{author}")
    return " ".join(parts)


class SearchStage:
    """Walks the paginated search results for one author in one repository."""

    def __init__(
        self,
        client: GitHubClient,
        repository: str,
        author: str,
        from_date: Optional[date] = None,
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._author = author
        self._page_size = page_size
        self.query = build_search_query(author, repository, from_date)

    def matches(self, cancel: Optional[threading.Event] = None) -> Iterator[RawMatch]:
        """Lazily yield search matches page by page, in the order GitHub returns them.

        Pagination stops at the first page without a next page, or quietly once
        ``cancel`` is set. Search errors propagate immediately and no further
        pages are requested.
        """
        page = 1
        while cancel is None or not cancel.is_set():
            try:
                result = self._client.search_issues(
                    self.query, page=page, per_page=self._page_size, cancel=cancel
                )
            except RequestCancelledError:
                return
            logger.debug(
                "Fetched search page",
                extra={"author": self._author, "page": page, "items": len(result.items)},
            )
            yield from result.items

            if result.next_page is None:
                return
            page = result.next_page

    def run(self, channel: BoundedChannel[RawMatch], cancel: threading.Event) -> int:
        """Publish every match onto ``channel`` and close it; returns the match count."""
        emitted = 0
        try:
            for match in self.matches(cancel):
                if not channel.put(match, cancel):
                    break
                emitted += 1
        finally:
            channel.close()
        return emitted


class EnrichmentPool:
    """Fixed number of workers fetching the full record of each matched pull request.

    A pool serves one pipeline run: the last of its workers to exit closes the
    output channel.
    """

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        name: str,
        workers: int = DEFAULT_WORKERS,
    ) -> None:
        if workers <= 0:
            raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")

        self._client = client
        self._owner = owner
        self._name = name
        self.workers = workers
        self._remaining = workers
        self._lock = threading.Lock()

    def _worker_done(self, output: BoundedChannel[PullRequest]) -> None:
        with self._lock:
            self._remaining -= 1
            is_last = self._remaining == 0
        if is_last:
            output.close()

    def work(
        self,
        source: BoundedChannel[RawMatch],
        output: BoundedChannel[PullRequest],
        cancel: threading.Event,
    ) -> int:
        """Run one worker until ``source`` is exhausted; returns the skipped count.

        Matches that are not pull requests are ignored. A ``FetchError`` skips
        the match; cancellation, even in the middle of a retry backoff, stops the
        worker. Any other exception ends the worker and propagates.
        """
        skipped = 0
        try:
            for match in source.drain(cancel):
                if not match.is_pull_request:
                    continue
                if cancel.is_set():
                    break

                try:
                    pull_request = self._client.get_pull_request(
                        self._owner, self._name, match.number, cancel=cancel
                    )
                except RequestCancelledError:
                    break
                except FetchError as exc:
                    skipped += 1
                    logger.debug(
                        "Skipping pull request that could not be fetched",
                        extra={"pr_number": match.number, "reason": str(exc)},
                    )
                    continue

                if not output.put(pull_request, cancel):
                    break
        finally:
            self._worker_done(output)
        return skipped


class ReduceStage:
    """Collects enriched pull requests until the output channel closes."""

    def __init__(self, source: BoundedChannel[PullRequest]) -> None:
        self._source = source

    def run(self, wait: Callable[[], Tuple[Optional[Exception], int]]) -> PipelineResult:
        """Drain the channel, then ask ``wait`` for the final error and skip count.

        Partial results are kept alongside an error.
        """
        pull_requests: List[PullRequest] = list(self._source.drain())
        error, skipped = wait()
        return PipelineResult(pull_requests=pull_requests, error=error, skipped=skipped)


class PipelineCoordinator:
    """Runs the search producer and the enrichment workers for one author.

    Raises:
        ConfigurationError: On construction, if the repository identifier is
            malformed. No request is issued in that case.
    """

    def __init__(
        self,
        client: GitHubClient,
        options: SearchOptions,
        author: str,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._owner, self._name = parse_repository(options.repository)
        self._client = client
        self._options = options
        self._author = author
        self._workers = workers
        self._queue_size = queue_size

        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[Exception] = None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _fail(self, exc: Exception) -> None:
        with self._lock:
            is_first = self._error is None
            if is_first:
                self._error = exc
        if is_first:
            logger.warning(
                "Pipeline stage failed, cancelling remaining work",
                extra={"author": self._author, "error": str(exc)},
            )
            self._cancel.set()

    def _guard(self, stage: Callable[..., Any], *args: Any) -> Any:
        try:
            return stage(*args)
        except Exception as exc:  # noqa: BLE001
            self._fail(exc)
            return None

    def _wait(self, stages: List[Future]) -> Tuple[Optional[Exception], int]:
        skipped = 0
        for future in stages[1:]:
            skipped += future.result() or 0
        stages[0].result()
        return self._error, skipped

    def run(self) -> PipelineResult:
        """Search, enrich and collect the pull requests of the author.

        Each call is a fresh run: the cancel event and the recorded error of a
        previous run are cleared first.
        """
        with self._lock:
            self._error = None
        self._cancel.clear()

        matches: BoundedChannel[RawMatch] = BoundedChannel(self._queue_size)
        output: BoundedChannel[PullRequest] = BoundedChannel(self._queue_size)

        search = SearchStage(
            self._client,
            self._options.repository,
            self._author,
            from_date=self._options.from_date,
        )
        pool = EnrichmentPool(self._client, self._owner, self._name, workers=self._workers)
        logger.info("Searching pull requests", extra={"author": self._author, "query": search.query})

        with ThreadPoolExecutor(max_workers=pool.workers + 1, thread_name_prefix="devstats") as executor:
            stages = [executor.submit(self._guard, search.run, matches, self._cancel)]
            stages.extend(
                executor.submit(self._guard, pool.work, matches, output, self._cancel)
                for _ in range(pool.workers)
            )
            result = ReduceStage(output).run(lambda: self._wait(stages))

        logger.info(
            "Collected pull requests",
            extra={
                "author": self._author,
                "prs": len(result.pull_requests),
                "skipped": result.skipped,
                "failed": result.error is not None,
            },
        )
        return result


def fetch_pull_requests(
    client: GitHubClient,
    options: SearchOptions,
    author: str,
    workers: int = DEFAULT_WORKERS,
) -> PipelineResult:
    """Run one pipeline for ``author`` and return the enriched set and any error."""
    return PipelineCoordinator(client, options, author, workers=workers).run()
