"""GitHub REST API client for pull request search and retrieval."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import requests
from requests.adapters import HTTPAdapter

from .errors import (
    ApiError,
    DataValidationError,
    FetchError,
    NotFoundError,
    RequestCancelledError,
)
from .models import PullRequest, RawMatch, SearchPage


class GitHubClient:
    """Small, typed client for the GitHub search and pull request APIs.

    The client holds no per-call state and is shared by all enrichment workers.
    Every public call accepts an optional cancel event; once it is set no new
    request is sent and any retry backoff ends early.
    """

    _API_URL = "https://api.github.com"
    _API_VERSION = "2022-11-28"
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30
    _NOT_FOUND_STATUSES = (404, 410)

    def __init__(self, token: str, timeout_seconds: int = 30, pool_size: int = 10) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            token: Bearer token used for every request.
            timeout_seconds: Per-request timeout in seconds.
            pool_size: Connection pool size, at least the number of workers.
        """
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        adapter = HTTPAdapter(pool_maxsize=pool_size, pool_block=True)
        self._session.mount("https://", adapter)
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        return f"{self._API_URL}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Turn ``created_at``/``merged_at`` values into aware datetimes.

        ``None`` or an empty string (an unmerged pull request) stays ``None``;
        naive values are taken as UTC.
        """
        if not value:
            return None

        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)

    def _backoff_seconds(self, response: Optional[requests.Response], attempt: int) -> int:
        """Seconds to wait before retry ``attempt + 1``.

        A numeric ``Retry-After`` from a 429/5xx response wins; otherwise the
        wait doubles per attempt. Both are capped at ``_MAX_BACKOFF_SECONDS``.
        """
        retry_after = response.headers.get("Retry-After") if response is not None else None
        if retry_after and retry_after.isdigit():
            return min(self._MAX_BACKOFF_SECONDS, max(1, int(retry_after)))

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    @staticmethod
    def _is_retryable(status_code: int) -> bool:
        return status_code == 429 or 500 <= status_code <= 599

    @staticmethod
    def _check_cancelled(url: str, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise RequestCancelledError(f"GitHub request cancelled: GET {url}")

    def _pause(self, seconds: int, url: str, cancel: Optional[threading.Event]) -> None:
        """Sleep between retries, returning early with an error when cancelled."""
        if cancel is None:
            time.sleep(seconds)
        elif cancel.wait(seconds):
            raise RequestCancelledError(f"GitHub request cancelled during backoff: GET {url}")

    def _send(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        """Execute a GET request with retry logic for transport faults and 429/5xx.

        The last response is returned as is once retries are exhausted, so the
        caller decides how a failing status is classified.

        Raises:
            FetchError: If the request never produced a response.
            RequestCancelledError: If ``cancel`` is set before an attempt or
                during a backoff.
        """
        for attempt in range(1, self._MAX_RETRIES + 1):
            self._check_cancelled(url, cancel)
            try:
                response = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                if attempt == self._MAX_RETRIES:
                    raise FetchError(f"GitHub request failed after retries: GET {url}") from exc
                self._pause(self._backoff_seconds(None, attempt), url, cancel)
                continue

            if self._is_retryable(response.status_code) and attempt < self._MAX_RETRIES:
                self._pause(self._backoff_seconds(response, attempt), url, cancel)
                continue

            return response

        raise FetchError(f"GitHub request failed after retries: GET {url}")

    def _decode(self, response: requests.Response, url: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise DataValidationError(f"GitHub API returned invalid JSON: GET {url}") from exc

        if not isinstance(payload, dict):
            raise DataValidationError(f"GitHub API returned unexpected payload shape: GET {url}")

        return payload

    def _next_page(self, response: requests.Response) -> Optional[int]:
        """Read the next page number from the ``Link`` response header."""
        next_url = (response.links or {}).get("next", {}).get("url")
        if not next_url:
            return None

        pages = parse_qs(urlparse(next_url).query).get("page")
        if not pages:
            return None
        return int(pages[0])

    def search_issues(
        self,
        query: str,
        page: int = 1,
        per_page: int = 100,
        cancel: Optional[threading.Event] = None,
    ) -> SearchPage:
        """Fetch one page of issue search results.

        Raises:
            ApiError: If the page could not be fetched for any reason.
            RequestCancelledError: If ``cancel`` was set first.
        """
        url = self._build_url("search/issues")
        params = {"q": query, "page": page, "per_page": per_page}

        try:
            response = self._send(url, params=params, cancel=cancel)
        except FetchError as exc:
            raise ApiError(f"GitHub search failed: GET {url} (page {page})") from exc

        if response.status_code != 200:
            raise ApiError(
                "GitHub search request failed: "
                f"GET {url} returned {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        payload = self._decode(response, url)
        items: List[RawMatch] = []
        for item in payload.get("items", []):
            number = item.get("number")
            if number is None:
                raise DataValidationError(
                    f"GitHub search item is missing required fields: payload={item}"
                )
            items.append(RawMatch(number=int(number), is_pull_request="pull_request" in item))

        return SearchPage(items=items, next_page=self._next_page(response))

    def get_pull_request(
        self,
        owner: str,
        name: str,
        number: int,
        cancel: Optional[threading.Event] = None,
    ) -> PullRequest:
        """Fetch the full record of one pull request.

        Raises:
            NotFoundError: If the pull request does not exist.
            FetchError: If the request failed at transport level or kept
                returning 429/5xx.
            ApiError: If GitHub answered with any other non-200 status.
            DataValidationError: If the payload lacks required fields.
            RequestCancelledError: If ``cancel`` was set before a response
                could be used.
        """
        url = self._build_url(f"repos/{owner}/{name}/pulls/{number}")
        response = self._send(url, cancel=cancel)
        status_code = response.status_code

        if status_code in self._NOT_FOUND_STATUSES:
            raise NotFoundError(f"Pull request {owner}/{name}#{number} was not found.")

        if self._is_retryable(status_code):
            raise FetchError(
                f"Pull request {owner}/{name}#{number} kept failing with status {status_code}."
            )

        if status_code != 200:
            raise ApiError(
                f"PR GET ({status_code}): [{number}] - {response.text}",
                status_code=status_code,
                body=response.text,
            )

        item = self._decode(response, url)
        created_at = self._parse_datetime(item.get("created_at"))
        if item.get("number") is None or created_at is None:
            raise DataValidationError(
                "GitHub pull request payload is missing required fields: "
                f"repository={owner}/{name}, payload={item}"
            )

        return PullRequest(
            number=int(item["number"]),
            created_at=created_at,
            merged_at=self._parse_datetime(item.get("merged_at")),
            commits=int(item.get("commits") or 0),
            comments=int(item.get("comments") or 0),
            additions=int(item.get("additions") or 0),
            deletions=int(item.get("deletions") or 0),
        )
