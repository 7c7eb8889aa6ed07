"""GitHub REST API client for delivery metric data retrieval."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import Config
from .errors import MissingFieldError, RemoteFetchError
from .models import Deployment, PullRequest, TimelineEvent

logger = logging.getLogger(__name__)


class GitHubClient:
    """Small, typed client for the GitHub pull request, timeline and deployment APIs."""

    _BASE_URL = "https://api.github.com"
    _API_VERSION = "2022-11-28"
    _PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including the access token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.token}",
                "X-GitHub-Api-Version": self._API_VERSION,
                "User-Agent": "gh-pr-delivery-metrics",
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        return f"{self._BASE_URL}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def _is_rate_limited(self, response: requests.Response) -> bool:
        """GitHub signals primary rate limits with 403 and an exhausted quota header."""
        return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_page(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """Execute a GET request for one page of a list endpoint.

        Retries connection errors, HTTP 429, rate-limited 403 and 5xx responses
        with exponential backoff.

        Returns:
            The page items and whether the ``Link`` header advertises a next page.

        Raises:
            RemoteFetchError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return a JSON list.
        """
        url = self._build_url(path)
        query = dict(params or {})

        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=query, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise RemoteFetchError(f"GitHub request failed after retries: GET {url}") from exc
                logger.debug(
                    "Retrying GitHub request after connection error",
                    extra={"url": url, "attempt": attempt},
                )
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = (
                status_code == 429 or 500 <= status_code <= 599 or self._is_rate_limited(response)
            )

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying GitHub request after retryable status",
                    extra={"url": url, "attempt": attempt, "status_code": status_code},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise RemoteFetchError(
                    "GitHub API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise RemoteFetchError(f"GitHub API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, list):
                raise RemoteFetchError(f"GitHub API returned unexpected payload shape: GET {url}")

            links = getattr(response, "links", None) or {}
            return payload, "next" in links

        raise RemoteFetchError(f"GitHub request failed after retries: GET {url}") from last_error

    def _parse_pull_request(self, item: Dict[str, Any]) -> PullRequest:
        number = item.get("number")
        created_at = self._parse_datetime(item.get("created_at"))
        state = item.get("state")
        head = item.get("head") or {}
        head_label = head.get("label")

        if number is None or created_at is None or not state:
            raise MissingFieldError(
                f"GitHub pull request payload is missing required fields: payload={item}"
            )

        merge_commit_sha = item.get("merge_commit_sha")
        return PullRequest(
            number=int(number),
            created_at=created_at,
            merged_at=self._parse_datetime(item.get("merged_at")),
            state=str(state),
            merge_commit_sha=str(merge_commit_sha) if merge_commit_sha else None,
            head_label=str(head_label) if head_label else None,
        )

    def list_closed_pull_requests(
        self, owner: str, repo: str, page: int
    ) -> Tuple[List[PullRequest], bool]:
        """List one page of closed pull requests, most recently updated first."""
        items, has_next_page = self._get_page(
            f"repos/{owner}/{repo}/pulls",
            params={
                "state": "closed",
                "sort": "updated",
                "direction": "desc",
                "per_page": self._PAGE_SIZE,
                "page": page,
            },
        )
        return [self._parse_pull_request(item) for item in items], has_next_page

    def list_timeline_events(
        self, owner: str, repo: str, pull_request_number: int, page: int
    ) -> Tuple[List[TimelineEvent], bool]:
        """List one page of timeline events for a pull request, in API order."""
        items, has_next_page = self._get_page(
            f"repos/{owner}/{repo}/issues/{pull_request_number}/timeline",
            params={"per_page": self._PAGE_SIZE, "page": page},
        )
        events: List[TimelineEvent] = []

        for item in items:
            kind = item.get("event")
            if not kind:
                continue
            events.append(
                TimelineEvent(
                    event=str(kind),
                    created_at=self._parse_datetime(item.get("created_at")),
                    submitted_at=self._parse_datetime(item.get("submitted_at")),
                )
            )

        return events, has_next_page

    def list_deployments(self, owner: str, repo: str) -> List[Deployment]:
        """List every deployment recorded for the repository."""
        deployments: List[Deployment] = []
        page = 1

        while True:
            items, has_next_page = self._get_page(
                f"repos/{owner}/{repo}/deployments",
                params={"per_page": self._PAGE_SIZE, "page": page},
            )
            for item in items:
                sha = item.get("sha")
                created_at = self._parse_datetime(item.get("created_at"))
                if not sha or created_at is None:
                    logger.debug(
                        "Skipping deployment without sha or creation time",
                        extra={"deployment_id": item.get("id")},
                    )
                    continue
                deployments.append(Deployment(sha=str(sha), created_at=created_at))

            if not has_next_page:
                break
            page += 1

        return deployments
