"""Selection of recently merged pull requests."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List

from .github_client import GitHubClient
from .models import PullRequest, Repository

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(weeks=2)


def select_pull_requests(
    client: GitHubClient,
    repository: Repository,
    reference_time: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> List[PullRequest]:
    """Return merged pull requests whose merge time falls within the window.

    Pages are requested in the client's recency order and are not re-sorted.
    Pull requests that were closed without merging are skipped. Pagination stops
    at the first merged pull request whose merge time is at or before
    ``reference_time - window``; no later page is requested.

    Raises:
        RemoteFetchError: If any page request fails.
    """
    cutoff = reference_time - window
    selected: List[PullRequest] = []
    page = 1

    while True:
        pull_requests, has_next_page = client.list_closed_pull_requests(
            repository.owner, repository.name, page
        )

        for pr in pull_requests:
            if pr.merged_at is None:
                continue
            if pr.merged_at <= cutoff:
                logger.info(
                    "Reached pull requests merged before the analysis window",
                    extra={"repo": repository.full_name, "pages": page, "selected": len(selected)},
                )
                return selected
            selected.append(pr)

        if not has_next_page:
            break
        page += 1

    logger.info(
        "Exhausted closed pull requests",
        extra={"repo": repository.full_name, "pages": page, "selected": len(selected)},
    )
    return selected
