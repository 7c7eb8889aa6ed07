"""Reconstruction of review milestones from pull request timelines."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from .github_client import GitHubClient
from .models import PullRequest, Repository, TimelineEvent, TimelineSummary

logger = logging.getLogger(__name__)

EVENT_REVIEW_REQUESTED = "review_requested"
EVENT_REVIEWED = "reviewed"


def fetch_timeline_events(
    client: GitHubClient,
    repository: Repository,
    pr: PullRequest,
) -> List[TimelineEvent]:
    """Collect every timeline page of a pull request."""
    events: List[TimelineEvent] = []
    page = 1

    while True:
        page_events, has_next_page = client.list_timeline_events(
            repository.owner, repository.name, pr.number, page
        )
        events.extend(page_events)
        if not has_next_page:
            return events
        page += 1


def sort_events_descending(events: List[TimelineEvent]) -> List[TimelineEvent]:
    """Order events newest first by their effective time.

    Events without any timestamp sort last as the zero timestamp.
    """
    return sorted(events, key=lambda event: event.effective_time, reverse=True)


def summarize_timeline(pr: PullRequest, events: List[TimelineEvent]) -> TimelineSummary:
    """Extract the review-requested and first-reviewed times from sorted events.

    Business logic:
    - The first ``review_requested`` event encountered sets the request time;
      without one, the pull request creation time is used.
    - The first ``reviewed`` event encountered sets the review time. Reviews
      without a submission time (pending reviews) are ignored.
    - The scan ends once a review has been found and a review request has been
      found too, or when the events run out.
    """
    time_review_requested: Optional[datetime] = None
    time_first_reviewed: Optional[datetime] = None

    for event in events:
        if (
            time_review_requested is None
            and event.event == EVENT_REVIEW_REQUESTED
            and event.created_at is not None
        ):
            time_review_requested = event.effective_time

        if (
            time_first_reviewed is None
            and event.event == EVENT_REVIEWED
            and event.submitted_at is not None
        ):
            time_first_reviewed = event.effective_time

        if time_first_reviewed is not None and time_review_requested is not None:
            break

    if time_review_requested is None:
        time_review_requested = pr.created_at

    return TimelineSummary(
        time_review_requested=time_review_requested,
        time_first_reviewed=time_first_reviewed,
        was_reviewed=time_first_reviewed is not None,
    )


def reconstruct_timeline(
    client: GitHubClient,
    repository: Repository,
    pr: PullRequest,
) -> TimelineSummary:
    """Fetch, order and scan the timeline of one pull request.

    Raises:
        RemoteFetchError: If any timeline page request fails.
    """
    events = sort_events_descending(fetch_timeline_events(client, repository, pr))
    summary = summarize_timeline(pr, events)

    logger.debug(
        "Reconstructed pull request timeline",
        extra={
            "pr_number": pr.number,
            "events": len(events),
            "was_reviewed": summary.was_reviewed,
        },
    )
    return summary
