"""Per pull request metric extraction and the repository analysis pipeline.

This module computes PR-level durations in whole hours, measured from the first
review request (or pull request creation):
- time to first review
- time to merge
- time to production (lead time for changes)
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .deployments import correlate_deployments, order_by_merge_time
from .errors import DataValidationError, MissingFieldError
from .github_client import GitHubClient
from .models import Metrics, PullRequest, PullRequestStatistics, Repository, TimelineSummary
from .stats import aggregate_metrics
from .timeline import reconstruct_timeline

logger = logging.getLogger(__name__)


def round_to_hours(delta: timedelta) -> int:
    """Round a duration to the nearest whole hour, halves away from zero."""
    hours = delta.total_seconds() / 3600
    return int(math.copysign(math.floor(abs(hours) + 0.5), hours))


def is_tracked_with_issue(pr: PullRequest, no_ticket_marker: str) -> bool:
    """Return True unless the head branch label contains the no-ticket marker.

    Raises:
        MissingFieldError: If the pull request has no head branch label.
    """
    if not pr.head_label:
        raise MissingFieldError(f"GitHub pull request #{pr.number} is missing its head branch label.")
    return no_ticket_marker not in pr.head_label


def build_pull_request_statistics(
    pr: PullRequest,
    timeline: TimelineSummary,
    deploy_times: Dict[str, datetime],
    no_ticket_marker: str,
) -> PullRequestStatistics:
    """Compute the statistics of one merged pull request.

    Raises:
        DataValidationError: If the pull request has not been merged.
    """
    if pr.merged_at is None:
        raise DataValidationError(f"Pull request #{pr.number} has not been merged.")

    start = timeline.time_review_requested

    time_to_review: Optional[int] = None
    if timeline.was_reviewed and timeline.time_first_reviewed is not None:
        time_to_review = round_to_hours(timeline.time_first_reviewed - start)

    time_deployed = deploy_times.get(pr.merge_commit_sha) if pr.merge_commit_sha else None
    time_to_production: Optional[int] = None
    if time_deployed is not None:
        time_to_production = round_to_hours(time_deployed - start)

    return PullRequestStatistics(
        number=pr.number,
        is_tracked_with_issue=is_tracked_with_issue(pr, no_ticket_marker),
        time_to_review=time_to_review,
        time_to_merge=round_to_hours(pr.merged_at - start),
        time_to_production=time_to_production,
        was_reviewed=timeline.was_reviewed,
        was_deployed=time_deployed is not None,
        was_closed_without_merge=pr.state == "closed" and not pr.merged,
    )


def collect_pull_request_statistics(
    client: GitHubClient,
    repository: Repository,
    prs: List[PullRequest],
    deploy_times: Dict[str, datetime],
    no_ticket_marker: str,
    max_workers: int = 1,
) -> List[PullRequestStatistics]:
    """Reconstruct every timeline and build statistics, preserving input order.

    With ``max_workers > 1`` timelines are fetched on a bounded thread pool;
    statistics are only built once every fetch has finished. The first failed
    fetch is re-raised.
    """
    if max_workers > 1 and len(prs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            timelines = list(
                executor.map(lambda pr: reconstruct_timeline(client, repository, pr), prs)
            )
    else:
        timelines = [reconstruct_timeline(client, repository, pr) for pr in prs]

    stats_list = [
        build_pull_request_statistics(pr, timeline, deploy_times, no_ticket_marker)
        for pr, timeline in zip(prs, timelines)
    ]

    logger.info(
        "Collected pull request statistics",
        extra={
            "repo": repository.full_name,
            "prs_total": len(prs),
            "prs_reviewed": sum(1 for stat in stats_list if stat.was_reviewed),
            "prs_deployed": sum(1 for stat in stats_list if stat.was_deployed),
            "max_workers": max_workers,
        },
    )
    return stats_list


def analyze_pull_requests(
    client: GitHubClient,
    repository: Repository,
    prs: List[PullRequest],
    no_ticket_marker: str,
    max_workers: int = 1,
) -> Metrics:
    """Run correlation, per pull request statistics and aggregation for a batch.

    Deployment history is fetched once for the whole batch. The batch is put in
    newest-merge-first order before correlation, which relies on that order.
    """
    ordered = order_by_merge_time(prs)
    if len(ordered) != len(prs):
        logger.debug(
            "Dropped unmerged pull requests from analysis",
            extra={"dropped": len(prs) - len(ordered)},
        )

    deployments = client.list_deployments(repository.owner, repository.name)
    deploy_times = correlate_deployments(deployments, ordered)

    stats_list = collect_pull_request_statistics(
        client=client,
        repository=repository,
        prs=ordered,
        deploy_times=deploy_times,
        no_ticket_marker=no_ticket_marker,
        max_workers=max_workers,
    )
    return aggregate_metrics(repository.full_name, stats_list)
