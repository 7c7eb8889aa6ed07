"""Correlation of merged pull requests with the deployments that shipped them."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from .models import Deployment, PullRequest

logger = logging.getLogger(__name__)


def index_deployments(deployments: List[Deployment]) -> Dict[str, datetime]:
    """Map each deployed commit SHA to the time it was first deployed."""
    deploy_times: Dict[str, datetime] = {}
    for deployment in deployments:
        known = deploy_times.get(deployment.sha)
        if known is None or deployment.created_at < known:
            deploy_times[deployment.sha] = deployment.created_at
    return deploy_times


def order_by_merge_time(pull_requests: List[PullRequest]) -> List[PullRequest]:
    """Return merged pull requests ordered newest merge first, ties kept in input order."""
    merged = [pr for pr in pull_requests if pr.merged_at is not None]
    return sorted(merged, key=lambda pr: pr.merged_at, reverse=True)


def correlate_deployments(
    deployments: List[Deployment],
    pull_requests: List[PullRequest],
) -> Dict[str, datetime]:
    """Map merge commit SHAs to the time the change reached production.

    ``pull_requests`` must be ordered newest merge first. The order is not
    checked here; callers pass the output of :func:`order_by_merge_time`.

    Walking that order, a pull request whose merge commit was deployed sets the
    current deployment time. A pull request without its own deployment is
    assumed to ship with the deployment established before it in the walk.
    Pull requests seen before any deployment is established are left out of the
    mapping as not yet deployed.
    """
    deploy_times = index_deployments(deployments)
    correlated: Dict[str, datetime] = {}
    current_deploy_time: Optional[datetime] = None

    for pr in pull_requests:
        sha = pr.merge_commit_sha
        if not sha:
            logger.debug("Skipping pull request without merge commit", extra={"pr_number": pr.number})
            continue

        direct = deploy_times.get(sha)
        if direct is not None:
            current_deploy_time = direct
            correlated[sha] = direct
        elif current_deploy_time is not None:
            correlated[sha] = current_deploy_time

    logger.info(
        "Correlated pull requests with deployments",
        extra={
            "deployments": len(deployments),
            "pull_requests": len(pull_requests),
            "deployed": len(correlated),
        },
    )
    return correlated
