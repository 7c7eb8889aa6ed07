"""Domain models for GitHub pull request delivery metrics.

These dataclasses intentionally model only the subset of API payload fields that
are required for metric computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Effective time of timeline events that carry no timestamp (for example commits).
ZERO_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(slots=True, frozen=True)
class Repository:
    """Identifies the GitHub repository under analysis."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(slots=True)
class PullRequest:
    """Represents the minimal pull request data required for metric calculations."""

    number: int
    created_at: datetime
    merged_at: Optional[datetime]
    state: str
    merge_commit_sha: Optional[str]
    head_label: Optional[str]

    @property
    def merged(self) -> bool:
        return self.merged_at is not None


@dataclass(slots=True)
class TimelineEvent:
    """Represents one entry of an issue timeline.

    Review events are timed by ``submitted_at``; most other kinds carry
    ``created_at``; commit events carry neither.
    """

    event: str
    created_at: Optional[datetime]
    submitted_at: Optional[datetime]

    @property
    def effective_time(self) -> datetime:
        if self.event == "reviewed":
            return self.submitted_at if self.submitted_at is not None else ZERO_TIMESTAMP
        if self.created_at is not None:
            return self.created_at
        if self.submitted_at is not None:
            return self.submitted_at
        return ZERO_TIMESTAMP


@dataclass(slots=True)
class Deployment:
    """Represents a deployment record of a commit."""

    sha: str
    created_at: datetime


@dataclass(slots=True, frozen=True)
class TimelineSummary:
    """The two governing timestamps reconstructed from a pull request timeline."""

    time_review_requested: datetime
    time_first_reviewed: Optional[datetime]
    was_reviewed: bool


@dataclass(slots=True, frozen=True)
class PullRequestStatistics:
    """Per pull request measurements, durations in whole hours.

    All durations start at the first review request, or at pull request creation
    when review was never requested.
    """

    number: int
    is_tracked_with_issue: bool
    time_to_review: Optional[int]
    time_to_merge: int
    time_to_production: Optional[int]
    was_reviewed: bool
    was_deployed: bool
    was_closed_without_merge: bool


@dataclass(slots=True, frozen=True)
class DurationSummary:
    """Aggregated statistics of one duration metric, in hours.

    Every statistic is ``None`` when ``count`` is ``0``.
    """

    count: int
    average: Optional[float]
    p50: Optional[float]
    p75: Optional[float]
    p90: Optional[float]


@dataclass(slots=True, frozen=True)
class Metrics:
    """Final delivery metrics for one repository and analysis window."""

    repo_name: str
    total_pull_requests: int
    pull_requests_without_issue: int
    pull_requests_with_review: int
    pull_requests_deployed: int
    review_time: DurationSummary
    time_to_merge: DurationSummary
    lead_time_for_changes: DurationSummary

    @property
    def average_review_time(self) -> Optional[float]:
        return self.review_time.average

    @property
    def median_review_time(self) -> Optional[float]:
        return self.review_time.p50

    @property
    def median_time_to_merge(self) -> Optional[float]:
        return self.time_to_merge.p50

    @property
    def median_lead_time_for_changes(self) -> Optional[float]:
        return self.lead_time_for_changes.p50
