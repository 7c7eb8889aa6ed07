"""Tests for per pull request statistics and the analysis pipeline."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prmetrics.errors import DataValidationError, MissingFieldError, RemoteFetchError
from prmetrics.kpi import (
    analyze_pull_requests,
    build_pull_request_statistics,
    collect_pull_request_statistics,
    is_tracked_with_issue,
    round_to_hours,
)
from prmetrics.models import Deployment, PullRequest, Repository, TimelineEvent, TimelineSummary
from prmetrics.selector import select_pull_requests

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
REPOSITORY = Repository(owner="octo", name="repo")


def _at(hours: float) -> datetime:
    return NOW + timedelta(hours=hours)


def _make_pr(
    number: int = 1,
    created: float = -100,
    merged: float | None = -10,
    label: str = "octo:feature/JIRA-123",
    sha: str | None = None,
) -> PullRequest:
    return PullRequest(
        number=number,
        created_at=_at(created),
        merged_at=None if merged is None else _at(merged),
        state="closed",
        merge_commit_sha=sha if sha is not None else f"c{number}",
        head_label=label,
    )


def _requested(hours: float) -> TimelineEvent:
    return TimelineEvent(event="review_requested", created_at=_at(hours), submitted_at=None)


def _reviewed(hours: float) -> TimelineEvent:
    return TimelineEvent(event="reviewed", created_at=None, submitted_at=_at(hours))


def _commit() -> TimelineEvent:
    return TimelineEvent(event="committed", created_at=None, submitted_at=None)


def test_round_to_hours_rounds_half_away_from_zero():
    """Verify per pull request durations are rounded to the nearest whole hour."""
    assert round_to_hours(timedelta(minutes=89)) == 1
    assert round_to_hours(timedelta(minutes=90)) == 2
    assert round_to_hours(timedelta(minutes=30)) == 1
    assert round_to_hours(timedelta(minutes=29)) == 0
    assert round_to_hours(timedelta(minutes=-90)) == -2
    assert round_to_hours(timedelta(days=2)) == 48


def test_is_tracked_with_issue_uses_marker_substring():
    """Verify branch labels containing the marker are untracked."""
    assert is_tracked_with_issue(_make_pr(label="feature/noticket-fix"), "noticket") is False
    assert is_tracked_with_issue(_make_pr(label="feature/JIRA-123"), "noticket") is True
    assert is_tracked_with_issue(_make_pr(label="feature/skip-fix"), "skip") is False


def test_build_statistics_measures_from_review_request():
    """Verify review, merge and production durations share the request time as start."""
    pr = _make_pr(created=-100, merged=-10)
    timeline = TimelineSummary(
        time_review_requested=_at(-90),
        time_first_reviewed=_at(-80),
        was_reviewed=True,
    )

    stat = build_pull_request_statistics(pr, timeline, {"c1": _at(-5)}, "noticket")

    assert stat.number == 1
    assert stat.time_to_review == 10
    assert stat.time_to_merge == 80
    assert stat.time_to_production == 85
    assert stat.was_reviewed is True
    assert stat.was_deployed is True
    assert stat.is_tracked_with_issue is True
    assert stat.was_closed_without_merge is False


def test_build_statistics_unreviewed_and_undeployed_have_no_durations():
    """Verify missing milestones leave their durations undefined."""
    pr = _make_pr(created=-100, merged=-10)
    timeline = TimelineSummary(time_review_requested=_at(-100), time_first_reviewed=None, was_reviewed=False)

    stat = build_pull_request_statistics(pr, timeline, {}, "noticket")

    assert stat.time_to_review is None
    assert stat.time_to_production is None
    assert stat.time_to_merge == 90
    assert stat.was_reviewed is False
    assert stat.was_deployed is False


def test_build_statistics_rounds_each_duration_individually():
    """Verify rounding happens per pull request before aggregation."""
    pr = _make_pr(created=-100, merged=-97.5)
    timeline = TimelineSummary(
        time_review_requested=_at(-100),
        time_first_reviewed=_at(-99.4),
        was_reviewed=True,
    )

    stat = build_pull_request_statistics(pr, timeline, {}, "noticket")

    assert stat.time_to_review == 1
    assert stat.time_to_merge == 3


def test_build_statistics_rejects_unmerged_pull_request():
    """Verify unmerged pull requests cannot produce a time to merge."""
    pr = _make_pr(merged=None)
    timeline = TimelineSummary(time_review_requested=_at(-100), time_first_reviewed=None, was_reviewed=False)

    with pytest.raises(DataValidationError):
        build_pull_request_statistics(pr, timeline, {}, "noticket")


def test_collect_statistics_preserves_order_with_worker_pool():
    """Verify concurrent timeline fetches return statistics in input order."""
    prs = [_make_pr(number=n, created=-100 - n, merged=-10) for n in range(1, 6)]
    client = Mock()
    client.list_timeline_events.side_effect = (
        lambda owner, repo, number, page: ([_reviewed(-100)], False)
    )

    stats_list = collect_pull_request_statistics(
        client, REPOSITORY, prs, {}, "noticket", max_workers=3
    )

    assert [stat.number for stat in stats_list] == [1, 2, 3, 4, 5]
    assert [stat.time_to_review for stat in stats_list] == [1, 2, 3, 4, 5]


def test_collect_statistics_propagates_worker_failure():
    """Verify a failed timeline fetch in the pool aborts the whole batch."""
    prs = [_make_pr(number=1), _make_pr(number=2)]
    client = Mock()

    def _timeline(owner, repo, number, page):
        if number == 2:
            raise RemoteFetchError("boom")
        return [], False

    client.list_timeline_events.side_effect = _timeline

    with pytest.raises(RemoteFetchError):
        collect_pull_request_statistics(client, REPOSITORY, prs, {}, "noticket", max_workers=2)


def _end_to_end_client() -> Mock:
    pr5 = _make_pr(number=5, created=-120, merged=-24)
    pr4 = _make_pr(number=4, created=-200, merged=-48, label="octo:noticket-cleanup")
    pr3 = _make_pr(number=3, created=-100, merged=-72)
    pr2 = _make_pr(number=2, created=-400, merged=-24 * 15)
    pr1 = _make_pr(number=1, created=-500, merged=-24 * 20)

    timelines = {
        5: [_commit(), _requested(-119), _reviewed(-116)],
        4: [_reviewed(-190), _commit()],
        3: [_requested(-99)],
        2: [_requested(-390)],
        1: [],
    }

    client = Mock()
    client.list_closed_pull_requests.return_value = ([pr5, pr4, pr3, pr2, pr1], True)
    client.list_timeline_events.side_effect = (
        lambda owner, repo, number, page: (timelines[number], False)
    )
    client.list_deployments.return_value = [Deployment(sha="c4", created_at=_at(-40))]
    return client


@pytest.mark.parametrize("max_workers", [1, 4])
def test_end_to_end_metrics_for_fixed_batch(max_workers):
    """Verify selection, correlation and aggregation on five synthetic pull requests."""
    client = _end_to_end_client()

    prs = select_pull_requests(client, REPOSITORY, NOW, timedelta(weeks=2))
    metrics = analyze_pull_requests(client, REPOSITORY, prs, "noticket", max_workers=max_workers)

    assert client.list_closed_pull_requests.call_count == 1
    client.list_deployments.assert_called_once_with("octo", "repo")
    assert metrics.repo_name == "octo/repo"
    assert metrics.total_pull_requests == 3
    assert metrics.pull_requests_with_review == 2
    assert metrics.pull_requests_without_issue == 1
    assert metrics.pull_requests_deployed == 2
    # review: #5 3h, #4 10h
    assert metrics.average_review_time == 6.5
    assert metrics.median_review_time == 6.5
    # merge: #5 95h, #4 152h, #3 27h
    assert metrics.median_time_to_merge == 95.0
    # production: #4 160h, #3 59h; #5 merged after the only deployment
    assert metrics.median_lead_time_for_changes == 109.5


def test_analyze_orders_batch_before_correlation():
    """Verify pull requests returned out of merge order are correlated newest first."""
    older = _make_pr(number=1, created=-100, merged=-50)
    newer = _make_pr(number=2, created=-100, merged=-20)
    client = Mock()
    client.list_timeline_events.return_value = ([], False)
    client.list_deployments.return_value = [Deployment(sha="c2", created_at=_at(-10))]

    metrics = analyze_pull_requests(client, REPOSITORY, [older, newer], "noticket")

    assert metrics.pull_requests_deployed == 2
    assert metrics.median_lead_time_for_changes == 90.0


def test_analyze_empty_batch_reports_zero_without_errors():
    """Verify an empty selection produces zero counts and no statistics."""
    client = Mock()
    client.list_deployments.return_value = []

    metrics = analyze_pull_requests(client, REPOSITORY, [], "noticket")

    assert metrics.total_pull_requests == 0
    assert metrics.average_review_time is None
    client.list_timeline_events.assert_not_called()


def test_build_statistics_missing_head_label_raises():
    """Verify an analyzed pull request without a head label is rejected, not guessed."""
    pr = _make_pr(number=7)
    pr.head_label = None
    timeline = TimelineSummary(time_review_requested=_at(-100), time_first_reviewed=None, was_reviewed=False)

    with pytest.raises(MissingFieldError, match="#7"):
        build_pull_request_statistics(pr, timeline, {}, "noticket")


def test_unselected_pull_request_without_head_label_does_not_abort_run():
    """Verify a label-less pull request that is never analyzed is harmless."""
    merged = _make_pr(number=2, created=-50, merged=-10)
    unmerged = _make_pr(number=1, created=-50, merged=None)
    unmerged.head_label = None
    client = Mock()
    client.list_closed_pull_requests.return_value = ([merged, unmerged], False)
    client.list_timeline_events.return_value = ([], False)
    client.list_deployments.return_value = []

    prs = select_pull_requests(client, REPOSITORY, NOW, timedelta(weeks=2))
    metrics = analyze_pull_requests(client, REPOSITORY, prs, "noticket")

    assert [pr.number for pr in prs] == [2]
    assert metrics.total_pull_requests == 1
    assert metrics.pull_requests_without_issue == 0
