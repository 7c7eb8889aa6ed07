"""Statistics and formatting helpers for PR delivery metrics.

This module provides utilities for:
- Computing linear-interpolation percentiles from pre-sorted samples.
- Summarizing duration samples (count, average, median, P75, P90).
- Aggregating per pull request statistics into repository metrics.
- Building a human-readable report of the metrics.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from .models import DurationSummary, Metrics, PullRequestStatistics

logger = logging.getLogger(__name__)


def calculate_percentile(sorted_values: List[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks,
      so the 50th percentile of an even-sized sample is the mean of the two
      middle values.

    Args:
        sorted_values: Sorted numeric samples.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        Percentile value as ``float`` or ``None`` when input is empty.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return float(sorted_values[0])

    if p >= 100:
        return float(sorted_values[-1])

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return float(sorted_values[int(position)])

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def calculate_median(values: List[float]) -> Optional[float]:
    """Median of unsorted samples, ``None`` when there are none."""
    return calculate_percentile(sorted(values), 50)


def calculate_average(values: List[float]) -> Optional[float]:
    """Arithmetic mean of the samples, ``None`` when there are none."""
    if not values:
        return None
    return sum(values) / len(values)


def summarize_durations(samples: List[Optional[int]]) -> DurationSummary:
    """Summarize hour durations, ignoring undefined (``None``) samples."""
    clean_samples = sorted(float(sample) for sample in samples if sample is not None)

    return DurationSummary(
        count=len(clean_samples),
        average=calculate_average(clean_samples),
        p50=calculate_percentile(clean_samples, 50),
        p75=calculate_percentile(clean_samples, 75),
        p90=calculate_percentile(clean_samples, 90),
    )


def aggregate_metrics(repo_name: str, stats_list: List[PullRequestStatistics]) -> Metrics:
    """Aggregate per pull request statistics into repository metrics.

    Business logic:
    - Review time covers reviewed pull requests only.
    - Time to merge covers every pull request in the batch.
    - Lead time for changes covers deployed pull requests only.
    - An empty batch yields zero counts and ``None`` statistics.
    """
    reviewed = [stat for stat in stats_list if stat.was_reviewed]
    deployed = [stat for stat in stats_list if stat.was_deployed]

    metrics = Metrics(
        repo_name=repo_name,
        total_pull_requests=len(stats_list),
        pull_requests_without_issue=sum(1 for stat in stats_list if not stat.is_tracked_with_issue),
        pull_requests_with_review=len(reviewed),
        pull_requests_deployed=len(deployed),
        review_time=summarize_durations([stat.time_to_review for stat in reviewed]),
        time_to_merge=summarize_durations([stat.time_to_merge for stat in stats_list]),
        lead_time_for_changes=summarize_durations([stat.time_to_production for stat in deployed]),
    )

    if not stats_list:
        logger.info("No pull requests to aggregate", extra={"repo": repo_name})

    return metrics


def format_hours(hours: Optional[float]) -> str:
    """Format an hour value for the report.

    Returns:
        ``"n/a"`` when ``hours`` is ``None``; whole values without decimals,
        fractional values with one decimal place.
    """
    if hours is None:
        return "n/a"

    if float(hours).is_integer():
        return f"{int(hours)} hours"
    return f"{hours:.1f} hours"


def generate_report(metrics: Metrics) -> str:
    """Generate a human-readable metrics report for a repository."""
    lines = [
        f"Repository: {metrics.repo_name}",
        "-------",
        "METRICS",
        "-------",
        f"Total pull requests:              {metrics.total_pull_requests}",
        f"Untracked pull requests:          {metrics.pull_requests_without_issue}",
        f"Pull requests with reviews:       {metrics.pull_requests_with_review}",
        f"Deployed pull requests:           {metrics.pull_requests_deployed}",
        f"Review time (average):            {format_hours(metrics.average_review_time)}",
        f"Review time (median):             {format_hours(metrics.median_review_time)}",
        f"Time to merge (median):           {format_hours(metrics.median_time_to_merge)}",
        f"Lead time for changes (median):   {format_hours(metrics.median_lead_time_for_changes)}",
        "",
        "Percentiles (P75 / P90)",
        f"   Review time:            {format_hours(metrics.review_time.p75)} / "
        f"{format_hours(metrics.review_time.p90)}",
        f"   Time to merge:          {format_hours(metrics.time_to_merge.p75)} / "
        f"{format_hours(metrics.time_to_merge.p90)}",
        f"   Lead time for changes:  {format_hours(metrics.lead_time_for_changes.p75)} / "
        f"{format_hours(metrics.lead_time_for_changes.p90)}",
    ]

    return "\n".join(lines)
