"""Comparison of an analytics window against the window before it."""

import logging
from datetime import timedelta
from typing import Awaitable, Callable

from ..models.common import (
    AnalyticsFilter, AnalyticsResult, ComparisonChanges, ComparisonResult, DateRange
)


logger = logging.getLogger(__name__)

Analyze = Callable[[AnalyticsFilter], Awaitable[AnalyticsResult]]


def percentage_change(previous: float, current: float) -> float:
    """Fractional change from ``previous`` to ``current`` (0.5 means +50%).

    Growth from zero is reported as 1.0 and no activity on both sides as 0.0,
    so the result is always finite.
    """
    if previous == 0:
        return 1.0 if current > 0 else 0.0
    return (current - previous) / previous


def previous_window(date_range: DateRange) -> DateRange:
    """Window of the same duration ending one day before ``date_range`` starts."""
    previous_end = date_range.start - timedelta(days=1)
    duration = date_range.end - date_range.start
    return DateRange(start=previous_end - duration, end=previous_end)


def compute_changes(previous: AnalyticsResult, current: AnalyticsResult) -> ComparisonChanges:
    return ComparisonChanges(
        feedback_volume=percentage_change(previous.total_feedback, current.total_feedback),
        quality_score=percentage_change(previous.average_quality, current.average_quality),
        response_rate=percentage_change(previous.response_rate, current.response_rate),
        response_time=percentage_change(previous.average_response_time, current.average_response_time),
    )


class ComparisonEngine:
    """Runs an analysis for the current and previous windows and diffs them."""

    def __init__(self, analyze: Analyze):
        """
        Args:
            analyze: Coroutine function computing the result for one filter;
                it may raise, failures are absorbed here.
        """
        self.analyze = analyze

    async def compare(self, analytics_filter: AnalyticsFilter) -> ComparisonResult:
        try:
            current = await self.analyze(analytics_filter)
            window = f"previous:{analytics_filter.window}" if analytics_filter.window else None
            previous_filter = analytics_filter.with_date_range(
                previous_window(analytics_filter.date_range), window=window
            )
            previous = await self.analyze(previous_filter)
        except Exception as e:
            logger.error(f"Error computing comparison analytics: {e}")
            return ComparisonResult.empty()

        return ComparisonResult(previous=previous, changes=compute_changes(previous, current))
