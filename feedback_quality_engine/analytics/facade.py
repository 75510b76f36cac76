"""Entry point used by the API and exports to obtain analytics."""

import calendar
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Sequence, Union

from ..cache.request_cache import RequestCache
from ..models.common import (
    AnalyticsFilter, AnalyticsResult, ComparisonResult, DateRange, ExplicitRange,
    FeedbackQuery, LocalAnalysis, NamedTimeframe, TimeframeRequest
)
from ..models.validation import InvalidTimeframeError
from ..utils.logging import StructuredLogger
from ..utils.resilience import retry_with_backoff
from .aggregator import Aggregator, apply_filters
from .comparison import ComparisonEngine
from .export import export_to_csv, export_to_pdf
from .scoring import analyze_locally
from .store import FeedbackStore


logger = logging.getLogger(__name__)
events = StructuredLogger(__name__)

ANALYTICS_CACHE_PREFIX = "feedback-analytics"
QUALITY_CACHE_PREFIX = "feedback-quality"
QUALITY_CACHE_TTL = 30 * 60.0
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

AnalyticsRequest = Union[AnalyticsFilter, NamedTimeframe, ExplicitRange, None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def resolve_date_range(request: TimeframeRequest, now: Optional[datetime] = None) -> DateRange:
    """Turn a named timeframe or explicit range into a concrete window."""
    now = now or _utcnow()

    if isinstance(request, ExplicitRange):
        try:
            return DateRange(start=request.start, end=request.end)
        except ValueError as e:
            raise InvalidTimeframeError(str(e)) from e

    timeframe = request.timeframe
    if timeframe in ("7days", "30days", "90days"):
        return DateRange(start=now - timedelta(days=int(timeframe[:-4])), end=now)
    if timeframe == "week":
        return DateRange(start=now - timedelta(days=7), end=now)
    if timeframe == "month":
        return DateRange(start=shift_months(now, -1), end=now)
    if timeframe == "year":
        return DateRange(start=shift_months(now, -12), end=now)

    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "thisMonth":
        return DateRange(start=month_start, end=now)
    if timeframe == "lastMonth":
        return DateRange(start=shift_months(month_start, -1), end=month_start - timedelta(microseconds=1))
    if timeframe == "all":
        return DateRange(start=EPOCH, end=now)

    raise InvalidTimeframeError(f"Unknown timeframe: {timeframe}")


class AnalyticsFacade:
    """Normalizes requests and serves analytics through the request cache.

    Public ``get_*`` methods never raise: failures are logged and an all-zero
    result is returned so dashboards can always render.
    """

    def __init__(
        self,
        store: FeedbackStore,
        cache: RequestCache,
        aggregator: Optional[Aggregator] = None,
        ttl: Optional[float] = None,
        stale_while_revalidate: bool = True,
        max_retries: int = 3,
        initial_delay: float = 0.3,
        max_delay: float = 5.0,
        comparison_days: int = 30,
        default_timeframe: str = "30days",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.cache = cache
        self.aggregator = aggregator or Aggregator()
        self.ttl = ttl
        self.stale_while_revalidate = stale_while_revalidate
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.comparison_days = comparison_days
        self.default_timeframe = default_timeframe
        self.clock = clock
        self.comparison = ComparisonEngine(self._cached_analytics)

    def build_filter(
        self,
        request: AnalyticsRequest = None,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
        category_ids: Optional[Sequence[str]] = None,
        quality_threshold: Optional[float] = None,
        default_days: Optional[int] = None,
    ) -> AnalyticsFilter:
        """Normalize caller input into an AnalyticsFilter with a concrete window.

        Without a request the window is the last ``default_days`` days, or the
        configured default timeframe when no day count is given.
        """
        if isinstance(request, AnalyticsFilter):
            return request

        now = self.clock()
        if request is None and default_days:
            window = f"{default_days}days"
            date_range = DateRange(start=now - timedelta(days=default_days), end=now)
        else:
            request = request or NamedTimeframe(self.default_timeframe)
            window = request.timeframe if isinstance(request, NamedTimeframe) else None
            date_range = resolve_date_range(request, now)

        return AnalyticsFilter(
            date_range=date_range,
            project_id=project_id,
            user_id=user_id,
            category_ids=tuple(category_ids) if category_ids else None,
            quality_threshold=quality_threshold,
            window=window,
        )

    def cache_key(self, analytics_filter: AnalyticsFilter) -> str:
        base = f"{ANALYTICS_CACHE_PREFIX}:{analytics_filter.project_id or '*'}"
        return RequestCache.create_key(base, analytics_filter.cache_params())

    async def _compute(self, analytics_filter: AnalyticsFilter) -> AnalyticsResult:
        records = await self.store.fetch_feedback(FeedbackQuery.from_filter(analytics_filter))
        result = self.aggregator.aggregate(apply_filters(records, analytics_filter))
        events.log_analytics_computed(
            result.total_feedback,
            project_id=analytics_filter.project_id,
            start=analytics_filter.date_range.start.date(),
            end=analytics_filter.date_range.end.date(),
        )
        return result

    async def _cached_analytics(self, analytics_filter: AnalyticsFilter,
                                bypass_cache: bool = False) -> AnalyticsResult:
        """Cached, retried computation; raises once retries are exhausted."""
        return await self.cache.with_cache(
            lambda: retry_with_backoff(
                lambda: self._compute(analytics_filter),
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
            ),
            ttl=self.ttl,
            key=self.cache_key(analytics_filter),
            bypass_cache=bypass_cache,
            stale_while_revalidate=self.stale_while_revalidate,
        )

    async def get_feedback_analytics(self, request: AnalyticsRequest = None,
                                     bypass_cache: bool = False, **filters) -> AnalyticsResult:
        """Analytics for one window, or the all-zero result on failure."""
        try:
            analytics_filter = self.build_filter(request, **filters)
            return await self._cached_analytics(analytics_filter, bypass_cache=bypass_cache)
        except Exception as e:
            events.log_error_with_context(str(e), operation="get_feedback_analytics")
            return AnalyticsResult.empty()

    async def get_comparison_analytics(self, request: AnalyticsRequest = None,
                                       comparison_days: Optional[int] = None,
                                       **filters) -> ComparisonResult:
        """Previous-window result and deltas, or an all-zero comparison on failure."""
        try:
            analytics_filter = self.build_filter(
                request, default_days=comparison_days or self.comparison_days, **filters
            )
        except Exception as e:
            logger.error(f"Error in get_comparison_analytics: {e}")
            return ComparisonResult.empty()
        return await self.comparison.compare(analytics_filter)

    async def analyze_feedback(self, content: str) -> LocalAnalysis:
        """Heuristic quality analysis of feedback text, cached for 30 minutes."""
        async def analyze():
            return analyze_locally(content)

        return await self.cache.with_cache(
            analyze,
            ttl=QUALITY_CACHE_TTL,
            key=f"{QUALITY_CACHE_PREFIX}:{hashlib.sha256(content.encode()).hexdigest()}",
        )

    def invalidate(self, project_id: Optional[str] = None) -> int:
        """Drop cached analytics for one project, or for every project."""
        prefix = f"{ANALYTICS_CACHE_PREFIX}:{project_id}:" if project_id else f"{ANALYTICS_CACHE_PREFIX}:"
        removed = self.cache.invalidate_by_prefix(prefix)
        logger.info(f"Invalidated {removed} cached analytics entries for {project_id or 'all projects'}")
        return removed

    def cache_stats(self) -> Dict[str, int]:
        return self.cache.get_stats()

    def export_csv(self, result: AnalyticsResult) -> str:
        return export_to_csv(result)

    def export_pdf(self, result: AnalyticsResult) -> bytes:
        return export_to_pdf(result)
