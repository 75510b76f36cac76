"""Aggregation of scored feedback records into an analytics summary."""

import logging
import math
import statistics
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.common import (
    AnalyticsFilter, AnalyticsResult, CategoryStat, FeedbackRecord,
    ProviderStat, QualityBucket, QualityDistribution, QualityTrendPoint,
    SentimentAnalysis, SentimentBucket, VolumePoint
)
from .scoring import record_composite, score, sentiment_bucket


logger = logging.getLogger(__name__)

LEGACY_CATEGORY_PREFIX = "legacy:"
UNCATEGORIZED = "Uncategorized"
ANONYMOUS_PROVIDER = "Anonymous"

BucketFn = Callable[[datetime], str]


def daily_bucket(moment: datetime) -> str:
    """``YYYY-MM-DD`` of the UTC date."""
    return moment.date().isoformat()


def week_of_month_bucket(moment: datetime) -> str:
    """``YYYY-MM-W<n>`` with n = ceil((day_of_month + first_weekday) / 7).

    ``first_weekday`` is the weekday of the 1st of the month with Sunday = 0.
    This is a calendar-row number within the month, not ISO-8601 week
    numbering; use ``iso_week_bucket`` for the latter.
    """
    first_weekday = (date(moment.year, moment.month, 1).weekday() + 1) % 7
    week = math.ceil((moment.day + first_weekday) / 7)
    return f"{moment.year:04d}-{moment.month:02d}-W{week}"


def iso_week_bucket(moment: datetime) -> str:
    """``YYYY-Www`` using ISO-8601 week numbering."""
    iso_year, iso_week, _ = moment.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def monthly_bucket(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def record_categories(record: FeedbackRecord) -> List[Tuple[str, str]]:
    """(category_id, category_name) pairs a record counts towards.

    Records without mappings fall back to their legacy category string under
    a prefixed synthetic id. Each category appears at most once.
    """
    if not record.category_mappings:
        name = record.category or UNCATEGORIZED
        return [(f"{LEGACY_CATEGORY_PREFIX}{name}", name)]

    seen = {}
    for mapping in record.category_mappings:
        seen.setdefault(mapping.category_id, mapping.category_name)
    return list(seen.items())


def apply_filters(records: Iterable[FeedbackRecord], analytics_filter: AnalyticsFilter) -> List[FeedbackRecord]:
    """Post-filter records against every constraint of ``analytics_filter``.

    Safe to run after a store that already applied some of the constraints.
    """
    category_ids = set(analytics_filter.category_ids or ())
    threshold = analytics_filter.quality_threshold
    kept = []

    for record in records:
        if not analytics_filter.date_range.contains(record.created_at):
            continue
        if analytics_filter.project_id and record.project_id != analytics_filter.project_id:
            continue
        if analytics_filter.user_id and record.user_id != analytics_filter.user_id:
            continue
        if category_ids and not any(m.category_id in category_ids for m in record.category_mappings):
            continue
        if threshold is not None:
            composite = record_composite(record)
            if composite is None or composite < threshold:
                continue
        kept.append(record)

    return kept


class Aggregator:
    """Builds an AnalyticsResult from records already restricted to a window."""

    def __init__(self, top_categories: int = 5, top_providers: int = 10,
                 bucket_fn: BucketFn = daily_bucket):
        self.top_categories = top_categories
        self.top_providers = top_providers
        self.bucket_fn = bucket_fn

    def aggregate(self, records: Sequence[FeedbackRecord]) -> AnalyticsResult:
        """Compute every metric of the analytics summary."""
        total_feedback = len(records)
        if total_feedback == 0:
            return AnalyticsResult.empty()

        average_quality, quality_distribution = self._quality_metrics(records)
        category_distribution = self._category_distribution(records)
        response_rate, average_response_time = self._response_metrics(records)
        logger.debug(f"Aggregated {total_feedback} feedback records into "
                     f"{len(category_distribution)} categories")

        return AnalyticsResult(
            total_feedback=total_feedback,
            average_quality=average_quality,
            quality_distribution=quality_distribution,
            sentiment_analysis=self._sentiment_analysis(records),
            category_distribution=category_distribution,
            top_categories=category_distribution[:self.top_categories],
            feedback_volume=self.volume_trend(records),
            quality_trend=self.quality_trend(records),
            top_providers=self._top_providers(records),
            response_rate=response_rate,
            average_response_time=average_response_time,
        )

    def _quality_metrics(self, records: Sequence[FeedbackRecord]) -> Tuple[float, QualityDistribution]:
        """Average composite and bucket counts over scorable records."""
        buckets = {bucket: 0 for bucket in QualityBucket}
        composites = []

        for record in records:
            quality = score(record)
            if quality is None:
                continue
            composites.append(quality.composite)
            buckets[quality.bucket] += 1

        average_quality = statistics.fmean(composites) if composites else 0.0
        distribution = QualityDistribution(
            excellent=buckets[QualityBucket.EXCELLENT],
            good=buckets[QualityBucket.GOOD],
            average=buckets[QualityBucket.AVERAGE],
            basic=buckets[QualityBucket.BASIC],
        )
        return average_quality, distribution

    def _sentiment_analysis(self, records: Sequence[FeedbackRecord]) -> SentimentAnalysis:
        # Independent of quality scorability
        counts = {bucket: 0 for bucket in SentimentBucket}
        for record in records:
            bucket = sentiment_bucket(record.sentiment)
            if bucket is not None:
                counts[bucket] += 1

        return SentimentAnalysis(
            positive=counts[SentimentBucket.POSITIVE],
            neutral=counts[SentimentBucket.NEUTRAL],
            negative=counts[SentimentBucket.NEGATIVE],
        )

    def _category_distribution(self, records: Sequence[FeedbackRecord]) -> Tuple[CategoryStat, ...]:
        """Per-category counts, sorted by count descending."""
        names: Dict[str, str] = {}
        counts: Dict[str, int] = defaultdict(int)
        composites: Dict[str, List[float]] = defaultdict(list)

        for record in records:
            composite = record_composite(record)
            for category_id, category_name in record_categories(record):
                names.setdefault(category_id, category_name)
                counts[category_id] += 1
                if composite is not None:
                    composites[category_id].append(composite)

        stats = [
            CategoryStat(
                category_id=category_id,
                category_name=names[category_id],
                count=counts[category_id],
                quality_score=statistics.fmean(composites[category_id]) if composites[category_id] else 0.0,
            )
            for category_id in names
        ]
        # sorted() is stable, so ties keep first-seen order
        return tuple(sorted(stats, key=lambda stat: stat.count, reverse=True))

    def volume_trend(self, records: Sequence[FeedbackRecord],
                     bucket_fn: Optional[BucketFn] = None) -> Tuple[VolumePoint, ...]:
        """Record counts per time bucket, ascending by bucket key."""
        bucket_fn = bucket_fn or self.bucket_fn
        counts: Dict[str, int] = defaultdict(int)
        for record in records:
            counts[bucket_fn(record.created_at)] += 1

        return tuple(VolumePoint(date=key, count=counts[key]) for key in sorted(counts))

    def quality_trend(self, records: Sequence[FeedbackRecord],
                      bucket_fn: Optional[BucketFn] = None) -> Tuple[QualityTrendPoint, ...]:
        """Mean composite per time bucket over scorable records, ascending."""
        bucket_fn = bucket_fn or self.bucket_fn
        composites: Dict[str, List[float]] = defaultdict(list)
        for record in records:
            composite = record_composite(record)
            if composite is not None:
                composites[bucket_fn(record.created_at)].append(composite)

        return tuple(
            QualityTrendPoint(date=key, average_quality=statistics.fmean(composites[key]))
            for key in sorted(composites)
        )

    def _top_providers(self, records: Sequence[FeedbackRecord]) -> Tuple[ProviderStat, ...]:
        """Most active providers among scorable records."""
        providers: Dict[str, Dict] = {}

        for record in records:
            composite = record_composite(record)
            if composite is None:
                continue
            entry = providers.setdefault(record.user_id, {
                'user_name': record.user_name or ANONYMOUS_PROVIDER,
                'avatar_url': record.avatar_url,
                'count': 0,
                'quality_sum': 0.0,
            })
            entry['count'] += 1
            entry['quality_sum'] += composite

        ranked = sorted(providers.items(), key=lambda item: item[1]['count'], reverse=True)
        return tuple(
            ProviderStat(
                user_id=user_id,
                user_name=entry['user_name'],
                avatar_url=entry['avatar_url'],
                feedback_count=entry['count'],
                average_quality=entry['quality_sum'] / entry['count'],
            )
            for user_id, entry in ranked[:self.top_providers]
        )

    def _response_metrics(self, records: Sequence[FeedbackRecord]) -> Tuple[float, float]:
        """Share of records with a response time, and the mean response time."""
        response_times = [r.response_time_hours for r in records if r.response_time_hours is not None]
        response_rate = len(response_times) / len(records) if records else 0.0
        average_response_time = statistics.fmean(response_times) if response_times else 0.0
        return response_rate, average_response_time
