"""Common data models for the feedback quality analytics engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class QualityBucket(Enum):
    """Quality classification of a composite score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BASIC = "basic"


class SentimentBucket(Enum):
    """Sentiment classification of a -1..1 sentiment value."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def ensure_utc(value: Union[datetime, str]) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _pick(row: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in row and row[name] is not None:
            return row[name]
    return default


@dataclass(frozen=True)
class CategoryMapping:
    """Link between a feedback record and a managed category."""
    category_id: str
    category_name: str


@dataclass(frozen=True)
class FeedbackRecord:
    """Raw feedback row as supplied by a FeedbackStore."""
    id: str
    project_id: str
    user_id: str
    created_at: datetime
    category: Optional[str] = None
    category_mappings: Tuple[CategoryMapping, ...] = ()
    severity: int = 3
    sentiment: Optional[float] = None
    specificity_score: Optional[float] = None
    actionability_score: Optional[float] = None
    novelty_score: Optional[float] = None
    response_time_hours: Optional[float] = None
    user_name: Optional[str] = None
    avatar_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'created_at', ensure_utc(self.created_at))
        object.__setattr__(self, 'category_mappings', tuple(self.category_mappings))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'FeedbackRecord':
        """Build a record from a camelCase or snake_case row mapping."""
        raw_mappings = _pick(row, 'categoryMapping', 'category_mappings', 'feedback_category_mappings', default=[])
        mappings = []
        for mapping in raw_mappings:
            if isinstance(mapping, CategoryMapping):
                mappings.append(mapping)
                continue
            # Joined rows may nest the category under a relation key
            nested = _pick(mapping, 'category', 'feedback_categories', default={})
            category_id = _pick(mapping, 'categoryId', 'category_id', default=_pick(nested, 'id'))
            if category_id is None:
                continue
            name = _pick(mapping, 'categoryName', 'category_name', default=_pick(nested, 'name', default=str(category_id)))
            mappings.append(CategoryMapping(category_id=str(category_id), category_name=name))

        user = _pick(row, 'user', default={})
        return cls(
            id=str(_pick(row, 'id')),
            project_id=str(_pick(row, 'projectId', 'project_id', default='')),
            user_id=str(_pick(row, 'userId', 'user_id', default='')),
            created_at=_pick(row, 'createdAt', 'created_at'),
            category=_pick(row, 'category'),
            category_mappings=tuple(mappings),
            severity=int(_pick(row, 'severity', default=3)),
            sentiment=_pick(row, 'sentiment'),
            specificity_score=_pick(row, 'specificityScore', 'specificity_score'),
            actionability_score=_pick(row, 'actionabilityScore', 'actionability_score'),
            novelty_score=_pick(row, 'noveltyScore', 'novelty_score'),
            response_time_hours=_pick(row, 'responseTimeHours', 'response_time_hours'),
            user_name=_pick(row, 'userName', 'user_name', default=_pick(user, 'full_name', 'name')),
            avatar_url=_pick(row, 'avatarUrl', 'avatar_url', default=_pick(user, 'avatar_url')),
        )


@dataclass(frozen=True)
class DateRange:
    """Inclusive analytics window."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, 'start', ensure_utc(self.start))
        object.__setattr__(self, 'end', ensure_utc(self.end))
        if self.start > self.end:
            raise ValueError("Date range start must not be after its end")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class AnalyticsFilter:
    """Normalized analytics filter; the date range is always concrete.

    ``window`` names a clock-relative window (``30days``, ``previous:30days``).
    When set it stands in for the resolved bounds in the cache key, so repeated
    requests for the same named window share one entry as the clock moves.
    """
    date_range: DateRange
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    category_ids: Optional[Tuple[str, ...]] = None
    quality_threshold: Optional[float] = None
    window: Optional[str] = None

    def __post_init__(self):
        if self.category_ids is not None:
            object.__setattr__(self, 'category_ids', tuple(sorted(self.category_ids)) or None)

    def with_date_range(self, date_range: DateRange, window: Optional[str] = None) -> 'AnalyticsFilter':
        return AnalyticsFilter(
            date_range=date_range,
            project_id=self.project_id,
            user_id=self.user_id,
            category_ids=self.category_ids,
            quality_threshold=self.quality_threshold,
            window=window,
        )

    def cache_params(self) -> Dict[str, Any]:
        """Parameters that identify this filter in a cache key."""
        if self.window:
            bounds = {'window': self.window}
        else:
            bounds = {
                'start': self.date_range.start.isoformat(),
                'end': self.date_range.end.isoformat(),
            }
        return {
            'project_id': self.project_id,
            'user_id': self.user_id,
            **bounds,
            'category_ids': list(self.category_ids) if self.category_ids else None,
            'quality_threshold': self.quality_threshold,
        }


@dataclass(frozen=True)
class NamedTimeframe:
    """Caller asked for a named window such as ``30days`` or ``lastMonth``."""
    timeframe: str
    kind: str = field(default="named", init=False)


@dataclass(frozen=True)
class ExplicitRange:
    """Caller supplied explicit window bounds."""
    start: datetime
    end: datetime
    kind: str = field(default="range", init=False)


TimeframeRequest = Union[NamedTimeframe, ExplicitRange]


@dataclass(frozen=True)
class QualityScore:
    """Composite quality of one record with its buckets."""
    composite: float
    bucket: QualityBucket
    sentiment_bucket: Optional[SentimentBucket]


@dataclass(frozen=True)
class QualityDistribution:
    excellent: int = 0
    good: int = 0
    average: int = 0
    basic: int = 0

    def total(self) -> int:
        return self.excellent + self.good + self.average + self.basic


@dataclass(frozen=True)
class SentimentAnalysis:
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    def total(self) -> int:
        return self.positive + self.neutral + self.negative


@dataclass(frozen=True)
class CategoryStat:
    category_id: str
    category_name: str
    count: int
    quality_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'categoryId': self.category_id,
            'categoryName': self.category_name,
            'count': self.count,
            'qualityScore': self.quality_score,
        }


@dataclass(frozen=True)
class VolumePoint:
    date: str
    count: int


@dataclass(frozen=True)
class QualityTrendPoint:
    date: str
    average_quality: float


@dataclass(frozen=True)
class ProviderStat:
    user_id: str
    user_name: str
    feedback_count: int
    average_quality: float
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'userId': self.user_id,
            'userName': self.user_name,
            'feedbackCount': self.feedback_count,
            'averageQuality': self.average_quality,
        }
        if self.avatar_url:
            data['avatarUrl'] = self.avatar_url
        return data


@dataclass(frozen=True)
class AnalyticsResult:
    """Analytics summary for one filter window."""
    total_feedback: int = 0
    average_quality: float = 0.0
    quality_distribution: QualityDistribution = QualityDistribution()
    sentiment_analysis: SentimentAnalysis = SentimentAnalysis()
    category_distribution: Tuple[CategoryStat, ...] = ()
    top_categories: Tuple[CategoryStat, ...] = ()
    feedback_volume: Tuple[VolumePoint, ...] = ()
    quality_trend: Tuple[QualityTrendPoint, ...] = ()
    top_providers: Tuple[ProviderStat, ...] = ()
    response_rate: float = 0.0
    average_response_time: float = 0.0

    @classmethod
    def empty(cls) -> 'AnalyticsResult':
        """All-zero result rendered when analytics cannot be computed."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalFeedback': self.total_feedback,
            'averageQuality': self.average_quality,
            'qualityDistribution': {
                'excellent': self.quality_distribution.excellent,
                'good': self.quality_distribution.good,
                'average': self.quality_distribution.average,
                'basic': self.quality_distribution.basic,
            },
            'sentimentAnalysis': {
                'positive': self.sentiment_analysis.positive,
                'neutral': self.sentiment_analysis.neutral,
                'negative': self.sentiment_analysis.negative,
            },
            'categoryDistribution': [c.to_dict() for c in self.category_distribution],
            'topCategories': [c.to_dict() for c in self.top_categories],
            'feedbackVolume': [{'date': p.date, 'count': p.count} for p in self.feedback_volume],
            'qualityTrend': [{'date': p.date, 'averageQuality': p.average_quality} for p in self.quality_trend],
            'topProviders': [p.to_dict() for p in self.top_providers],
            'responseRate': self.response_rate,
            'averageResponseTime': self.average_response_time,
        }


@dataclass(frozen=True)
class ComparisonChanges:
    """Fractional deltas between two windows (0.5 means +50%)."""
    feedback_volume: float = 0.0
    quality_score: float = 0.0
    response_rate: float = 0.0
    response_time: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'feedbackVolume': self.feedback_volume,
            'qualityScore': self.quality_score,
            'responseRate': self.response_rate,
            'responseTime': self.response_time,
        }


@dataclass(frozen=True)
class ComparisonResult:
    previous: AnalyticsResult = AnalyticsResult()
    changes: ComparisonChanges = ComparisonChanges()

    @classmethod
    def empty(cls) -> 'ComparisonResult':
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {'previous': self.previous.to_dict(), 'changes': self.changes.to_dict()}


@dataclass(frozen=True)
class FeedbackQuery:
    """Read request passed to a FeedbackStore."""
    date_range: DateRange
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    category_ids: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_filter(cls, analytics_filter: AnalyticsFilter) -> 'FeedbackQuery':
        return cls(
            date_range=analytics_filter.date_range,
            project_id=analytics_filter.project_id,
            user_id=analytics_filter.user_id,
            category_ids=analytics_filter.category_ids,
        )


@dataclass
class LocalAnalysis:
    """Heuristic quality metrics for a piece of feedback text."""
    specificity_score: float
    actionability_score: float
    novelty_score: float
    sentiment: float
    category: str = "User Experience"
    subcategory: str = "General Feedback"
