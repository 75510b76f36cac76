"""Data models and database schemas."""

# Common data classes and enums
from .common import (
    QualityBucket,
    SentimentBucket,
    CategoryMapping,
    FeedbackRecord,
    DateRange,
    AnalyticsFilter,
    NamedTimeframe,
    ExplicitRange,
    TimeframeRequest,
    QualityScore,
    QualityDistribution,
    SentimentAnalysis,
    CategoryStat,
    VolumePoint,
    QualityTrendPoint,
    ProviderStat,
    AnalyticsResult,
    ComparisonChanges,
    ComparisonResult,
    FeedbackQuery,
    LocalAnalysis,
    ensure_utc
)

# SQLAlchemy database models
from .database import (
    Base,
    User,
    Feedback,
    FeedbackCategory,
    FeedbackCategoryMapping
)

# Validation classes
from .validation import (
    ValidationError,
    InvalidTimeframeError,
    AnalyticsQueryValidator,
    NAMED_TIMEFRAMES
)

__all__ = [
    # Enums
    'QualityBucket',
    'SentimentBucket',

    # Common data classes
    'CategoryMapping',
    'FeedbackRecord',
    'DateRange',
    'AnalyticsFilter',
    'NamedTimeframe',
    'ExplicitRange',
    'TimeframeRequest',
    'QualityScore',
    'QualityDistribution',
    'SentimentAnalysis',
    'CategoryStat',
    'VolumePoint',
    'QualityTrendPoint',
    'ProviderStat',
    'AnalyticsResult',
    'ComparisonChanges',
    'ComparisonResult',
    'FeedbackQuery',
    'LocalAnalysis',
    'ensure_utc',

    # SQLAlchemy models
    'Base',
    'User',
    'Feedback',
    'FeedbackCategory',
    'FeedbackCategoryMapping',

    # Validation
    'ValidationError',
    'InvalidTimeframeError',
    'AnalyticsQueryValidator',
    'NAMED_TIMEFRAMES'
]
