"""Quality and sentiment scoring for individual feedback records."""

import re
from typing import Dict, Optional

from ..models.common import (
    FeedbackRecord, LocalAnalysis, QualityBucket, QualityScore, SentimentBucket
)


EXCELLENT_THRESHOLD = 0.8
GOOD_THRESHOLD = 0.6
AVERAGE_THRESHOLD = 0.4

POSITIVE_SENTIMENT_THRESHOLD = 0.3
NEGATIVE_SENTIMENT_THRESHOLD = -0.3

POSITIVE_WORDS = frozenset([
    "good", "great", "excellent", "amazing", "love",
    "like", "helpful", "useful", "impressive",
])
NEGATIVE_WORDS = frozenset([
    "bad", "poor", "terrible", "awful", "hate",
    "dislike", "confusing", "difficult", "frustrating",
])
ACTIONABLE_MARKERS = ("should", "could", "would")

QUALITY_LEVELS = {
    QualityBucket.EXCELLENT: {
        'level': "Excellent",
        'description': "Highly specific, actionable, and novel feedback",
        'color': "green",
    },
    QualityBucket.GOOD: {
        'level': "Good",
        'description': "Clear, helpful feedback with specific points",
        'color': "teal",
    },
    QualityBucket.AVERAGE: {
        'level': "Average",
        'description': "Somewhat helpful feedback that could be more specific",
        'color': "amber",
    },
    QualityBucket.BASIC: {
        'level': "Basic",
        'description': "General feedback that lacks specificity or actionability",
        'color': "slate",
    },
}


def composite_score(specificity: float, actionability: float, novelty: float) -> float:
    """Mean of the three quality sub-scores."""
    return (specificity + actionability + novelty) / 3


def record_composite(record: FeedbackRecord) -> Optional[float]:
    """Composite score of a record, or None if any sub-score is missing."""
    if (record.specificity_score is None or
            record.actionability_score is None or
            record.novelty_score is None):
        return None
    return composite_score(record.specificity_score, record.actionability_score, record.novelty_score)


def quality_bucket(composite: float) -> QualityBucket:
    if composite >= EXCELLENT_THRESHOLD:
        return QualityBucket.EXCELLENT
    if composite >= GOOD_THRESHOLD:
        return QualityBucket.GOOD
    if composite >= AVERAGE_THRESHOLD:
        return QualityBucket.AVERAGE
    return QualityBucket.BASIC


def sentiment_bucket(sentiment: Optional[float]) -> Optional[SentimentBucket]:
    """Classify a sentiment value; None when the record has no sentiment."""
    if sentiment is None:
        return None
    if sentiment > POSITIVE_SENTIMENT_THRESHOLD:
        return SentimentBucket.POSITIVE
    if sentiment < NEGATIVE_SENTIMENT_THRESHOLD:
        return SentimentBucket.NEGATIVE
    return SentimentBucket.NEUTRAL


def score(record: FeedbackRecord) -> Optional[QualityScore]:
    """Score one record.

    Returns None when the record is not scorable (a quality sub-score is
    missing); such records still count towards totals elsewhere.
    """
    composite = record_composite(record)
    if composite is None:
        return None
    return QualityScore(
        composite=composite,
        bucket=quality_bucket(composite),
        sentiment_bucket=sentiment_bucket(record.sentiment),
    )


def quality_level_description(score_value: float) -> Dict[str, str]:
    """Display level, description and colour for a composite score."""
    return dict(QUALITY_LEVELS[quality_bucket(score_value)])


def analyze_locally(content: str) -> LocalAnalysis:
    """Heuristic quality analysis used when no analysis service is available.

    Longer text counts as more specific, modal verbs as more actionable and a
    small lexicon drives sentiment. The numbers are placeholders, not a model.
    """
    words = re.split(r"\W+", content.lower())
    positive_count = sum(1 for word in words if word in POSITIVE_WORDS)
    negative_count = sum(1 for word in words if word in NEGATIVE_WORDS)

    specificity = min(0.5 + len(words) / 100, 0.9)
    actionability = 0.7 if any(marker in content for marker in ACTIONABLE_MARKERS) else 0.5
    sentiment = (positive_count - negative_count) / max(1, positive_count + negative_count)

    return LocalAnalysis(
        specificity_score=specificity,
        actionability_score=actionability,
        novelty_score=0.6,
        sentiment=sentiment,
    )
