"""
Tests for per-record quality and sentiment scoring
"""

import pytest

from feedback_quality_engine.analytics.scoring import (
    analyze_locally, composite_score, quality_bucket, quality_level_description,
    score, sentiment_bucket
)
from feedback_quality_engine.models.common import QualityBucket, SentimentBucket


class TestQualityBuckets:
    """Tests for composite score classification."""

    @pytest.mark.parametrize("composite, expected", [
        (1.0, QualityBucket.EXCELLENT),
        (0.8, QualityBucket.EXCELLENT),
        (0.79, QualityBucket.GOOD),
        (0.6, QualityBucket.GOOD),
        (0.59, QualityBucket.AVERAGE),
        (0.4, QualityBucket.AVERAGE),
        (0.39, QualityBucket.BASIC),
        (0.0, QualityBucket.BASIC),
    ])
    def test_thresholds(self, composite, expected):
        assert quality_bucket(composite) == expected

    def test_composite_is_mean(self):
        assert composite_score(0.9, 0.6, 0.3) == pytest.approx(0.6)


class TestSentimentBuckets:
    """Tests for sentiment classification."""

    @pytest.mark.parametrize("sentiment, expected", [
        (0.31, SentimentBucket.POSITIVE),
        (0.3, SentimentBucket.NEUTRAL),
        (0.0, SentimentBucket.NEUTRAL),
        (-0.3, SentimentBucket.NEUTRAL),
        (-0.31, SentimentBucket.NEGATIVE),
    ])
    def test_thresholds(self, sentiment, expected):
        assert sentiment_bucket(sentiment) == expected

    def test_missing_sentiment(self):
        assert sentiment_bucket(None) is None


class TestScore:
    """Tests for scoring whole records."""

    def test_scorable_record(self, make_record):
        result = score(make_record(specificity_score=0.9, actionability_score=0.8,
                                   novelty_score=0.7, sentiment=0.5))
        assert result.composite == pytest.approx(0.8)
        assert result.bucket == QualityBucket.EXCELLENT
        assert result.sentiment_bucket == SentimentBucket.POSITIVE

    def test_missing_sub_score_is_not_scorable(self, make_record):
        assert score(make_record(specificity_score=0.9, actionability_score=0.8)) is None

    def test_scorable_without_sentiment(self, make_record):
        result = score(make_record(composite=0.5))
        assert result.bucket == QualityBucket.AVERAGE
        assert result.sentiment_bucket is None


class TestQualityLevelDescription:

    def test_levels(self):
        assert quality_level_description(0.85)['level'] == "Excellent"
        assert quality_level_description(0.65)['color'] == "teal"
        assert quality_level_description(0.1)['level'] == "Basic"

    def test_returns_copy(self):
        description = quality_level_description(0.5)
        description['level'] = "changed"
        assert quality_level_description(0.5)['level'] == "Average"


class TestAnalyzeLocally:
    """Tests for the heuristic text analysis."""

    def test_actionable_feedback(self):
        analysis = analyze_locally("The save button should be larger")
        assert analysis.actionability_score == 0.7
        assert analysis.novelty_score == 0.6
        assert analysis.category == "User Experience"
        assert analysis.subcategory == "General Feedback"

    def test_non_actionable_feedback(self):
        assert analyze_locally("Nice colours").actionability_score == 0.5

    def test_sentiment_from_lexicon(self):
        assert analyze_locally("I love it, great and helpful").sentiment == 1.0
        assert analyze_locally("terrible and confusing").sentiment == -1.0
        assert analyze_locally("good but confusing").sentiment == 0.0
        assert analyze_locally("the header").sentiment == 0.0

    def test_specificity_grows_with_length_and_is_capped(self):
        short = analyze_locally("bad")
        long = analyze_locally(" ".join(["word"] * 200))
        assert short.specificity_score < long.specificity_score
        assert long.specificity_score == 0.9
