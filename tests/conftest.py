"""Shared fixtures for the feedback quality engine tests."""

import itertools
from datetime import datetime, timezone

import pytest

from feedback_quality_engine.models.common import CategoryMapping, FeedbackRecord


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_record():
    """Factory for FeedbackRecord with sensible defaults."""
    counter = itertools.count(1)

    def factory(composite=None, created_at=NOW, categories=(), **overrides):
        if composite is not None:
            overrides.setdefault('specificity_score', composite)
            overrides.setdefault('actionability_score', composite)
            overrides.setdefault('novelty_score', composite)
        mappings = tuple(CategoryMapping(category_id=cid, category_name=name) for cid, name in categories)
        defaults = {
            'id': f"fb-{next(counter)}",
            'project_id': "project-1",
            'user_id': "user-1",
            'created_at': created_at,
            'category_mappings': mappings,
        }
        defaults.update(overrides)
        return FeedbackRecord(**defaults)

    return factory
