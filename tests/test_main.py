"""
Tests for the service composition root
"""

import pytest
from fastapi.testclient import TestClient

from feedback_quality_engine.analytics.store import InMemoryFeedbackStore, SqlAlchemyFeedbackStore
from feedback_quality_engine.config import SystemConfig
from feedback_quality_engine.main import FeedbackAnalyticsSystem


def make_config(**cache):
    config = SystemConfig()
    config.database.url = "sqlite:///:memory:"
    for key, value in cache.items():
        setattr(config.cache, key, value)
    return config


class TestFeedbackAnalyticsSystem:

    def test_wires_sqlalchemy_store_by_default(self):
        system = FeedbackAnalyticsSystem(config=make_config(coalesce_cold_misses=True))

        assert isinstance(system.store, SqlAlchemyFeedbackStore)
        assert system.facade.cache is system.cache
        assert system.cache._coalesce is True
        assert system.facade.ttl == system.config.cache.analytics_ttl

    def test_lifespan_starts_and_stops_sweeper(self):
        system = FeedbackAnalyticsSystem(config=make_config(sweep_interval=0.01))

        with TestClient(system.app) as client:
            assert system.get_system_status()['sweeper_running'] is True
            assert client.get("/health").json()['database'] is True
            assert client.get("/analytics").json()['totalFeedback'] == 0

        assert system._sweeper is None
        assert len(system.cache) == 0

    def test_custom_store(self):
        system = FeedbackAnalyticsSystem(config=make_config(), store=InMemoryFeedbackStore())

        assert system.db_manager is None
        with TestClient(system.app) as client:
            assert client.get("/health").json()['status'] == "healthy"

    def test_invalid_configuration(self):
        config = make_config()
        config.analytics.max_retries = 0
        with pytest.raises(ValueError, match="Invalid configuration"):
            FeedbackAnalyticsSystem(config=config)
