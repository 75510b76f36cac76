"""
Tests for the analytics HTTP API
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from feedback_quality_engine.analytics.facade import AnalyticsFacade
from feedback_quality_engine.analytics.store import FeedbackStore, InMemoryFeedbackStore
from feedback_quality_engine.api import create_analytics_api
from feedback_quality_engine.cache import RequestCache
from feedback_quality_engine.database.connection import DatabaseManager

from conftest import NOW


class BrokenStore(FeedbackStore):
    async def fetch_feedback(self, query):
        raise ConnectionError("database unreachable")


def build_client(store, db_manager=None):
    facade = AnalyticsFacade(store=store, cache=RequestCache(), clock=lambda: NOW,
                             initial_delay=0.001, max_delay=0.001)
    return TestClient(create_analytics_api(facade, db_manager))


@pytest.fixture
def client(make_record):
    records = [
        make_record(composite=0.9, sentiment=0.5, project_id="p1", user_name="Ada",
                    categories=[("c1", "Design")], created_at=NOW - timedelta(days=1),
                    response_time_hours=2.0),
        make_record(composite=0.5, sentiment=-0.5, project_id="p1", category="Bug",
                    created_at=NOW - timedelta(days=2)),
        make_record(composite=0.7, project_id="p2", created_at=NOW - timedelta(days=3)),
        make_record(composite=0.7, project_id="p1", created_at=NOW - timedelta(days=45)),
    ]
    return build_client(InMemoryFeedbackStore(records))


class TestAnalyticsEndpoint:
    """Tests for GET /analytics."""

    def test_default_window(self, client):
        response = client.get("/analytics")
        assert response.status_code == 200

        body = response.json()
        assert body['totalFeedback'] == 3
        assert body['qualityDistribution'] == {'excellent': 1, 'good': 1, 'average': 1, 'basic': 0}
        assert body['sentimentAnalysis'] == {'positive': 1, 'neutral': 0, 'negative': 1}
        assert body['responseRate'] == pytest.approx(1 / 3)

    def test_project_filter(self, client):
        body = client.get("/analytics", params={"project_id": "p1", "timeframe": "7days"}).json()

        assert body['totalFeedback'] == 2
        assert body['averageQuality'] == pytest.approx(0.7)
        names = {c['categoryName'] for c in body['categoryDistribution']}
        assert names == {"Design", "Bug"}

    def test_explicit_range(self, client):
        params = {
            "start": (NOW - timedelta(days=60)).isoformat(),
            "end": NOW.isoformat(),
            "project_id": "p1",
        }
        body = client.get("/analytics", params=params).json()
        assert body['totalFeedback'] == 3

    def test_category_filter(self, client):
        body = client.get("/analytics", params={"category_ids": ["c1"]}).json()
        assert body['totalFeedback'] == 1
        assert body['topProviders'][0]['userName'] == "Ada"

    def test_unknown_timeframe_is_rejected(self, client):
        assert client.get("/analytics", params={"timeframe": "fortnight"}).status_code == 422

    def test_reversed_range_is_rejected(self, client):
        params = {"start": NOW.isoformat(), "end": (NOW - timedelta(days=1)).isoformat()}
        assert client.get("/analytics", params=params).status_code == 422

    def test_half_range_is_rejected(self, client):
        assert client.get("/analytics", params={"start": NOW.isoformat()}).status_code == 422

    def test_timeframe_and_range_together_are_rejected(self, client):
        params = {"timeframe": "7days", "start": NOW.isoformat(), "end": NOW.isoformat()}
        assert client.get("/analytics", params=params).status_code == 422

    def test_threshold_out_of_range_is_rejected(self, client):
        assert client.get("/analytics", params={"quality_threshold": 1.5}).status_code == 422

    def test_store_failure_returns_zeroed_metrics(self):
        client = build_client(BrokenStore())
        response = client.get("/analytics")

        assert response.status_code == 200
        assert response.json()['totalFeedback'] == 0
        assert response.json()['averageQuality'] == 0.0


class TestComparisonEndpoint:

    def test_comparison(self, client):
        response = client.get("/analytics/comparison", params={"project_id": "p1", "comparison_days": 30})
        assert response.status_code == 200

        body = response.json()
        assert body['previous']['totalFeedback'] == 1
        assert body['changes']['feedbackVolume'] == pytest.approx(1.0)

    def test_comparison_uses_configured_days(self):
        windows = []

        class RecordingStore(InMemoryFeedbackStore):
            async def fetch_feedback(self, query):
                windows.append(query.date_range.end - query.date_range.start)
                return await super().fetch_feedback(query)

        facade = AnalyticsFacade(store=RecordingStore(), cache=RequestCache(), clock=lambda: NOW,
                                 comparison_days=7, initial_delay=0.001, max_delay=0.001)
        client = TestClient(create_analytics_api(facade))

        assert client.get("/analytics/comparison").status_code == 200
        assert windows == [timedelta(days=7), timedelta(days=7)]

        windows.clear()
        client.get("/analytics/comparison", params={"comparison_days": 14})
        assert windows == [timedelta(days=14), timedelta(days=14)]

    def test_comparison_days_bounds(self, client):
        assert client.get("/analytics/comparison", params={"comparison_days": 0}).status_code == 422
        assert client.get("/analytics/comparison", params={"comparison_days": 366}).status_code == 422


class TestExportEndpoints:

    def test_csv(self, client):
        response = client.get("/analytics/export/csv", params={"project_id": "p1"})

        assert response.status_code == 200
        assert response.headers['content-type'].startswith("text/plain")
        lines = response.text.split("\n")
        assert lines[0] == "data:text/csv;charset=utf-8,Category,Metric,Value"
        assert lines[1] == "Overview,Total Feedback,2"

    def test_pdf_not_implemented(self, client):
        response = client.get("/analytics/export/pdf")
        assert response.status_code == 501
        assert "CSV" in response.json()['detail']


class TestAnalyzeEndpoint:

    def test_analyze(self, client):
        response = client.post("/feedback/analyze", json={"content": "The menu should be simpler"})
        assert response.status_code == 200
        assert response.json()['actionability_score'] == 0.7

    def test_blank_content_is_rejected(self, client):
        assert client.post("/feedback/analyze", json={"content": "   "}).status_code == 422


class TestCacheEndpoints:

    def test_stats_and_invalidate(self, client):
        client.get("/analytics", params={"project_id": "p1"})
        client.get("/analytics", params={"project_id": "p2"})
        assert client.get("/cache/stats").json()['total_items'] == 2

        response = client.delete("/cache", params={"project_id": "p1"})
        assert response.json()['removed'] == 1

        assert client.delete("/cache").json()['removed'] == 1
        assert client.get("/cache/stats").json()['total_items'] == 0


class TestHealthEndpoint:

    def test_health_without_database(self, client):
        body = client.get("/health").json()
        assert body['status'] == "healthy"
        assert body['database'] is None

    def test_health_with_database(self):
        manager = DatabaseManager("sqlite:///:memory:")
        manager.initialize()
        client = build_client(InMemoryFeedbackStore(), db_manager=manager)

        body = client.get("/health").json()
        assert body['status'] == "healthy"
        assert body['database'] is True
        manager.close()
