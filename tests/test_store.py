"""
Tests for the feedback stores against in-memory SQLite
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from feedback_quality_engine.analytics.store import InMemoryFeedbackStore, SqlAlchemyFeedbackStore
from feedback_quality_engine.config.settings import DatabaseConfig
from feedback_quality_engine.database.connection import DatabaseError, DatabaseManager
from feedback_quality_engine.models.common import DateRange, FeedbackQuery
from feedback_quality_engine.models.database import (
    Feedback, FeedbackCategory, FeedbackCategoryMapping, User
)

from conftest import NOW


@pytest.fixture
def db_manager():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.initialize()
    manager.create_tables()

    with manager.get_session() as session:
        session.add_all([
            User(id="u1", full_name="Ada Lovelace", avatar_url="https://img/ada.png"),
            User(id="u2", full_name=None),
            FeedbackCategory(id="c1", name="Design", project_id="p1"),
            FeedbackCategory(id="c2", name="Performance", project_id="p1"),
        ])
        session.flush()
        session.add_all([
            Feedback(id="f1", project_id="p1", user_id="u1", content="Great layout",
                     sentiment=0.6, specificity_score=0.9, actionability_score=0.8,
                     novelty_score=0.7, response_time_hours=2.5,
                     created_at=NOW - timedelta(days=1)),
            Feedback(id="f2", project_id="p1", user_id="u2", content="Slow page",
                     category="Bug", created_at=NOW - timedelta(days=3)),
            Feedback(id="f3", project_id="p2", user_id="u1", content="Other project",
                     created_at=NOW - timedelta(days=2)),
            Feedback(id="f4", project_id="p1", user_id="u1", content="Too old",
                     created_at=NOW - timedelta(days=90)),
        ])
        session.flush()
        session.add_all([
            FeedbackCategoryMapping(feedback_id="f1", category_id="c1"),
            FeedbackCategoryMapping(feedback_id="f1", category_id="c2"),
        ])

    yield manager
    manager.close()


@pytest.fixture
def window():
    return DateRange(start=NOW - timedelta(days=30), end=NOW)


class TestSqlAlchemyFeedbackStore:
    """Tests for the SQLAlchemy-backed store."""

    def test_date_range_and_project(self, db_manager, window):
        store = SqlAlchemyFeedbackStore(db_manager)
        records = asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, project_id="p1")))

        assert [r.id for r in records] == ["f2", "f1"]

    def test_record_conversion(self, db_manager, window):
        store = SqlAlchemyFeedbackStore(db_manager)
        records = asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, user_id="u1")))
        record = next(r for r in records if r.id == "f1")

        assert record.created_at == NOW - timedelta(days=1)
        assert record.created_at.tzinfo is not None
        assert record.user_name == "Ada Lovelace"
        assert record.avatar_url == "https://img/ada.png"
        assert {m.category_name for m in record.category_mappings} == {"Design", "Performance"}
        assert record.response_time_hours == 2.5

    def test_legacy_category_row(self, db_manager, window):
        store = SqlAlchemyFeedbackStore(db_manager)
        records = asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, user_id="u2")))

        assert len(records) == 1
        assert records[0].category == "Bug"
        assert records[0].category_mappings == ()
        assert records[0].user_name is None

    def test_category_filter(self, db_manager, window):
        store = SqlAlchemyFeedbackStore(db_manager)
        records = asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, category_ids=("c2",))))
        assert [r.id for r in records] == ["f1"]

    def test_database_errors_are_wrapped(self, window):
        manager = DatabaseManager("sqlite:///:memory:")
        manager.initialize()
        store = SqlAlchemyFeedbackStore(manager)

        # Tables were never created
        with pytest.raises(DatabaseError):
            asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window)))
        manager.close()

    def test_health_check(self, db_manager):
        assert db_manager.health_check() is True


class TestInMemoryFeedbackStore:

    def test_filters(self, make_record, window):
        store = InMemoryFeedbackStore([
            make_record(project_id="p1", categories=[("c1", "Design")]),
            make_record(project_id="p1"),
            make_record(project_id="p2"),
            make_record(project_id="p1", created_at=NOW - timedelta(days=60)),
        ])

        assert len(asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, project_id="p1")))) == 2
        assert len(asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window, category_ids=("c1",))))) == 1

    def test_add(self, make_record, window):
        store = InMemoryFeedbackStore()
        store.add(make_record(), make_record())
        assert len(asyncio.run(store.fetch_feedback(FeedbackQuery(date_range=window)))) == 2


class TestDatabaseManager:
    """Tests for engine setup on SQLite."""

    def test_from_config(self):
        config = DatabaseConfig(url="sqlite:///:memory:", pool_size=3, max_overflow=4)
        manager = DatabaseManager.from_config(config)

        assert manager.database_url == "sqlite:///:memory:"
        assert manager.pool_size == 3
        assert manager.max_overflow == 4

    def test_foreign_keys_are_enforced(self, db_manager):
        with pytest.raises(IntegrityError):
            with db_manager.get_session() as session:
                session.add(Feedback(id="orphan", project_id="p1", user_id="missing",
                                     content="No such user", created_at=NOW))

    def test_close_allows_reinitialize(self):
        manager = DatabaseManager("sqlite:///:memory:")
        manager.initialize()
        manager.close()

        assert manager.engine is None
        assert manager.health_check() is True
        manager.close()
