"""Feedback stores: the read side the analytics engine depends on."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List

from sqlalchemy.orm import selectinload

from ..database.connection import DatabaseManager, handle_db_exceptions
from ..models.common import FeedbackQuery, FeedbackRecord
from ..models.database import Feedback, FeedbackCategoryMapping


logger = logging.getLogger(__name__)


class FeedbackStore(ABC):
    """Source of feedback rows matching a query."""

    @abstractmethod
    async def fetch_feedback(self, query: FeedbackQuery) -> List[FeedbackRecord]:
        """Return the records inside ``query.date_range`` matching its filters."""
        pass


class InMemoryFeedbackStore(FeedbackStore):
    """Store backed by a list of records."""

    def __init__(self, records: Iterable[FeedbackRecord] = ()):
        self.records: List[FeedbackRecord] = list(records)

    def add(self, *records: FeedbackRecord) -> None:
        self.records.extend(records)

    async def fetch_feedback(self, query: FeedbackQuery) -> List[FeedbackRecord]:
        category_ids = set(query.category_ids or ())
        return [
            record for record in self.records
            if query.date_range.contains(record.created_at)
            and (not query.project_id or record.project_id == query.project_id)
            and (not query.user_id or record.user_id == query.user_id)
            and (not category_ids or any(m.category_id in category_ids for m in record.category_mappings))
        ]


class SqlAlchemyFeedbackStore(FeedbackStore):
    """Store reading the ``feedback`` table with its category mappings and users."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def fetch_feedback(self, query: FeedbackQuery) -> List[FeedbackRecord]:
        # Session work is blocking; keep it off the event loop
        return await asyncio.to_thread(self._fetch_sync, query)

    @handle_db_exceptions
    def _fetch_sync(self, query: FeedbackQuery) -> List[FeedbackRecord]:
        start = query.date_range.start
        end = query.date_range.end

        with self.db_manager.get_session() as db:
            q = db.query(Feedback).options(
                selectinload(Feedback.user),
                selectinload(Feedback.category_mappings).selectinload(FeedbackCategoryMapping.category),
            ).filter(
                Feedback.created_at >= start,
                Feedback.created_at <= end,
            )

            if query.project_id:
                q = q.filter(Feedback.project_id == query.project_id)

            if query.user_id:
                q = q.filter(Feedback.user_id == query.user_id)

            if query.category_ids:
                q = q.filter(Feedback.category_mappings.any(
                    FeedbackCategoryMapping.category_id.in_(query.category_ids)
                ))

            rows = q.order_by(Feedback.created_at).all()
            records = [row.to_record() for row in rows]

        logger.debug(f"Fetched {len(records)} feedback rows for {query.project_id or 'all projects'}")
        return records
