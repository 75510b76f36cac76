"""Feedback quality analytics: scoring, aggregation, comparison and export."""

from .aggregator import (
    Aggregator,
    apply_filters,
    daily_bucket,
    week_of_month_bucket,
    iso_week_bucket,
    monthly_bucket
)
from .comparison import ComparisonEngine, percentage_change, previous_window
from .export import ExportUnavailableError, export_to_csv, export_to_pdf
from .facade import AnalyticsFacade, resolve_date_range
from .store import FeedbackStore, InMemoryFeedbackStore, SqlAlchemyFeedbackStore

__all__ = [
    'Aggregator',
    'apply_filters',
    'daily_bucket',
    'week_of_month_bucket',
    'iso_week_bucket',
    'monthly_bucket',
    'ComparisonEngine',
    'percentage_change',
    'previous_window',
    'ExportUnavailableError',
    'export_to_csv',
    'export_to_pdf',
    'AnalyticsFacade',
    'resolve_date_range',
    'FeedbackStore',
    'InMemoryFeedbackStore',
    'SqlAlchemyFeedbackStore'
]
