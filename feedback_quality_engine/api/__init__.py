"""HTTP API layer."""

from .analytics_api import AnalyticsAPI, AnalyzeRequest, AnalyzeResponse, create_analytics_api

__all__ = [
    'AnalyticsAPI',
    'AnalyzeRequest',
    'AnalyzeResponse',
    'create_analytics_api'
]
