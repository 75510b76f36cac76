"""Configuration management."""

from .settings import (
    SystemConfig,
    DatabaseConfig,
    CacheConfig,
    AnalyticsConfig,
    APIConfig,
    LoggingConfig
)

__all__ = [
    'SystemConfig',
    'DatabaseConfig',
    'CacheConfig',
    'AnalyticsConfig',
    'APIConfig',
    'LoggingConfig'
]
