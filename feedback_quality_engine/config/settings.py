"""Configuration settings and environment management."""

import os
from typing import Optional
from dataclasses import dataclass, field
import json
import logging

from ..models.validation import NAMED_TIMEFRAMES


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    url: str = "sqlite:///feedback_quality.db"
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False


@dataclass
class CacheConfig:
    """Request cache configuration (durations in seconds)."""
    default_ttl: float = 300.0  # 5 minutes
    analytics_ttl: float = 300.0
    stale_while_revalidate: bool = True
    coalesce_cold_misses: bool = False
    sweep_interval: float = 60.0


@dataclass
class AnalyticsConfig:
    """Analytics engine configuration."""
    max_retries: int = 3
    initial_delay: float = 0.3  # seconds
    max_delay: float = 5.0  # seconds
    comparison_days: int = 30
    default_timeframe: str = "30days"
    top_categories: int = 5
    top_providers: int = 10


@dataclass
class APIConfig:
    """HTTP API configuration."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == 'true'


@dataclass
class SystemConfig:
    """Main system configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'SystemConfig':
        """Create configuration from environment variables."""
        config = cls()

        # Database configuration
        config.database.url = os.getenv('DATABASE_URL', config.database.url)
        config.database.echo = _env_bool('DB_ECHO', config.database.echo)

        # Cache configuration
        config.cache.default_ttl = float(os.getenv('CACHE_DEFAULT_TTL', str(config.cache.default_ttl)))
        config.cache.analytics_ttl = float(os.getenv('CACHE_ANALYTICS_TTL', str(config.cache.analytics_ttl)))
        config.cache.stale_while_revalidate = _env_bool('CACHE_STALE_WHILE_REVALIDATE', config.cache.stale_while_revalidate)
        config.cache.coalesce_cold_misses = _env_bool('CACHE_COALESCE_COLD_MISSES', config.cache.coalesce_cold_misses)
        config.cache.sweep_interval = float(os.getenv('CACHE_SWEEP_INTERVAL', str(config.cache.sweep_interval)))

        # Analytics configuration
        config.analytics.max_retries = int(os.getenv('ANALYTICS_MAX_RETRIES', str(config.analytics.max_retries)))
        config.analytics.initial_delay = float(os.getenv('ANALYTICS_INITIAL_DELAY', str(config.analytics.initial_delay)))
        config.analytics.max_delay = float(os.getenv('ANALYTICS_MAX_DELAY', str(config.analytics.max_delay)))
        config.analytics.comparison_days = int(os.getenv('ANALYTICS_COMPARISON_DAYS', str(config.analytics.comparison_days)))
        config.analytics.default_timeframe = os.getenv('ANALYTICS_DEFAULT_TIMEFRAME', config.analytics.default_timeframe)

        # API configuration
        config.api.host = os.getenv('API_HOST', config.api.host)
        config.api.port = int(os.getenv('API_PORT', str(config.api.port)))

        # Logging configuration
        config.logging.level = os.getenv('LOG_LEVEL', config.logging.level)
        config.logging.file_path = os.getenv('LOG_FILE_PATH', config.logging.file_path)

        return config

    @classmethod
    def from_file(cls, config_path: str) -> 'SystemConfig':
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)

            config = cls()

            # Update each section with file data, ignoring unknown keys
            for section_name in ('database', 'cache', 'analytics', 'api', 'logging'):
                section = getattr(config, section_name)
                for key, value in config_data.get(section_name, {}).items():
                    if hasattr(section, key):
                        setattr(section, key, value)

            return config

        except FileNotFoundError:
            logging.warning(f"Configuration file {config_path} not found, using defaults")
            return cls.from_env()
        except json.JSONDecodeError as e:
            logging.error(f"Invalid JSON in configuration file {config_path}: {e}")
            return cls.from_env()

    def validate(self) -> bool:
        """Validate configuration settings."""
        errors = []

        if not self.database.url:
            errors.append("Database URL is required")

        if self.cache.default_ttl <= 0 or self.cache.analytics_ttl <= 0:
            errors.append("Cache TTL values must be positive")

        if self.analytics.max_retries < 1:
            errors.append("Analytics max_retries must be at least 1")

        if self.analytics.initial_delay < 0 or self.analytics.max_delay < self.analytics.initial_delay:
            errors.append("Retry delays must satisfy 0 <= initial_delay <= max_delay")

        if not 1 <= self.analytics.comparison_days <= 365:
            errors.append("Comparison window must be between 1 and 365 days")

        if self.analytics.default_timeframe not in NAMED_TIMEFRAMES:
            errors.append(f"Unknown default timeframe: {self.analytics.default_timeframe}")

        if errors:
            for error in errors:
                logging.error(f"Configuration validation error: {error}")
            return False

        return True
