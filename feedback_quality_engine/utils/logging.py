"""Root logger setup and ``EVENT=`` style structured log lines."""

import logging
import logging.handlers
import sys
from typing import List

from feedback_quality_engine.config.settings import LoggingConfig

# Libraries that are noisy at INFO
QUIET_LOGGERS = ('sqlalchemy.engine', 'uvicorn.access', 'asyncio')


def _build_handlers(config: LoggingConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.file_path:
        handlers.append(logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        ))
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Route all records to stdout, plus a rotating file when ``file_path`` is set.

    Calling it again replaces the handlers installed by the previous call.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper()))
    root.handlers.clear()

    formatter = logging.Formatter(config.format)
    for handler in _build_handlers(config):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class StructuredLogger:
    """Writes ``EVENT=<name> key=value ...`` lines to a named logger."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_event(self, level: str, event: str, **fields) -> None:
        parts = [f"EVENT={event}"]
        parts.extend(f"{key}={value}" for key, value in fields.items())
        self.logger.log(getattr(logging, level.upper()), " ".join(parts))

    def log_cache_event(self, action: str, key: str, **fields) -> None:
        """``action`` is one of hit, stale, miss or revalidated."""
        self.log_event("DEBUG", "CACHE", action=action, key=key, **fields)

    def log_analytics_computed(self, total_feedback: int, **fields) -> None:
        self.log_event("INFO", "ANALYTICS_COMPUTED", total_feedback=total_feedback, **fields)

    def log_error_with_context(self, error: str, **fields) -> None:
        self.log_event("ERROR", "SYSTEM_ERROR", error=error, **fields)
