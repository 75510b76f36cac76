"""Shared utilities."""

from .resilience import (
    RetryConfig,
    NonRetryableError,
    calculate_delay,
    retry_with_backoff,
    retryable,
    batch_requests
)

__all__ = [
    'RetryConfig',
    'NonRetryableError',
    'calculate_delay',
    'retry_with_backoff',
    'retryable',
    'batch_requests'
]
