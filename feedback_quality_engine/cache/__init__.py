"""Request caching."""

from .request_cache import (
    RequestCache,
    CacheEntry,
    StaleLookup,
    DEFAULT_TTL,
    cached
)

__all__ = [
    'RequestCache',
    'CacheEntry',
    'StaleLookup',
    'DEFAULT_TTL',
    'cached'
]
