"""In-memory request cache with TTL expiry and stale-while-revalidate.

A ``RequestCache`` is plain process state: it is created once by the
composition root, handed to the services that read through it, and lost on
restart. All methods run on the event loop thread; there is no locking.

Concurrent ``with_cache`` calls that miss on the same key each invoke ``fn``
unless the cache was built with ``coalesce_cold_misses=True``, in which case
later callers await the first caller's in-flight fetch. If that caller is
cancelled, one of the waiters starts a fresh fetch for the rest. Stale
revalidation is always limited to one background fetch per key.
"""

import asyncio
import functools
import inspect
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional, Set

from ..utils.logging import StructuredLogger


logger = logging.getLogger(__name__)
events = StructuredLogger(__name__)

DEFAULT_TTL = 5 * 60.0


@dataclass
class CacheEntry:
    """Single cache entry with its write time and expiry (epoch seconds)."""
    data: Any
    timestamp: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class FetchAbandoned(Exception):
    """Set on a coalesced fetch whose caller was cancelled before it finished."""


class StaleLookup(NamedTuple):
    """Result of a lookup that tolerates expired entries."""
    data: Any
    is_stale: bool


class RequestCache:
    """TTL cache for the results of async read calls."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
        coalesce_cold_misses: bool = False,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._coalesce = coalesce_cold_misses
        self._revalidating: Set[str] = set()
        self._in_flight: Dict[str, asyncio.Future] = {}
        self._background: Set[asyncio.Task] = set()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def set_default_ttl(self, ttl: float) -> None:
        """Set the TTL applied when ``set``/``with_cache`` get none."""
        self._default_ttl = ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired.

        Expired entries are purged on access.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None

        return entry.data

    def get_stale(self, key: str) -> StaleLookup:
        """Return the cached value even past expiry, flagged as stale."""
        entry = self._entries.get(key)
        if entry is None:
            return StaleLookup(None, False)

        return StaleLookup(entry.data, entry.is_expired(self._clock()))

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        """Store ``data`` under ``key`` for ``ttl`` seconds."""
        ttl = self._default_ttl if ttl is None else ttl
        timestamp = self._clock()
        self._entries[key] = CacheEntry(data=data, timestamp=timestamp, expires_at=timestamp + ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def clear_expired(self) -> int:
        """Remove every expired entry; returns the number removed."""
        now = self._clock()
        expired_keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    def invalidate_by_prefix(self, key_prefix: str) -> int:
        """Remove every entry whose key starts with ``key_prefix``."""
        matching = [key for key in self._entries if key.startswith(key_prefix)]
        for key in matching:
            del self._entries[key]
        return len(matching)

    def get_stats(self) -> Dict[str, int]:
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            'total_items': len(self._entries),
            'valid_items': len(self._entries) - expired,
            'expired_items': expired,
            'revalidating_count': len(self._revalidating),
            'in_flight_count': len(self._in_flight),
        }

    async def with_cache(
        self,
        fn: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
        key: Optional[str] = None,
        bypass_cache: bool = False,
        stale_while_revalidate: bool = False,
    ) -> Any:
        """Return ``await fn()`` through the cache.

        Args:
            fn: Zero-argument coroutine function producing the value
            ttl: Entry lifetime in seconds (defaults to the cache default)
            key: Cache key (defaults to the function's qualified name)
            bypass_cache: Always call ``fn`` and overwrite the entry
            stale_while_revalidate: Serve an expired entry immediately and
                refresh it in the background

        Returns:
            The cached or freshly fetched value
        """
        ttl = self._default_ttl if ttl is None else ttl
        key = key or _default_key(fn)

        if bypass_cache:
            data = await fn()
            self.set(key, data, ttl)
            return data

        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(self._clock()):
                events.log_cache_event("hit", key)
                return entry.data

            if stale_while_revalidate:
                if key not in self._revalidating:
                    self._schedule_revalidation(key, fn, ttl)
                events.log_cache_event("stale", key)
                return entry.data

            del self._entries[key]

        events.log_cache_event("miss", key)
        if self._coalesce:
            return await self._fetch_coalesced(key, fn, ttl)

        data = await fn()
        self.set(key, data, ttl)
        return data

    async def _fetch_coalesced(self, key: str, fn: Callable[[], Awaitable[Any]], ttl: float) -> Any:
        while key in self._in_flight:
            try:
                return await asyncio.shield(self._in_flight[key])
            except FetchAbandoned:
                # The fetching caller was cancelled; the first waiter to wake takes over
                continue

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            data = await fn()
        except asyncio.CancelledError:
            future.set_exception(FetchAbandoned(key))
            future.exception()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported twice
            future.exception()
            raise
        else:
            self.set(key, data, ttl)
            future.set_result(data)
            return data
        finally:
            self._in_flight.pop(key, None)

    def _schedule_revalidation(self, key: str, fn: Callable[[], Awaitable[Any]], ttl: float) -> None:
        self._revalidating.add(key)
        task = asyncio.get_running_loop().create_task(self._revalidate(key, fn, ttl))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _revalidate(self, key: str, fn: Callable[[], Awaitable[Any]], ttl: float) -> None:
        try:
            data = await fn()
            self.set(key, data, ttl)
            events.log_cache_event("revalidated", key)
        except Exception as e:
            # The stale entry stays in place
            logger.error(f"Error revalidating cache for key {key}: {e}")
        finally:
            self._revalidating.discard(key)

    async def aclose(self) -> None:
        """Wait for outstanding background revalidations to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @staticmethod
    def create_key(base: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Build a deterministic key from ``base`` and ``params``.

        Parameters are sorted by name and None values are dropped, so the
        same logical parameters always give the same key.
        """
        params = params or {}
        sorted_params = {name: params[name] for name in sorted(params) if params[name] is not None}
        return f"{base}:{json.dumps(sorted_params, separators=(',', ':'), sort_keys=True, default=str)}"


def _default_key(fn: Callable) -> str:
    return f"{getattr(fn, '__module__', '')}.{getattr(fn, '__qualname__', repr(fn))}"


def _is_method(func: Callable) -> bool:
    params = list(inspect.signature(func).parameters)
    return bool(params) and params[0] in ('self', 'cls')


def cached(cache: RequestCache, ttl: Optional[float] = None, key: Optional[str] = None,
           stale_while_revalidate: bool = False):
    """Decorator caching a coroutine function or method in ``cache``.

    Without an explicit ``key`` the entry is keyed by the qualified name and
    the JSON-encoded call arguments (``self``/``cls`` excluded).
    """
    def decorator(func: Callable[..., Awaitable[Any]]):
        skip_first = _is_method(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            key_args = args[1:] if skip_first else args
            cache_key = key or (
                f"{func.__qualname__}:"
                f"{json.dumps([list(key_args), kwargs], sort_keys=True, default=str)}"
            )
            return await cache.with_cache(
                lambda: func(*args, **kwargs),
                ttl=ttl,
                key=cache_key,
                stale_while_revalidate=stale_while_revalidate,
            )

        return wrapper
    return decorator
