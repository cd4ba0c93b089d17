"""
Request deduplication for Firestore reads.

Concurrent callers asking for the same key share one in-flight request, and
the result stays cached for a short TTL so repeated dashboard loads do not
hit Firestore again.
"""
import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger("rentals")

DEFAULT_CACHE_TTL_SECONDS = 30.0

_MISSING = object()


class RequestDeduplicator:
    """Thread-safe map of pending requests plus a TTL result cache."""

    def __init__(self, default_ttl: float = DEFAULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: Dict[str, Future] = {}
        self._cache: Dict[str, Tuple[Any, float]] = {}

    def deduplicate(self, key: str, request_fn: Callable[[], Any], ttl: Optional[float] = None):
        """
        Return the cached result for key, join a pending request for it, or
        run request_fn and cache what it returns for ttl seconds.

        Exceptions raised by request_fn are not cached; every caller waiting
        on the same request receives them.
        """
        ttl = self.default_ttl if ttl is None else ttl

        with self._lock:
            cached = self._get_cached_locked(key)
            if cached is not _MISSING:
                logger.debug(f"[DEDUP] Returning cached result for {key}")
                return cached

            future = self._pending.get(key)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._pending[key] = future

        if not is_owner:
            logger.debug(f"[DEDUP] Joining existing request for {key}")
            return future.result()

        logger.debug(f"[DEDUP] Creating new request for {key}")
        try:
            result = request_fn()
        except BaseException as exc:
            with self._lock:
                if self._pending.get(key) is future:
                    del self._pending[key]
            future.set_exception(exc)
            raise

        with self._lock:
            # Invalidated while in flight: hand the result to waiters only
            if self._pending.get(key) is future:
                del self._pending[key]
                if ttl > 0:
                    self._cache[key] = (result, self._clock() + ttl)
        future.set_result(result)
        return result

    def _get_cached_locked(self, key: str):
        entry = self._cache.get(key)
        if entry is None:
            return _MISSING
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._cache[key]
            return _MISSING
        return value

    def get_cached(self, key: str, default=None):
        with self._lock:
            value = self._get_cached_locked(key)
        return default if value is _MISSING else value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)
            self._pending.pop(key, None)
        logger.debug(f"[DEDUP] Invalidated cache for {key}")

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every cached or pending key starting with prefix."""
        with self._lock:
            keys = {key for key in self._cache if key.startswith(prefix)}
            keys.update(key for key in self._pending if key.startswith(prefix))
            for key in keys:
                self._cache.pop(key, None)
                self._pending.pop(key, None)
        if keys:
            logger.debug(f"[DEDUP] Invalidated {len(keys)} keys under {prefix}")
        return len(keys)

    def clear_all(self) -> None:
        with self._lock:
            self._cache.clear()
            self._pending.clear()
        logger.debug("[DEDUP] Cleared all cache and pending requests")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "cacheSize": len(self._cache),
                "pendingRequests": len(self._pending),
                "cacheKeys": list(self._cache.keys()),
            }


# Singleton instance
request_deduplicator = RequestDeduplicator()


def deduplicate(key: str, request_fn: Callable[[], Any], ttl: Optional[float] = None):
    return request_deduplicator.deduplicate(key, request_fn, ttl)


def invalidate_cache(key: str) -> None:
    request_deduplicator.invalidate(key)


def clear_all_cache() -> None:
    request_deduplicator.clear_all()
