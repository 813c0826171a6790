"""
In-memory response caching for the lounge proxy.

Entries carry their own expiry so each endpoint can pick a TTL, while
cachetools' FIFOCache keeps the store bounded and evicts the oldest
insertions first. Expiry is lazy: stale entries are dropped when read, when
evicted, or by an explicit ``expire()`` sweep.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from copy import deepcopy
from typing import Any, NamedTuple

from cachetools import Cache, FIFOCache

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_TTL_SECONDS = 60.0

logger = logging.getLogger(__name__)


class CacheEntry(NamedTuple):
    value: Any
    expires_at: float


def build_cache_key(prefix: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Derive a deterministic cache key from an endpoint prefix and parameters.

    Keys are sorted so that parameter order never changes the result, e.g.
    ``build_cache_key("leaderboard", {"skip": 0, "pageSize": 50})`` gives
    ``"leaderboard|pageSize:50|skip:0"``. Values are used as-is; ``None``
    values are treated as absent.
    """
    if not params:
        return prefix
    rendered = [f"{key}:{params[key]}" for key in sorted(params) if params[key] is not None]
    if not rendered:
        return prefix
    return f"{prefix}|{'|'.join(rendered)}"


def family_predicate(prefix: str) -> Callable[[str], bool]:
    """Match ``prefix`` itself and every key built from it."""
    marker = f"{prefix}|"
    return lambda key: key == prefix or key.startswith(marker)


class _InsertionOrderCache(FIFOCache):
    """FIFOCache whose overwrites keep the key in its first insertion slot."""

    def __setitem__(self, key, value, cache_setitem=Cache.__setitem__):
        if key in self:
            cache_setitem(self, key, value)
        else:
            super().__setitem__(key, value)


class ResponseCache:
    """
    Async-safe, size-bounded TTL cache for upstream response payloads.

    A per-instance asyncio.Lock serializes access. Payloads are deep copied
    on the way in and out so no cached entry is ever mutated after insertion.
    Overwriting a key keeps its original slot in the eviction order.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: FIFOCache[str, CacheEntry] = _InsertionOrderCache(maxsize=max_entries)
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._timer = timer
        # Created lazily so no asyncio primitive exists before an event loop.
        self._lock: asyncio.Lock | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get(self, key: str) -> Any | None:
        """
        Return the cached payload for ``key`` or None.

        Expired or malformed entries are removed and reported as a miss.
        """
        async with self._ensure_lock():
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not isinstance(entry, CacheEntry):
                logger.warning("Dropping malformed cache entry for %s", key)
                self._entries.pop(key, None)
                return None
            if entry.expires_at < self._timer():
                self._entries.pop(key, None)
                return None
            value = entry.value
        try:
            return deepcopy(value)
        except Exception as exc:  # noqa: BLE001 - a bad entry is only ever a miss
            logger.warning("Cached value for %s could not be copied: %s", key, exc)
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store ``value`` under ``key`` for ``ttl`` seconds (default TTL if None).

        When the store is full the oldest insertions are evicted first.
        """
        expires_at = self._timer() + (self.default_ttl if ttl is None else ttl)
        entry = CacheEntry(value=deepcopy(value), expires_at=expires_at)
        async with self._ensure_lock():
            self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        async with self._ensure_lock():
            return self._entries.pop(key, None) is not None

    async def invalidate(self, predicate: Callable[[str], bool]) -> int:
        """Delete every key matching ``predicate``. Returns the number removed."""
        async with self._ensure_lock():
            doomed = [key for key in list(self._entries) if predicate(key)]
            for key in doomed:
                self._entries.pop(key, None)
        if doomed:
            logger.debug("Invalidated %s cache entries", len(doomed))
        return len(doomed)

    async def invalidate_prefix(self, prefix: str) -> int:
        """Family invalidation: drop ``prefix`` and every ``prefix|...`` key."""
        return await self.invalidate(family_predicate(prefix))

    async def expire(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._timer()
        async with self._ensure_lock():
            expired = [
                key
                for key, entry in list(self._entries.items())
                if not isinstance(entry, CacheEntry) or entry.expires_at < now
            ]
            for key in expired:
                self._entries.pop(key, None)
        return len(expired)

    async def clear(self) -> None:
        async with self._ensure_lock():
            self._entries.clear()

    def _ensure_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock


__all__ = [
    "CacheEntry",
    "DEFAULT_MAX_ENTRIES",
    "DEFAULT_TTL_SECONDS",
    "ResponseCache",
    "build_cache_key",
    "family_predicate",
]
