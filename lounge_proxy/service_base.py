"""Shared service helpers and base classes.

Provides a base class that gives services consistent logging, and the
cache-through pipeline every proxied endpoint shares, without coupling
either to the HTTP layer.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from .cache import ResponseCache, build_cache_key
from .errors import NotFoundError, UpstreamError


class BaseService:
    """Base class that provides a logger for derived services."""

    def __init__(self, logger: logging.Logger | None = None):
        # Use module-qualified name so loggers stay readable when subclassed
        self.logger = logger or logging.getLogger(self.__class__.__module__)


class CachedFetchMixin:
    """Cache lookup, upstream fetch and failure handling for one endpoint family."""

    cache: ResponseCache
    logger: logging.Logger

    async def cached_fetch(
        self,
        *,
        prefix: str,
        params: Mapping[str, Any] | None,
        fetch: Callable[[], Awaitable[Any]],
        failure_detail: str,
        ttl: float | None = None,
        not_found_detail: str | None = None,
        transform: Callable[[Any], Any] | None = None,
    ) -> Any:
        """
        Serve ``prefix``+``params`` from cache, or fetch, transform and store it.

        An upstream 404 becomes NotFoundError(not_found_detail) when a message
        is given. Any other upstream failure invalidates the whole ``prefix``
        family and is re-raised with ``failure_detail`` so upstream internals
        never reach the caller. ``transform`` may raise to skip caching.
        """
        key = build_cache_key(prefix, params)
        cached = await self.cache.get(key)
        if cached is not None:
            self.logger.debug("Cache hit: %s", key)
            return cached
        self.logger.debug("Cache miss: %s", key)

        try:
            payload = await fetch()
        except UpstreamError as exc:
            if exc.is_not_found and not_found_detail is not None:
                raise NotFoundError(not_found_detail) from exc
            removed = await self.cache.invalidate_prefix(prefix)
            self.logger.warning(
                "Upstream failure for %s (%s, status %s); invalidated %s cached entries",
                key,
                exc.kind,
                exc.status_code,
                removed,
            )
            raise UpstreamError(
                status_code=exc.status_code, detail=failure_detail, kind=exc.kind
            ) from exc

        if transform is not None:
            payload = transform(payload)
        await self.cache.set(key, payload, ttl)
        return payload
