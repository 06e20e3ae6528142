# ecoroute/routing/route_cache.py
# -*- coding: utf-8 -*-
"""
In-process route cache keyed by (origin id, destination id).

Entries live for the process lifetime unless clear() is called or a TTL is
configured, in which case expired entries are treated as misses on read.
Nothing is persisted across restarts.

A clear() racing an in-flight resolve can be followed by that resolve's
write, re-populating the pair with a result fetched before the clear.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from ecoroute.core.models import RouteResult
from ecoroute.infra.logging import get_logger

_log = get_logger(__name__)

CacheKey = Tuple[str, str]


class RouteCache:
    """
    Thread-safe map (origin_id, destination_id) → RouteResult.

    Parameters
    ----------
    ttl_s : float | None
        Entry lifetime in seconds. None disables expiry.
    clock : Callable[[], float]
        Monotonic time source (seconds).
    """

    def __init__(
        self,
        ttl_s: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = None if ttl_s is None else float(ttl_s)
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[RouteResult, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(origin_id: str, destination_id: str) -> CacheKey:
        return (str(origin_id), str(destination_id))

    def get(self, k: CacheKey) -> Optional[RouteResult]:
        with self._lock:
            item = self._entries.get(k)
            if item is None:
                _log.debug("cache: MISS key=%s", k)
                return None
            value, stored_at = item
            if self._ttl is not None and (self._clock() - stored_at) > self._ttl:
                del self._entries[k]
                _log.debug("cache: EXPIRED key=%s ttl=%ss", k, self._ttl)
                return None
        _log.debug("cache: HIT key=%s", k)
        return value

    def set(self, k: CacheKey, v: RouteResult) -> None:
        with self._lock:
            self._entries[k] = (v, self._clock())
        _log.debug("cache: SET key=%s", k)

    def clear(self) -> None:
        with self._lock:
            n = len(self._entries)
            self._entries.clear()
        _log.info("cache: cleared %d entries", n)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
