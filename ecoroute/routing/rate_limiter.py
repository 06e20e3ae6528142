# ecoroute/routing/rate_limiter.py
# -*- coding: utf-8 -*-
"""
Token-bucket rate limiter for calls to the distance service.

One bucket is owned by one RouteResolver and shared by every task (and every
thread) using that resolver, so concurrent callers contend for the same
budget and queue instead of exceeding it. No ordering is guaranteed among
waiting callers.

State mutations happen under a threading.Lock; waiting happens outside it
with asyncio.sleep, so one suspended caller never blocks the others.
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable

from ecoroute.infra.logging import get_logger

_log = get_logger(__name__)


class TokenBucket:
    """
    Token bucket with continuous refill.

    Parameters
    ----------
    capacity : int
        Maximum tokens held (burst size). Starts full.
    refill_rate : float
        Tokens accrued per second.
    clock : Callable[[], float]
        Monotonic time source (seconds).
    """

    def __init__(
        self,
        capacity: int = 5,
        refill_rate: float = 5.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if refill_rate <= 0:
            raise ValueError(f"refill_rate must be > 0, got {refill_rate}")
        self.capacity = int(capacity)
        self.refill_rate = float(refill_rate)
        self._clock = clock
        self._tokens = float(self.capacity)
        self._last_refill = self._clock()
        self._lock = threading.Lock()

    @property
    def tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self) -> None:
        # caller holds self._lock
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(float(self.capacity), self._tokens + elapsed * self.refill_rate)
            self._last_refill = now

    def try_acquire(self) -> float:
        """
        Take one token if available.

        Returns
        -------
        float
            0.0 when a token was taken, otherwise the seconds until one accrues.
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self.refill_rate

    async def acquire(self) -> None:
        """
        Suspend the calling task until one token has been taken.
        """
        while True:
            wait_s = self.try_acquire()
            if wait_s <= 0.0:
                return
            _log.debug(
                "rate-limit: capacity=%s refill=%.2f/s → sleeping %.3fs",
                self.capacity, self.refill_rate, wait_s
            )
            await asyncio.sleep(wait_s)
