# ecoroute/routing/ors_common.py
# -*- coding: utf-8 -*-
"""
Common pieces for the ORS client stack:
- Transport-level error classes (timeout / not-found / malformed / 429)
- Helpers for backoff and response error extraction
- ORSConfig (timeouts, base URL, API key, profile, user agent)

This module is pure infra: it performs no HTTP calls (see ors_client.py) and
never calls init_logging(); entry points do that.
"""

from __future__ import annotations

import json
import os
import random
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ecoroute.infra.logging import get_logger

# ────────────────────────────────────────────────────────────────────────────────
# Errors
# ────────────────────────────────────────────────────────────────────────────────

class DistanceServiceFailure(Exception):
    """Base class for classified distance-service failures."""
    ...

class ServiceTimeout(DistanceServiceFailure):
    """The only transient failure: the call timed out and may be retried."""
    ...

class RouteNotFound(DistanceServiceFailure):
    """ORS answered 404 (no route / unknown resource). Not retried."""
    ...

class MalformedRequest(DistanceServiceFailure):
    """ORS rejected the request (400/422, e.g. unroutable coordinates). Not retried."""
    ...

class RateLimited(DistanceServiceFailure):
    """ORS answered 429 despite the local token bucket. Not retried."""
    ...


# ────────────────────────────────────────────────────────────────────────────────
# Logging
# ────────────────────────────────────────────────────────────────────────────────

_log = get_logger(__name__)

def _short(v: Any, maxlen: int = 420) -> str:
    """
    Safe, concise preview of a Python object. Useful in logs.
    """
    try:
        s = json.dumps(v, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        s = str(v)
    return s if len(s) <= maxlen else (s[:maxlen] + " …")


# ────────────────────────────────────────────────────────────────────────────────
# Small utils
# ────────────────────────────────────────────────────────────────────────────────

def _extract_error_text(resp) -> str:
    """
    Best-effort extraction of a human-friendly error from a HTTP response.
    """
    try:
        j = resp.json()
    except ValueError:
        return (getattr(resp, "text", "") or "")[:500]
    if isinstance(j, dict):
        err = j.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        return _short(j)
    return str(j)


def backoff_delay(attempt: int, base_s: float) -> float:
    """
    Delay before retry number `attempt` (1 = first retry).

    Exponential on `base_s` plus 5-35% jitter. A base of zero disables waiting.
    """
    if base_s <= 0:
        return 0.0
    jitter = random.uniform(0.05, 0.35) * base_s
    return base_s * (2 ** (attempt - 1)) + jitter


# ────────────────────────────────────────────────────────────────────────────────
# Config
# ────────────────────────────────────────────────────────────────────────────────

@dataclass
class ORSConfig:
    """
    Connection settings for the OpenRouteService directions API.

    Attributes
    ----------
    api_key : str
        Falls back to env ORS_API_KEY; RuntimeError when neither is set.
    base_url : str
        Trailing slashes are dropped.
    connect_timeout_s, read_timeout_s : float
        Passed to requests as (connect, read). A timeout becomes ServiceTimeout.
    status_retries : int
        urllib3 retries on 5xx answers. Timeouts are retried by the resolver,
        under its token bucket, never here.
    default_profile : str
        Vehicle profile when the caller gives none ('driving-hgv' = trucks).
    user_agent : str
    """

    api_key: str = ""
    base_url: str = "https://api.openrouteservice.org"
    connect_timeout_s: float = 8.0
    read_timeout_s: float = 20.0
    status_retries: int = 2
    default_profile: str = "driving-hgv"
    user_agent: str = "ecoroute-ORSClient/1.0"

    def __post_init__(self) -> None:
        self.api_key = (self.api_key or os.getenv("ORS_API_KEY", "")).strip()
        if not self.api_key:
            _log.error("ORS key missing (ORS_API_KEY unset, no api_key given)")
            raise RuntimeError("Set ORS_API_KEY or pass api_key= to build an ORS client.")
        self.base_url = self.base_url.rstrip("/")
        self.connect_timeout_s = float(self.connect_timeout_s)
        self.read_timeout_s = float(self.read_timeout_s)
        self.status_retries = int(self.status_retries)
        _log.debug(
            "ORS config: %s profile=%s timeouts=%s status_retries=%d",
            self.base_url, self.default_profile, self.timeouts, self.status_retries
        )

    @property
    def timeouts(self) -> Tuple[float, float]:
        return (self.connect_timeout_s, self.read_timeout_s)


def is_transient(exc: Optional[BaseException]) -> bool:
    """True for failures the resolver retries (timeouts only)."""
    return isinstance(exc, ServiceTimeout)
