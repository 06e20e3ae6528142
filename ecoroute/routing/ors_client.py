# ecoroute/routing/ors_client.py
# -*- coding: utf-8 -*-
"""
Concrete ORS directions client:
- Centralizes HTTP (session, status retries, headers)
- Classifies failures into ors_common errors
- Emits standardized, high-signal logs

Notes
-----
• Keep infra knobs in ORSConfig (timeouts, status retries, UA, profile).
• This client is synchronous and stateless apart from its session; caching,
  rate limiting and timeout retries belong to ecoroute.routing.resolver.
• Failure mapping:
    - requests.Timeout      → ServiceTimeout   (resolver retries)
    - 404                   → RouteNotFound
    - 400 / 422             → MalformedRequest
    - 429                   → RateLimited
    - connection failure    → ServiceUnavailable
    - 5xx after retries     → ServiceUnavailable
    - other non-2xx         → ServiceError
    - non-JSON / non-object → ServiceError
"""

from __future__ import annotations

import time as _time
from typing import Any as _Any, Dict as _Dict, Optional as _Optional

import requests as _req
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ecoroute.core.errors import ServiceError, ServiceUnavailable
from ecoroute.core.types import CoordinatePair
from ecoroute.infra.logging import get_logger
from .ors_common import (
      _extract_error_text
    , _short
    , ORSConfig
    , MalformedRequest
    , RateLimited
    , RouteNotFound
    , ServiceTimeout
)

_log = get_logger(__name__)


class ORSClient:
    """
    Directions client for OpenRouteService.

    Prefer: ORSClient(cfg=ORSConfig(...)) or ORSClient.from_env().
    """

    def __init__(
        self,
        *,
        cfg: ORSConfig | None = None,
        session: _req.Session | None = None,
    ):
        self.cfg = cfg or ORSConfig()
        self.base_url = self.cfg.base_url

        # ────────────────────────────────────────────────────────────────────
        # HTTP session with status retries (timeouts are the resolver's job)
        # ────────────────────────────────────────────────────────────────────
        self._sess = session or _req.Session()
        retries = Retry(
              total=self.cfg.status_retries
            , connect=0
            , read=0
            , backoff_factor=0.3
            , status_forcelist=(500, 502, 503, 504)
            , allowed_methods=frozenset(["GET", "POST"])
            , raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retries)
        self._sess.mount("https://", adapter)
        self._sess.mount("http://", adapter)
        self._sess.headers.update(
            {
                  "Authorization": self.cfg.api_key
                , "User-Agent": self.cfg.user_agent
                , "Accept": "application/json"
            }
        )

        _log.debug(
            "ORSClient ready base=%s ct=%.1fs rt=%.1fs status_retries=%s",
              self.base_url
            , self.cfg.connect_timeout_s
            , self.cfg.read_timeout_s
            , self.cfg.status_retries
        )

    # ────────────────────────────────────────────────────────────────────────
    # Lifecycle helpers
    # ────────────────────────────────────────────────────────────────────────
    @classmethod
    def from_env(cls) -> "ORSClient":
        """Convenience ctor that pulls ORS_API_KEY from env."""
        return cls(cfg=ORSConfig())

    def close(self) -> None:
        """Explicitly close the underlying HTTP session."""
        self._sess.close()

    # ────────────────────────────────────────────────────────────────────────
    # Core HTTP layer
    # ────────────────────────────────────────────────────────────────────────
    def _post(self, path: str, payload: _Dict[str, _Any]) -> _Dict[str, _Any]:
        url = f"{self.base_url}{path}"
        t0 = _time.time()
        try:
            resp = self._sess.post(url, json=payload, timeout=self.cfg.timeouts)
        except _req.Timeout as e:
            dt_ms = (_time.time() - t0) * 1000.0
            _log.warning("HTTP POST %s — timeout after %.0f ms (%s)", path, dt_ms, type(e).__name__)
            raise ServiceTimeout(f"Timeout calling {path}") from e
        except _req.ConnectionError as e:
            _log.error("HTTP POST %s — connection failed: %s", path, e)
            raise ServiceUnavailable(f"Cannot reach distance service at {self.base_url}") from e

        dt_ms = (_time.time() - t0) * 1000.0

        if 200 <= resp.status_code < 300:
            try:
                data = resp.json()
            except ValueError as e:
                _log.error("HTTP POST %s — invalid JSON (%.0f ms): %s", path, dt_ms, (resp.text or "")[:200])
                raise ServiceError(f"Non-JSON body from {path}") from e
            if not isinstance(data, dict):
                _log.error("HTTP POST %s — unexpected JSON type %s", path, type(data).__name__)
                raise ServiceError(f"Expected a JSON object from {path}, got {type(data).__name__}")
            _log.info("HTTP POST %s — %s (%.0f ms)", path, resp.status_code, dt_ms)
            return data

        msg = _extract_error_text(resp)
        if resp.status_code == 429:
            _log.warning("HTTP 429 %s (%.0f ms) — %s", path, dt_ms, msg)
            raise RateLimited(f"429 from {path}: {msg}")
        if resp.status_code == 404:
            _log.warning("HTTP POST %s — 404 (%.0f ms) no-route: %s", path, dt_ms, msg)
            raise RouteNotFound(f"No route for {path}: {msg}")
        if resp.status_code in (400, 422):
            _log.warning("HTTP POST %s — %s (%.0f ms) rejected: %s", path, resp.status_code, dt_ms, msg)
            raise MalformedRequest(f"Request rejected by {path}: {msg}")

        _log.error("HTTP POST %s — %s (%.0f ms) body=%s", path, resp.status_code, dt_ms, msg)
        try:
            resp.raise_for_status()
        except _req.HTTPError as e:
            if resp.status_code >= 500:
                # still failing after the adapter's status retries
                raise ServiceUnavailable(f"{resp.status_code} from {path}: {msg}") from e
            raise ServiceError(f"{resp.status_code} from {path}: {msg}") from e
        raise ServiceError(f"Unexpected status {resp.status_code} from {path}: {msg}")

    # ────────────────────────────────────────────────────────────────────────
    # Directions
    # ────────────────────────────────────────────────────────────────────────
    def route_summary(
        self,
        origin: CoordinatePair,
        destination: CoordinatePair,
        *,
        profile: _Optional[str] = None,
    ) -> _Dict[str, _Any]:
        """
        Directions summary between two (lat, lon) points.

        Returns
        -------
        dict
            The ORS summary of the first route, e.g. {"distance": m, "duration": s}.
            Empty when ORS returned no route summary; the caller decides whether
            that is usable.
        """
        prof = profile or self.cfg.default_profile
        coords = [
              [float(origin[1]), float(origin[0])]
            , [float(destination[1]), float(destination[0])]
        ]
        _log.info("ROUTE %s coords=%s", prof, _short(coords))

        data = self._post(
              f"/v2/directions/{prof}"
            , {"coordinates": coords, "instructions": False}
        )
        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            _log.debug("ROUTE %s returned no usable route: %s", prof, _short(data))
            return {}
        summary = routes[0].get("summary")
        return dict(summary) if isinstance(summary, dict) else {}


__all__ = ["ORSClient", "ORSConfig"]
