from __future__ import annotations

# ── resolver ────────────────────────────────────────────────────────────────────
from .resolver import RouteResolver, RouteOptions, DistanceService

# ── infra pieces ────────────────────────────────────────────────────────────────
from .rate_limiter import TokenBucket
from .route_cache import RouteCache
from .ors_common import (
      ORSConfig
    , ServiceTimeout
    , RouteNotFound
    , MalformedRequest
    , RateLimited
)
from .ors_client import ORSClient

# ── ports utilities ─────────────────────────────────────────────────────────────
from .ports_nearest import find_nearest_port, find_port_link, haversine_km

__all__ = [
    # resolver
      "RouteResolver", "RouteOptions", "DistanceService",
    # infra
      "TokenBucket", "RouteCache",
      "ORSConfig", "ORSClient",
      "ServiceTimeout", "RouteNotFound", "MalformedRequest", "RateLimited",
    # ports
      "find_nearest_port", "find_port_link", "haversine_km",
]
