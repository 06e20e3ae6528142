# ecoroute/routing/resolver.py
# -*- coding: utf-8 -*-
"""
Distance & route resolver
=========================

Purpose
-------
Turn location pairs into distance/duration facts through an external
directions service, under cache, rate-limit and retry discipline, and
compose them into single-leg, three-leg multi-modal and waypoint itineraries.

Public API
----------
- class RouteOptions
- class RouteResolver
    • resolve_direct(origin, destination, options=None) -> RouteResult     (async)
    • plan_multi_modal(origin, destination, o_port, d_port, link) -> [3 legs] (async)
    • plan_with_waypoints(origin, destination, waypoints) -> WaypointRoute (async)
    • calculate_all_routes(pairs_or_locations) -> List[RouteResult]        (async)
    • find_nearest_port(location, all_locations) -> Optional[Location]
    • clear_cache()

Call discipline for resolve_direct
----------------------------------
1) coordinates validated (InvalidCoordinates) before cache or I/O
2) cache lookup, unless options.bypass_cache
3) one token from the shared bucket per external attempt
4) timeouts retried up to options.max_retries total attempts with backoff;
   not-found / malformed failures raised immediately
5) payload validated (ServiceError), cached unless bypass, returned

Waypoint routes are composed from sequential per-pair calls, so their totals
are always the sum of the cached/resolved pair legs.
"""

from __future__ import annotations

import asyncio
import inspect
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from ecoroute.core.config import ResolverDefaults, get_resolver_defaults
from ecoroute.core.errors import InvalidCoordinates, ServiceError, ServiceUnavailable
from ecoroute.core.models import (
      Location
    , ModeType
    , PortLink
    , RouteResult
    , TransportLeg
    , WaypointRoute
)
from ecoroute.core.types import CoordinatePair
from ecoroute.infra.logging import get_logger
from .ors_common import DistanceServiceFailure, backoff_delay, is_transient
from .ports_nearest import find_nearest_port
from .rate_limiter import TokenBucket
from .route_cache import RouteCache

_log = get_logger(__name__)


# ────────────────────────────────────────────────────────────────────────────────
# Collaborator contract
# ────────────────────────────────────────────────────────────────────────────────

class DistanceService(Protocol):
    """
    External directions service. ORSClient implements it; tests use fakes.

    route_summary may be a plain or an async method. It returns a mapping
    with 'distance' (meters) and 'duration' (seconds), and raises
    ServiceTimeout for timeouts (the only retried failure).
    """

    def route_summary(
        self,
        origin: CoordinatePair,
        destination: CoordinatePair,
        *,
        profile: Optional[str] = None,
    ) -> Mapping[str, Any]:
        ...


@dataclass(frozen=True)
class RouteOptions:
    """
    Per-call options for resolve_direct.

    Attributes
    ----------
    max_retries : int | None
        Total attempts for timeouts; None uses the resolver default.
    bypass_cache : bool
        Skip both cache read and cache write (alternative-route exploration).
    profile : str | None
        Vehicle profile; None uses the resolver default.
    """

    max_retries: Optional[int] = None
    bypass_cache: bool = False
    profile: Optional[str] = None


LocationPair = Tuple[Location, Location]


# ────────────────────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────────────────────

def _check_coords(*locations: Location) -> None:
    for loc in locations:
        if not loc.has_valid_coords:
            _log.error("Invalid coordinates for %r: lat=%r lon=%r", loc.id, loc.lat, loc.lon)
            raise InvalidCoordinates(
                f"Invalid coordinates for {loc.name!r} (lat={loc.lat}, lon={loc.lon})"
            )


def _parse_summary(summary: Optional[Mapping[str, Any]]) -> RouteResult:
    """
    ORS summary (meters, seconds) → RouteResult (km, hours).
    """
    if not isinstance(summary, Mapping):
        raise ServiceError(f"Distance service returned no summary: {summary!r}")
    dist_m = summary.get("distance")
    dur_s = summary.get("duration")
    if dist_m is None or dur_s is None:
        raise ServiceError(
            f"Distance service response lacks distance/duration: {dict(summary)!r}"
        )
    try:
        dist_m = float(dist_m)
        dur_s = float(dur_s)
    except (TypeError, ValueError) as e:
        raise ServiceError(f"Non-numeric distance/duration: {dict(summary)!r}") from e
    if not (math.isfinite(dist_m) and math.isfinite(dur_s)) or dist_m < 0 or dur_s < 0:
        raise ServiceError(f"Unusable distance/duration: {dict(summary)!r}")
    return RouteResult(distance_km=dist_m / 1000.0, time_hours=dur_s / 3600.0)


# ────────────────────────────────────────────────────────────────────────────────
# Resolver
# ────────────────────────────────────────────────────────────────────────────────

class RouteResolver:
    """
    Owns one cache and one token bucket; safe to share between concurrent
    comparison requests.

    Parameters
    ----------
    service : DistanceService
        External directions service (e.g. ORSClient).
    defaults : ResolverDefaults | None
        Bucket, retry, backoff, cache TTL and profile defaults.
    bucket : TokenBucket | None
        Injected bucket (otherwise built from defaults).
    cache : RouteCache | None
        Injected cache (otherwise built from defaults).
    """

    def __init__(
        self,
        service: DistanceService,
        *,
        defaults: ResolverDefaults | None = None,
        bucket: TokenBucket | None = None,
        cache: RouteCache | None = None,
    ) -> None:
        self._service = service
        self.defaults = defaults or get_resolver_defaults()
        self._bucket = bucket or TokenBucket(
              capacity=self.defaults.bucket_capacity
            , refill_rate=self.defaults.refill_rate
        )
        self._cache = cache or RouteCache(ttl_s=self.defaults.cache_ttl_s)
        self._service_is_async = inspect.iscoroutinefunction(
            getattr(service, "route_summary", None)
        )
        _log.debug(
            "RouteResolver ready capacity=%s refill=%.2f/s retries=%s backoff=%.2fs ttl=%s profile=%s",
              self._bucket.capacity
            , self._bucket.refill_rate
            , self.defaults.max_retries
            , self.defaults.backoff_s
            , self.defaults.cache_ttl_s
            , self.defaults.profile
        )

    # ---------- cache ----------
    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ---------- external call ----------
    async def _call_service(self, origin: Location, destination: Location, profile: str) -> Mapping[str, Any]:
        o = (origin.lat, origin.lon)
        d = (destination.lat, destination.lon)
        if self._service_is_async:
            return await self._service.route_summary(o, d, profile=profile)
        return await asyncio.to_thread(self._service.route_summary, o, d, profile=profile)

    async def _fetch_with_retries(
        self,
        origin: Location,
        destination: Location,
        *,
        max_retries: int,
        profile: str,
    ) -> RouteResult:
        attempts = max(1, int(max_retries))
        last_exc: Optional[DistanceServiceFailure] = None

        for attempt in range(1, attempts + 1):
            await self._bucket.acquire()
            try:
                summary = await self._call_service(origin, destination, profile)
            except DistanceServiceFailure as e:
                if not is_transient(e):
                    raise
                last_exc = e
                if attempt < attempts:
                    delay = backoff_delay(attempt, self.defaults.backoff_s)
                    _log.warning(
                        "resolve %s→%s timed out (attempt %d/%d) — retrying in %.2fs",
                        origin.id, destination.id, attempt, attempts, delay
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)
                continue
            return _parse_summary(summary)

        _log.error(
            "resolve %s→%s failed after %d attempts (timeouts)",
            origin.id, destination.id, attempts
        )
        raise ServiceUnavailable(
            f"Distance service unavailable for {origin.name!r}→{destination.name!r} "
            f"after {attempts} attempts"
        ) from last_exc

    # ---------- public API ----------
    async def resolve_direct(
        self,
        origin: Location,
        destination: Location,
        options: RouteOptions | None = None,
    ) -> RouteResult:
        """
        Road distance (km) and duration (h) between two locations.

        Raises
        ------
        InvalidCoordinates
            Out-of-range lat/lon on either location (checked first).
        ServiceError
            The service answered without a usable distance/duration.
        ServiceUnavailable
            Every attempt timed out.
        RouteNotFound, MalformedRequest, RateLimited
            Non-retried service failures, propagated as-is.
        """
        opts = options or RouteOptions()
        _check_coords(origin, destination)

        key = RouteCache.key(origin.id, destination.id)
        if not opts.bypass_cache:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        result = await self._fetch_with_retries(
              origin
            , destination
            , max_retries=opts.max_retries if opts.max_retries is not None else self.defaults.max_retries
            , profile=opts.profile or self.defaults.profile
        )

        if not opts.bypass_cache:
            self._cache.set(key, result)

        _log.info(
            "resolve %s→%s: %.3f km, %.3f h%s",
            origin.id, destination.id, result.distance_km, result.time_hours,
            " (bypass cache)" if opts.bypass_cache else ""
        )
        return result

    def find_nearest_port(self, location: Location, all_locations: Sequence[Location]) -> Optional[Location]:
        return find_nearest_port(location, all_locations)

    async def plan_multi_modal(
        self,
        origin: Location,
        destination: Location,
        origin_port: Location,
        destination_port: Location,
        port_link: PortLink,
    ) -> List[TransportLeg]:
        """
        Truck → ship → truck, always three legs in that order.

        The ship leg copies the port link distance/time verbatim; the two
        truck legs are resolved.
        """
        first = await self.resolve_direct(origin, origin_port)
        last = await self.resolve_direct(destination_port, destination)

        legs = [
              TransportLeg(
                  from_name=origin.name
                , to_name=origin_port.name
                , mode=ModeType.TRUCK
                , distance_km=first.distance_km
                , time_hours=first.time_hours
            )
            , TransportLeg(
                  from_name=origin_port.name
                , to_name=destination_port.name
                , mode=ModeType.SHIP
                , distance_km=float(port_link.distance_km)
                , time_hours=float(port_link.time_hours)
            )
            , TransportLeg(
                  from_name=destination_port.name
                , to_name=destination.name
                , mode=ModeType.TRUCK
                , distance_km=last.distance_km
                , time_hours=last.time_hours
            )
        ]
        _log.info(
            "multi-modal %s→%s via %s/%s: %.1f km total",
            origin.id, destination.id, origin_port.id, destination_port.id,
            sum(l.distance_km for l in legs)
        )
        return legs

    async def plan_with_waypoints(
        self,
        origin: Location,
        destination: Location,
        waypoints: Sequence[Location],
    ) -> WaypointRoute:
        """
        Resolve origin → waypoints… → destination pair by pair, in order.
        """
        stops = [origin, *waypoints, destination]
        route = WaypointRoute()
        for a, b in zip(stops, stops[1:]):
            res = await self.resolve_direct(a, b)
            route.legs.append(
                TransportLeg(
                      from_name=a.name
                    , to_name=b.name
                    , mode=ModeType.TRUCK
                    , distance_km=res.distance_km
                    , time_hours=res.time_hours
                )
            )
            route.total_distance_km += res.distance_km
            route.total_time_hours += res.time_hours
        _log.info(
            "waypoints %s→%s (%d stops): %.3f km, %.3f h",
            origin.id, destination.id, len(waypoints), route.total_distance_km, route.total_time_hours
        )
        return route

    async def calculate_all_routes(
        self,
        items: Union[Sequence[Location], Sequence[LocationPair]],
    ) -> List[RouteResult]:
        """
        Batch resolution.

        Accepts explicit (origin, destination) pairs, or a list of locations
        expanded to every pair (i, j) with i < j. Pairs are resolved one after
        the other through the shared bucket.
        """
        pairs: List[LocationPair]
        if items and isinstance(items[0], Location):
            locs: Sequence[Location] = items  # type: ignore[assignment]
            pairs = [
                (locs[i], locs[j])
                for i in range(len(locs))
                for j in range(i + 1, len(locs))
            ]
        else:
            pairs = [(o, d) for o, d in items]  # type: ignore[misc]

        results: List[RouteResult] = []
        for o, d in pairs:
            results.append(await self.resolve_direct(o, d))
        return results
