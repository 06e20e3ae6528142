# ecoroute/routing/ports_nearest.py
# -*- coding: utf-8 -*-
"""
Nearest-port utilities with haversine
=====================================

Purpose
-------
Given a Location, find the **nearest port** among a list of locations, and
look up the precomputed vessel link between two ports.

Public API
----------
- haversine_km(lat1, lon1, lat2, lon2) -> float
- distance_between(a, b) -> float             # any objects with lat/lon
- find_nearest_port(location, all_locations) -> Optional[Location]
- find_port_link(links, port_a_id, port_b_id) -> Optional[PortLink]

Notes
-----
- Only locations classified as ports are candidates.
- Equidistant ports resolve to the lowest id (string order), so results do
  not depend on input order.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from ecoroute.core.models import Location, PortLink
from ecoroute.core.types import HasLatLon
from ecoroute.infra.logging import get_logger

_log = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


# ────────────────────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────────────────────
def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance on a spherical Earth (km).
    """
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return float(EARTH_RADIUS_KM * c)


def distance_between(a: HasLatLon, b: HasLatLon) -> float:
    return haversine_km(a.lat, a.lon, b.lat, b.lon)


# ────────────────────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────────────────────
def find_nearest_port(location: Location, all_locations: Iterable[Location]) -> Optional[Location]:
    """
    Find the port closest to *location*.

    Parameters
    ----------
    location : Location
        Query point (city or port).
    all_locations : Iterable[Location]
        Candidate set; non-port entries are ignored.

    Returns
    -------
    Optional[Location]
        Nearest port, or None when the set holds no ports.
    """
    best: Optional[Location] = None
    best_d = math.inf

    for loc in all_locations:
        if not loc.is_port:
            continue
        d = distance_between(location, loc)
        if d < best_d or (d == best_d and best is not None and str(loc.id) < str(best.id)):
            best = loc
            best_d = d

    if best is None:
        _log.info("find_nearest_port: no ports available for '%s'.", location.name)
        return None

    _log.debug(
        "find_nearest_port: '%s' → '%s' (%.3f km).",
        location.name, best.name, best_d
    )
    return best


def find_port_link(links: Sequence[PortLink], port_a_id: str, port_b_id: str) -> Optional[PortLink]:
    """
    Vessel link between two ports in either orientation, or None.
    """
    for link in links:
        if link.connects(port_a_id, port_b_id):
            return link
    _log.debug("find_port_link: no link between %r and %r.", port_a_id, port_b_id)
    return None
