# ecoroute/core/types.py
# -*- coding: utf-8 -*-

"""
Shared type aliases and lightweight protocols.

Contents
--------
- CoordinatePair: (lat, lon) as a tuple
- JSONDict: dictionary with string keys and JSON values
- HasLatLon: Protocol for duck-typed objects with lat/lon
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, Tuple, runtime_checkable


# ────────────────────────────────────────────────────────────────────────────────
# JSON-like structures
# ────────────────────────────────────────────────────────────────────────────────

JSONDict = Dict[str, Any]
"""Dictionary with string keys and JSON values (results, ORS payloads)."""


# ────────────────────────────────────────────────────────────────────────────────
# Geographic helpers
# ────────────────────────────────────────────────────────────────────────────────

CoordinatePair = Tuple[float, float]
"""Simple (lat, lon) pair in decimal degrees."""


@runtime_checkable
class HasLatLon(Protocol):
    """
    Protocol for objects that expose `lat` and `lon` attributes.

    Lets the haversine helpers accept a Location or any other point-like
    structure without depending on a specific class.
    """

    lat: float
    lon: float
