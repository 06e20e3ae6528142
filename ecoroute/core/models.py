# ecoroute/core/models.py
# -*- coding: utf-8 -*-

"""
Core domain models (pure dataclasses).

Small, shared structures used by the resolver, the optimizer and the plan
assembly glue:
    - Location, TransportMode, PortLink: static data loaded by the caller
    - TransportLeg, TransportPlan: candidate itineraries
    - WeightFactors: per-request importance weights
    - RouteResult, WaypointRoute: resolver outputs

This module deliberately has:
    - no HTTP / ORS imports
    - no scoring logic

It is safe to import from anywhere.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional

from ecoroute.core.errors import InvalidMetric
from ecoroute.core.types import JSONDict

# Relative tolerance used when comparing plan totals against leg sums
TOTALS_REL_TOL = 1e-9
TOTALS_ABS_TOL = 1e-6


# ────────────────────────────────────────────────────────────────────────────────
# Enums
# ────────────────────────────────────────────────────────────────────────────────

class LocationType(str, Enum):
    CITY = "city"
    PORT = "port"


class ModeType(str, Enum):
    TRUCK = "truck"
    SHIP = "ship"


class PlanType(str, Enum):
    """
    Plan identifiers. The value doubles as the key of score dictionaries.
    """
    TRUCK = "truck"
    TRUCK_SHIP = "truck+ship"


# ────────────────────────────────────────────────────────────────────────────────
# Static data
# ────────────────────────────────────────────────────────────────────────────────

def is_valid_coordinate(lat: float, lon: float) -> bool:
    """True when lat ∈ [-90, 90] and lon ∈ [-180, 180] (NaN is invalid)."""
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True)
class Location:
    """
    A city or port.

    Attributes
    ----------
    id : str
        Unique identifier (cache keys use it).
    name : str
        Display name (e.g. "Tokyo", "Tokyo Port").
    lat, lon : float
        Decimal degrees.
    type : LocationType
        City or port.
    """

    id: str
    name: str
    lat: float
    lon: float
    type: LocationType = LocationType.CITY

    @property
    def has_valid_coords(self) -> bool:
        return is_valid_coordinate(self.lat, self.lon)

    @property
    def is_port(self) -> bool:
        return self.type == LocationType.PORT


@dataclass(frozen=True)
class TransportMode:
    mode: ModeType
    cost_per_km: float
    co2_kg_per_ton_km: float
    avg_speed_kmph: float


@dataclass(frozen=True)
class PortLink:
    """
    Precomputed vessel connection between two ports (undirected).
    """

    port_a: str
    port_b: str
    distance_km: float
    time_hours: float
    operator: str = ""
    weekly_frequency: int = 0

    def connects(self, a_id: str, b_id: str) -> bool:
        """Match (a, b) in either orientation; ids compared as trimmed strings."""
        pa, pb = str(self.port_a).strip(), str(self.port_b).strip()
        a, b = str(a_id).strip(), str(b_id).strip()
        return (pa == a and pb == b) or (pa == b and pb == a)


# ────────────────────────────────────────────────────────────────────────────────
# Legs and plans
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TransportLeg:
    """
    One travel segment. Ordering inside a plan matters (contiguous path).
    """

    from_name: str
    to_name: str
    mode: ModeType
    distance_km: float
    time_hours: float

    def __post_init__(self) -> None:
        if self.distance_km < 0 or self.time_hours < 0:
            raise InvalidMetric(
                f"Leg {self.from_name!r}→{self.to_name!r} has negative distance/time "
                f"({self.distance_km}, {self.time_hours})"
            )

    def to_dict(self) -> JSONDict:
        return {
              "from": self.from_name
            , "to": self.to_name
            , "mode": self.mode.value
            , "distance_km": self.distance_km
            , "time_hours": self.time_hours
        }


@dataclass
class TransportPlan:
    """
    A complete origin→destination option.

    Attributes
    ----------
    plan : PlanType
    time_h : float
        Total time in hours.
    cost : float
        Total cost (currency of the mode data, JPY in the bundled data set).
    co2_kg : float
        Total CO2 emissions in kg.
    legs : Optional[List[TransportLeg]]
        Ordered route segments (multi-modal plans).
    """

    plan: PlanType
    time_h: float
    cost: float
    co2_kg: float
    legs: Optional[List[TransportLeg]] = None

    @property
    def key(self) -> str:
        return PlanType(self.plan).value

    @property
    def total_distance_km(self) -> float:
        if not self.legs:
            return 0.0
        return sum(leg.distance_km for leg in self.legs)

    def check_contiguous(self) -> None:
        """
        Raise ValueError unless legs (if any) are non-empty and leg[i].to == leg[i+1].from.
        """
        if self.legs is None:
            return
        if len(self.legs) == 0:
            raise ValueError(f"Plan {self.key!r} has an empty leg list.")
        for prev, nxt in zip(self.legs, self.legs[1:]):
            if prev.to_name != nxt.from_name:
                raise ValueError(
                    f"Plan {self.key!r} legs are not contiguous: {prev.to_name!r} ≠ {nxt.from_name!r}"
                )

    def check_time_total(self) -> None:
        """
        Raise ValueError unless time_h equals the sum of leg times (within tolerance).
        """
        if not self.legs:
            return
        legs_time = sum(leg.time_hours for leg in self.legs)
        if not math.isclose(self.time_h, legs_time, rel_tol=TOTALS_REL_TOL, abs_tol=TOTALS_ABS_TOL):
            raise ValueError(f"Plan {self.key!r} time {self.time_h} ≠ leg sum {legs_time}")

    def to_dict(self) -> JSONDict:
        out: JSONDict = {
              "plan": self.key
            , "time_h": self.time_h
            , "cost": self.cost
            , "co2_kg": self.co2_kg
        }
        if self.legs is not None:
            out["legs"] = [leg.to_dict() for leg in self.legs]
        return out

    @classmethod
    def from_dict(cls, payload: JSONDict) -> "TransportPlan":
        legs = payload.get("legs")
        return cls(
              plan=PlanType(payload["plan"])
            , time_h=float(payload["time_h"])
            , cost=float(payload["cost"])
            , co2_kg=float(payload["co2_kg"])
            , legs=None if legs is None else [
                TransportLeg(
                      from_name=str(l["from"])
                    , to_name=str(l["to"])
                    , mode=ModeType(l["mode"])
                    , distance_km=float(l["distance_km"])
                    , time_hours=float(l["time_hours"])
                )
                for l in legs
            ]
        )


@dataclass(frozen=True)
class WeightFactors:
    """
    User importance weights. Callers normalize before use.
    """

    time: float
    cost: float
    co2: float

    @property
    def total(self) -> float:
        return self.time + self.cost + self.co2

    def with_value(self, dimension: str, value: float) -> "WeightFactors":
        values = asdict(self)
        if dimension not in values:
            raise KeyError(f"Unknown weight dimension {dimension!r}")
        values[dimension] = float(value)
        return WeightFactors(**values)


# ────────────────────────────────────────────────────────────────────────────────
# Resolver outputs
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RouteResult:
    distance_km: float
    time_hours: float


@dataclass
class WaypointRoute:
    """
    Sequentially composed route through waypoints.
    """

    legs: List[TransportLeg] = field(default_factory=list)
    total_distance_km: float = 0.0
    total_time_hours: float = 0.0
