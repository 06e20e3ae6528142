from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from ecoroute.core.config import ResolverDefaults
from ecoroute.core.models import (
    Location,
    LocationType,
    ModeType,
    PlanType,
    PortLink,
    TransportLeg,
    TransportMode,
    TransportPlan,
)
from ecoroute.routing.resolver import RouteResolver


Coord = Tuple[float, float]


class FakeDistanceService:
    """
    Async stand-in for ORSClient.route_summary.

    `routes` maps ((lat, lon), (lat, lon)) to (distance_km, hours); unknown
    pairs get `default`. `failures` is consumed one item per call: an
    exception instance is raised, None lets the call through.
    """

    def __init__(
        self,
        routes: Optional[Dict[Tuple[Coord, Coord], Tuple[float, float]]] = None,
        default: Tuple[float, float] = (100.0, 2.0),
        failures: Optional[List[Optional[Exception]]] = None,
        summary_override: Optional[dict] = None,
    ):
        self.routes = routes or {}
        self.default = default
        self.failures = list(failures or [])
        self.summary_override = summary_override
        self.calls: List[Tuple[Coord, Coord, Optional[str]]] = []

    async def route_summary(self, origin, destination, *, profile=None):
        self.calls.append((tuple(origin), tuple(destination), profile))
        if self.failures:
            exc = self.failures.pop(0)
            if exc is not None:
                raise exc
        if self.summary_override is not None:
            return dict(self.summary_override)
        km, hours = self.routes.get((tuple(origin), tuple(destination)), self.default)
        return {"distance": km * 1000.0, "duration": hours * 3600.0}


class SyncDistanceService(FakeDistanceService):
    def route_summary(self, origin, destination, *, profile=None):
        self.calls.append((tuple(origin), tuple(destination), profile))
        km, hours = self.routes.get((tuple(origin), tuple(destination)), self.default)
        return {"distance": km * 1000.0, "duration": hours * 3600.0}


# fixtures etc.

FAST_DEFAULTS = ResolverDefaults(bucket_capacity=100, refill_rate=1000.0, backoff_s=0.0)


@pytest.fixture
def tokyo():
    return Location(id="tokyo", name="Tokyo", lat=35.6762, lon=139.6503, type=LocationType.CITY)


@pytest.fixture
def osaka():
    return Location(id="osaka", name="Osaka", lat=34.6937, lon=135.5023, type=LocationType.CITY)


@pytest.fixture
def tokyo_port():
    return Location(id="tokyo_port", name="Tokyo Port", lat=35.6180, lon=139.7770, type=LocationType.PORT)


@pytest.fixture
def osaka_port():
    return Location(id="osaka_port", name="Osaka Port", lat=34.6500, lon=135.4300, type=LocationType.PORT)


@pytest.fixture
def nagoya_port():
    return Location(id="nagoya_port", name="Nagoya Port", lat=35.0833, lon=136.8833, type=LocationType.PORT)


@pytest.fixture
def locations(tokyo, osaka, tokyo_port, osaka_port, nagoya_port):
    return [tokyo, osaka, tokyo_port, osaka_port, nagoya_port]


@pytest.fixture
def port_link():
    return PortLink(
        port_a="tokyo_port",
        port_b="osaka_port",
        distance_km=410.0,
        time_hours=20.0,
        operator="Coastal Line",
        weekly_frequency=3,
    )


@pytest.fixture
def truck_mode():
    return TransportMode(mode=ModeType.TRUCK, cost_per_km=50.0, co2_kg_per_ton_km=0.1, avg_speed_kmph=60.0)


@pytest.fixture
def ship_mode():
    return TransportMode(mode=ModeType.SHIP, cost_per_km=20.0, co2_kg_per_ton_km=0.02, avg_speed_kmph=20.0)


@pytest.fixture
def service():
    return FakeDistanceService()


@pytest.fixture
def resolver(service):
    return RouteResolver(service, defaults=FAST_DEFAULTS)


@pytest.fixture
def truck_plan():
    return TransportPlan(plan=PlanType.TRUCK, time_h=7.2, cost=15600.0, co2_kg=26.0)


@pytest.fixture
def ship_plan():
    return TransportPlan(
        plan=PlanType.TRUCK_SHIP,
        time_h=21.4,
        cost=6280.0,
        co2_kg=5.26,
        legs=[
            TransportLeg("Tokyo", "Tokyo Port", ModeType.TRUCK, 20.0, 0.5),
            TransportLeg("Tokyo Port", "Osaka Port", ModeType.SHIP, 400.0, 20.0),
            TransportLeg("Osaka Port", "Osaka", ModeType.TRUCK, 15.0, 0.9),
        ],
    )
