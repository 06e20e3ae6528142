# ecoroute/app/plans.py
# -*- coding: utf-8 -*-

"""
Plan assembly (truck vs truck+ship)
===================================

Purpose
-------
Glue between the resolver and the optimizer:

  • build_truck_plan: direct road route → single-mode plan
  • build_multi_modal_plan: three resolved legs → multi-modal plan whose
    totals are exactly the per-leg sums
  • compare_routes: the minimal end-to-end flow for one origin/destination
    pair (direct route, nearest ports, port link, multi-modal legs,
    comparison result)

Cost per leg = distance_km × mode.cost_per_km
CO2  per leg = distance_km × mode.co2_kg_per_ton_km × cargo_kg / 1000

Errors from the resolver and optimizer are propagated untouched; callers map
them to their own responses.
"""

from __future__ import annotations

import math
import time
from typing import Dict, List, Optional, Sequence

from ecoroute.core.models import (
      Location
    , ModeType
    , PlanType
    , PortLink
    , RouteResult
    , TransportLeg
    , TransportMode
    , TransportPlan
    , WeightFactors
)
from ecoroute.infra.logging import get_logger
from ecoroute.routing.ports_nearest import find_port_link
from ecoroute.routing.resolver import RouteResolver
from ecoroute.scoring.optimizer import ComparisonMetadata, ComparisonResult, ScoreOptimizer

_log = get_logger(__name__)


# ────────────────────────────────────────────────────────────────────────────────
# Per-leg accounting
# ────────────────────────────────────────────────────────────────────────────────

def leg_cost(distance_km: float, mode: TransportMode) -> float:
    return float(distance_km) * float(mode.cost_per_km)


def leg_co2_kg(distance_km: float, mode: TransportMode, cargo_kg: float) -> float:
    return float(distance_km) * float(mode.co2_kg_per_ton_km) * float(cargo_kg) / 1000.0


def modes_by_type(modes: Sequence[TransportMode]) -> Dict[ModeType, TransportMode]:
    return {ModeType(m.mode): m for m in modes}


# ────────────────────────────────────────────────────────────────────────────────
# Plan builders
# ────────────────────────────────────────────────────────────────────────────────

def build_truck_plan(route: RouteResult, truck_mode: TransportMode, cargo_kg: float) -> TransportPlan:
    """
    Single-mode plan from the direct truck route.
    """
    return TransportPlan(
          plan=PlanType.TRUCK
        , time_h=route.time_hours
        , cost=leg_cost(route.distance_km, truck_mode)
        , co2_kg=leg_co2_kg(route.distance_km, truck_mode, cargo_kg)
    )


def build_multi_modal_plan(
      legs: List[TransportLeg]
    , truck_mode: TransportMode
    , ship_mode: TransportMode
    , cargo_kg: float
) -> TransportPlan:
    """
    Multi-modal plan whose time/cost/co2 are the sums over `legs`.

    Raises
    ------
    ValueError
        If legs are empty or not contiguous.
    """
    by_mode = {ModeType.TRUCK: truck_mode, ModeType.SHIP: ship_mode}

    total_time = 0.0
    total_cost = 0.0
    total_co2 = 0.0
    for leg in legs:
        mode = by_mode[ModeType(leg.mode)]
        total_time += leg.time_hours
        total_cost += leg_cost(leg.distance_km, mode)
        total_co2 += leg_co2_kg(leg.distance_km, mode, cargo_kg)

    plan = TransportPlan(
          plan=PlanType.TRUCK_SHIP
        , time_h=total_time
        , cost=total_cost
        , co2_kg=total_co2
        , legs=list(legs)
    )
    plan.check_contiguous()
    plan.check_time_total()
    return plan


def plan_totals_match(
      plan: TransportPlan
    , truck_mode: TransportMode
    , ship_mode: TransportMode
    , cargo_kg: float
    , *
    , rel_tol: float = 1e-9
) -> bool:
    """
    True when the plan's totals equal the per-leg recomputation (within tolerance).
    """
    if not plan.legs:
        return True
    expected = build_multi_modal_plan(plan.legs, truck_mode, ship_mode, cargo_kg)
    return (
          math.isclose(plan.time_h, expected.time_h, rel_tol=rel_tol, abs_tol=1e-9)
        and math.isclose(plan.cost, expected.cost, rel_tol=rel_tol, abs_tol=1e-9)
        and math.isclose(plan.co2_kg, expected.co2_kg, rel_tol=rel_tol, abs_tol=1e-9)
    )


# ────────────────────────────────────────────────────────────────────────────────
# End-to-end flow
# ────────────────────────────────────────────────────────────────────────────────

async def compare_routes(
      resolver: RouteResolver
    , optimizer: ScoreOptimizer
    , *
    , origin: Location
    , destination: Location
    , locations: Sequence[Location]
    , modes: Sequence[TransportMode]
    , port_links: Sequence[PortLink]
    , cargo_kg: float
    , weights: WeightFactors
) -> ComparisonResult:
    """
    Build the truck plan and, when both nearest ports exist and are linked,
    the truck+ship plan; then score them.

    Raises
    ------
    KeyError
        If no truck mode is configured.
    """
    t0 = time.perf_counter()
    by_mode = modes_by_type(modes)
    truck_mode = by_mode.get(ModeType.TRUCK)
    if truck_mode is None:
        raise KeyError("Truck mode configuration not found.")
    ship_mode: Optional[TransportMode] = by_mode.get(ModeType.SHIP)

    direct = await resolver.resolve_direct(origin, destination)
    plans: List[TransportPlan] = [build_truck_plan(direct, truck_mode, cargo_kg)]

    o_port = resolver.find_nearest_port(origin, locations)
    d_port = resolver.find_nearest_port(destination, locations)

    if o_port is not None and d_port is not None and ship_mode is not None:
        link = find_port_link(port_links, o_port.id, d_port.id)
        if link is not None:
            legs = await resolver.plan_multi_modal(origin, destination, o_port, d_port, link)
            plans.append(build_multi_modal_plan(legs, truck_mode, ship_mode, cargo_kg))
        else:
            _log.info("compare_routes: no vessel link %s↔%s; truck only.", o_port.id, d_port.id)

    return optimizer.generate_comparison_result(
          plans
        , weights
        , ComparisonMetadata(
              truck_distance_km=direct.distance_km
            , calculation_time_ms=(time.perf_counter() - t0) * 1000.0
            , cargo_kg=cargo_kg
        )
    )
