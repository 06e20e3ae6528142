# ecoroute/scoring/optimizer.py
# -*- coding: utf-8 -*-
"""
Multi-criteria score optimizer
==============================

Purpose
-------
Turn candidate plans plus importance weights into one recommendation, with
explainability data (score breakdown, dominant factors, sensitivity
thresholds, confidence and percentage differences).

Pure and synchronous: no I/O and no state besides the constructor config,
so every call is a deterministic function of its inputs.

Pipeline of compare_plans
-------------------------
1) normalize weights
2) environmental override → force truck+ship
3) time override          → force truck
4) otherwise min-max / z-score normalized weighted score, lowest wins,
   ties resolved to the first plan in input order

Scores are lower-is-better. With cargo mass, each plan's emissions are
multiplied by its load-curve factor (see ecoroute.core.config) before the
metrics are normalized.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from ecoroute.core.config import OptimizerConfig, get_optimizer_config
from ecoroute.core.errors import InvalidMetric
from ecoroute.core.models import PlanType, TransportLeg, TransportPlan, WeightFactors
from ecoroute.core.types import JSONDict
from ecoroute.infra.logging import get_logger
from .normalization import (
      METRICS
    , NormalizedMetrics
    , balanced_weights
    , normalize_metrics
    , normalize_weights
)

_log = get_logger(__name__)

OVERRIDE_ENVIRONMENTAL = "environmental"
OVERRIDE_TIME = "time"


# ────────────────────────────────────────────────────────────────────────────────
# Result structures
# ────────────────────────────────────────────────────────────────────────────────

@dataclass
class Comparison:
    """
    Outcome of compare_plans.

    Attributes
    ----------
    recommendation : PlanType
    scores : Dict[str, float]
        Score per plan key (lower is better), always filled for every plan.
    override : Optional[str]
        'environmental' or 'time' when a heuristic fixed the recommendation.
    """

    recommendation: PlanType
    scores: Dict[str, float]
    override: Optional[str] = None


@dataclass
class SensitivityAnalysis:
    time_threshold: Optional[float] = None
    cost_threshold: Optional[float] = None
    co2_threshold: Optional[float] = None

    def to_dict(self) -> JSONDict:
        return {
              "time_threshold": self.time_threshold
            , "cost_threshold": self.cost_threshold
            , "co2_threshold": self.co2_threshold
        }


@dataclass
class ScoreBreakdown:
    components: Dict[str, float]
    raw_metrics: Dict[str, float]
    normalized_metrics: Dict[str, float]
    total_score: float

    def to_dict(self) -> JSONDict:
        return {
              "components": dict(self.components)
            , "raw_metrics": dict(self.raw_metrics)
            , "normalized_metrics": dict(self.normalized_metrics)
            , "total_score": self.total_score
        }


@dataclass
class ComparisonMetadata:
    """
    Caller-supplied context for generate_comparison_result.

    Attributes
    ----------
    truck_distance_km : Optional[float]
        Direct truck distance, reported in the rationale.
    calculation_time_ms : Optional[float]
        Elapsed time measured by the caller (plan building included). When
        None, the optimizer reports its own compute time.
    cargo_kg : Optional[float]
        Cargo mass; enables the environmental override and load curves.
    route_complexity : Optional[str]
        'simple' | 'moderate' | 'complex', passed through.
    """

    truck_distance_km: Optional[float] = None
    calculation_time_ms: Optional[float] = None
    cargo_kg: Optional[float] = None
    route_complexity: Optional[str] = None


@dataclass
class ComparisonResult:
    candidates: List[TransportPlan]
    recommendation: PlanType
    rationale: JSONDict
    metadata: JSONDict
    scores: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> JSONDict:
        rationale: JSONDict = {}
        for key, block in self.rationale.items():
            block = dict(block)
            if "legs" in block:
                block["legs"] = [
                    leg.to_dict() if isinstance(leg, TransportLeg) else leg
                    for leg in block["legs"]
                ]
            rationale[key] = block
        return {
              "candidates": [p.to_dict() for p in self.candidates]
            , "recommendation": PlanType(self.recommendation).value
            , "rationale": rationale
            , "metadata": dict(self.metadata)
        }


# ────────────────────────────────────────────────────────────────────────────────
# Small helpers
# ────────────────────────────────────────────────────────────────────────────────

def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def percentage_difference(value: float, reference: float) -> int:
    """
    round((value - reference) / reference * 100); 0 when reference is 0.
    """
    if reference == 0:
        return 0
    return _round_half_up((value - reference) / reference * 100.0)


def _first_of(plans: Sequence[TransportPlan], plan_type: PlanType) -> Optional[TransportPlan]:
    for p in plans:
        if PlanType(p.plan) == plan_type:
            return p
    return None


def _check_metrics(plan: TransportPlan) -> None:
    if plan.time_h < 0 or plan.cost < 0 or plan.co2_kg < 0:
        raise InvalidMetric(
            f"Invalid metric values for plan {plan.key!r}: "
            f"time={plan.time_h} cost={plan.cost} co2={plan.co2_kg}"
        )


# ────────────────────────────────────────────────────────────────────────────────
# Optimizer
# ────────────────────────────────────────────────────────────────────────────────

class ScoreOptimizer:
    """
    Weighted-sum recommender with override heuristics.

    Parameters
    ----------
    config : OptimizerConfig | None
        Normalization method, epsilon, thresholds, load curves.
    """

    def __init__(self, config: OptimizerConfig | None = None) -> None:
        self.config = config or get_optimizer_config()

    @property
    def normalization_method(self) -> str:
        return self.config.normalization_method

    @property
    def epsilon(self) -> float:
        return self.config.epsilon

    # ---------- normalization ----------
    def normalize_weights(self, weights: WeightFactors) -> WeightFactors:
        return normalize_weights(weights)

    def normalize_metrics(self, plans: Sequence[TransportPlan]) -> List[NormalizedMetrics]:
        return normalize_metrics(plans, self.config.normalization_method, self.config.epsilon)

    # ---------- scoring ----------
    def _load_factor(self, plan: TransportPlan, cargo_kg: Optional[float]) -> float:
        if cargo_kg is None or cargo_kg <= 0:
            return 1.0
        return self.config.load_curve(plan.key).factor(cargo_kg)

    def scaled_for_cargo(
        self,
        plans: Sequence[TransportPlan],
        cargo_kg: Optional[float],
    ) -> List[TransportPlan]:
        """
        Copies of `plans` with co2_kg multiplied by each plan's load-curve factor.
        """
        if cargo_kg is None or cargo_kg <= 0:
            return list(plans)
        return [replace(p, co2_kg=p.co2_kg * self._load_factor(p, cargo_kg)) for p in plans]

    def calculate_score(
        self,
        plan: TransportPlan,
        weights: WeightFactors,
        cargo_kg: Optional[float] = None,
        normalized: Optional[NormalizedMetrics] = None,
    ) -> float:
        """
        Weighted score of one plan (lower is better).

        Without `normalized`, raw metrics are combined: hours, log10 of cost
        (so large currency amounts do not swamp the other terms) and kg CO2,
        the latter rescaled by the plan's load curve when cargo is given.
        With `normalized`, the normalized metrics are combined as they are;
        load scaling belongs before normalization (see `scaled_for_cargo`).

        Raises
        ------
        InvalidMetric
            If time, cost or emissions is negative.
        """
        _check_metrics(plan)
        w = normalize_weights(weights)

        if normalized is None:
            t = float(plan.time_h)
            c = math.log10(max(float(plan.cost), 1.0))
            e = float(plan.co2_kg) * self._load_factor(plan, cargo_kg)
        else:
            t, c, e = normalized.time, normalized.cost, normalized.co2

        return w.time * t + w.cost * c + w.co2 * e

    def _all_scores(
        self,
        plans: Sequence[TransportPlan],
        weights: WeightFactors,
        normalized: Sequence[NormalizedMetrics],
    ) -> List[float]:
        return [
            self.calculate_score(p, weights, normalized=n)
            for p, n in zip(plans, normalized)
        ]

    # ---------- overrides ----------
    def _environmental_override(
        self,
        weights: WeightFactors,
        plans: Sequence[TransportPlan],
        cargo_kg: Optional[float],
    ) -> bool:
        th = self.config.overrides
        if weights.co2 <= th.co2_weight or cargo_kg is None or cargo_kg <= th.heavy_cargo_kg:
            return False
        truck = _first_of(plans, PlanType.TRUCK)
        ship = _first_of(plans, PlanType.TRUCK_SHIP)
        if truck is None or ship is None or truck.co2_kg <= 0:
            return False
        reduction = (truck.co2_kg - ship.co2_kg) / truck.co2_kg
        return reduction > th.co2_reduction

    def _time_override(self, weights: WeightFactors, plans: Sequence[TransportPlan]) -> bool:
        th = self.config.overrides
        if weights.time <= th.time_weight:
            return False
        truck = _first_of(plans, PlanType.TRUCK)
        ship = _first_of(plans, PlanType.TRUCK_SHIP)
        if truck is None or ship is None or ship.time_h <= 0:
            return False
        reduction = (ship.time_h - truck.time_h) / ship.time_h
        return reduction > th.time_reduction

    # ---------- comparison ----------
    def compare_plans(
        self,
        plans: Sequence[TransportPlan],
        weights: WeightFactors,
        cargo_kg: Optional[float] = None,
    ) -> Comparison:
        """
        Recommend one plan; see the module docstring for the pipeline.

        Raises
        ------
        ValueError
            If `plans` is empty.
        InvalidMetric
            If any plan carries a negative metric.
        """
        if not plans:
            raise ValueError("compare_plans needs at least one plan.")

        w = normalize_weights(weights)
        normalized = self.normalize_metrics(self.scaled_for_cargo(plans, cargo_kg))
        score_list = self._all_scores(plans, w, normalized)
        scores = {p.key: s for p, s in zip(plans, score_list)}

        if self._environmental_override(w, plans, cargo_kg):
            _log.info(
                "compare: environmental override (co2 weight=%.2f, cargo=%.0f kg) → %s",
                w.co2, cargo_kg, PlanType.TRUCK_SHIP.value
            )
            return Comparison(PlanType.TRUCK_SHIP, scores, OVERRIDE_ENVIRONMENTAL)

        if self._time_override(w, plans):
            _log.info(
                "compare: time override (time weight=%.2f) → %s",
                w.time, PlanType.TRUCK.value
            )
            return Comparison(PlanType.TRUCK, scores, OVERRIDE_TIME)

        best_idx = 0
        for i, s in enumerate(score_list):
            if s < score_list[best_idx]:
                best_idx = i

        recommendation = PlanType(plans[best_idx].plan)
        _log.debug(
            "compare: weights=(%.3f, %.3f, %.3f) scores=%s → %s",
            w.time, w.cost, w.co2, scores, recommendation.value
        )
        return Comparison(recommendation, scores)

    def batch_compare(
        self,
        plans: Sequence[TransportPlan],
        weight_sets: Sequence[WeightFactors],
    ) -> List[Comparison]:
        return [self.compare_plans(plans, w) for w in weight_sets]

    # ---------- explainability ----------
    def analyze_sensitivity(self, plans: Sequence[TransportPlan]) -> SensitivityAnalysis:
        """
        Per dimension, the weight at which the recommendation first departs
        from the balanced-baseline one.

        The other two weights stay at the balanced baseline and the set is
        re-normalized after each perturbation. Binary search over [0, 1],
        stopping after `sensitivity_iterations` or once the interval is
        narrower than `sensitivity_precision`. None when no flip is seen.
        """
        result = SensitivityAnalysis()
        if len(plans) < 2:
            return result

        base = balanced_weights()
        base_rec = self.compare_plans(plans, base).recommendation

        for dim in METRICS:
            low, high = 0.0, 1.0
            threshold: Optional[float] = None
            for _ in range(self.config.sensitivity_iterations):
                mid = (low + high) / 2.0
                test = normalize_weights(base.with_value(dim, mid))
                if self.compare_plans(plans, test).recommendation == base_rec:
                    low = mid
                else:
                    high = mid
                    threshold = mid
                if high - low < self.config.sensitivity_precision:
                    break
            setattr(result, f"{dim}_threshold", threshold)

        _log.debug("sensitivity: %s", result.to_dict())
        return result

    def get_score_breakdown(
        self,
        plans: Sequence[TransportPlan],
        weights: WeightFactors,
    ) -> Dict[str, ScoreBreakdown]:
        """
        Weighted components, raw and normalized metrics, and total per plan key.
        """
        w = normalize_weights(weights)
        normalized = self.normalize_metrics(plans)
        out: Dict[str, ScoreBreakdown] = {}

        for plan, n in zip(plans, normalized):
            components = {
                  "time": w.time * n.time
                , "cost": w.cost * n.cost
                , "co2": w.co2 * n.co2
            }
            out[plan.key] = ScoreBreakdown(
                  components=components
                , raw_metrics={"time": plan.time_h, "cost": plan.cost, "co2": plan.co2_kg}
                , normalized_metrics={"time": n.time, "cost": n.cost, "co2": n.co2}
                , total_score=components["time"] + components["cost"] + components["co2"]
            )
        return out

    def identify_dominant_factors(
        self,
        plans: Sequence[TransportPlan],
        weights: Optional[WeightFactors] = None,
    ) -> Dict[str, List[str]]:
        """
        Components above `dominance_share` of the plan's total score, largest
        first; ['balanced'] when none qualifies (or the total is not positive).
        """
        breakdown = self.get_score_breakdown(plans, weights or balanced_weights())
        share = self.config.dominance_share
        factors: Dict[str, List[str]] = {}

        for key, b in breakdown.items():
            dominant: List[str] = []
            if b.total_score > 0:
                ranked = sorted(b.components.items(), key=lambda kv: kv[1], reverse=True)
                dominant = [name for name, value in ranked if value / b.total_score > share]
            factors[key] = dominant or ["balanced"]
        return factors

    # ---------- rationale figures ----------
    @staticmethod
    def co2_efficiency(plan: TransportPlan, distance_km: float) -> Optional[int]:
        """
        ton-km per kg CO2 (×100) for a one-ton reference load; None without emissions.
        """
        if plan.co2_kg <= 0:
            return None
        return _round_half_up(distance_km * 1000.0 / plan.co2_kg * 100.0)

    @staticmethod
    def time_efficiency(plan: TransportPlan, distance_km: float) -> int:
        """
        Average km per hour (time floored at 0.1 h).
        """
        return _round_half_up(distance_km / max(plan.time_h, 0.1))

    @staticmethod
    def multi_modal_advantage(ship: TransportPlan, truck: Optional[TransportPlan]) -> int:
        """
        Mean of the CO2 and cost percentage savings of the multi-modal plan.
        """
        if truck is None:
            return 0
        co2_adv = (
            _round_half_up((truck.co2_kg - ship.co2_kg) / truck.co2_kg * 100.0)
            if truck.co2_kg > ship.co2_kg else 0
        )
        cost_adv = (
            _round_half_up((truck.cost - ship.cost) / truck.cost * 100.0)
            if truck.cost > ship.cost else 0
        )
        return _round_half_up((co2_adv + cost_adv) / 2.0)

    @staticmethod
    def recommendation_confidence(scores: Dict[str, float]) -> int:
        """
        min(round((max - min) / max * 100), 95); 50 with fewer than two scores.
        """
        values = list(scores.values())
        if len(values) < 2:
            return 50
        lo, hi = min(values), max(values)
        if hi <= 0:
            return 0
        return min(_round_half_up((hi - lo) / hi * 100.0), 95)

    def _performance_metrics(self, plans: Sequence[TransportPlan], recommendation: PlanType) -> JSONDict:
        if _first_of(plans, PlanType.TRUCK) is None or _first_of(plans, PlanType.TRUCK_SHIP) is None:
            return {}
        recommended = _first_of(plans, recommendation)
        alternative = next((p for p in plans if PlanType(p.plan) != recommendation), None)
        if recommended is None or alternative is None:
            return {}
        return {
              "co2_reduction_percent": percentage_difference(recommended.co2_kg, alternative.co2_kg)
            , "time_difference_percent": percentage_difference(recommended.time_h, alternative.time_h)
            , "cost_difference_percent": percentage_difference(recommended.cost, alternative.cost)
        }

    # ---------- top-level ----------
    def generate_comparison_result(
        self,
        plans: Sequence[TransportPlan],
        weights: WeightFactors,
        metadata: ComparisonMetadata | None = None,
    ) -> ComparisonResult:
        """
        compare_plans + rationale + metadata, the shape callers serialize.
        """
        t0 = time.perf_counter()
        meta = metadata or ComparisonMetadata()
        comparison = self.compare_plans(plans, weights, meta.cargo_kg)

        truck = _first_of(plans, PlanType.TRUCK)
        ship = _first_of(plans, PlanType.TRUCK_SHIP)

        rationale: JSONDict = {}
        if truck is not None and meta.truck_distance_km:
            rationale[PlanType.TRUCK.value] = {
                  "distance_km": meta.truck_distance_km
                , "co2_efficiency": self.co2_efficiency(truck, meta.truck_distance_km)
                , "time_efficiency": self.time_efficiency(truck, meta.truck_distance_km)
            }
        if ship is not None and ship.legs:
            rationale[PlanType.TRUCK_SHIP.value] = {
                  "legs": list(ship.legs)
                , "co2_efficiency": self.co2_efficiency(ship, ship.total_distance_km)
                , "time_efficiency": self.time_efficiency(ship, ship.total_distance_km)
                , "multi_modal_advantage": self.multi_modal_advantage(ship, truck)
            }

        performance = self._performance_metrics(plans, comparison.recommendation)
        performance["recommendation_confidence"] = self.recommendation_confidence(comparison.scores)

        elapsed_ms = (
            meta.calculation_time_ms
            if meta.calculation_time_ms is not None
            else (time.perf_counter() - t0) * 1000.0
        )
        md: JSONDict = {
              "calculation_time_ms": elapsed_ms
            , "data_version": self.config.data_version
            , "cargo_kg": meta.cargo_kg
            , "performance_metrics": performance
        }
        if comparison.override is not None:
            md["override"] = comparison.override
        if meta.route_complexity is not None:
            md["route_complexity"] = meta.route_complexity

        _log.info(
            "comparison: %d candidates → %s (confidence=%s%%)",
            len(plans), comparison.recommendation.value, performance["recommendation_confidence"]
        )
        return ComparisonResult(
              candidates=list(plans)
            , recommendation=comparison.recommendation
            , rationale=rationale
            , metadata=md
            , scores=comparison.scores
        )
