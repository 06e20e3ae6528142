from __future__ import annotations

import pytest

from ecoroute.core.config import OptimizerConfig
from ecoroute.core.errors import InvalidMetric
from ecoroute.core.models import PlanType, TransportPlan, WeightFactors
from ecoroute.scoring.normalization import balanced_weights
from ecoroute.scoring.optimizer import (
    OVERRIDE_ENVIRONMENTAL,
    OVERRIDE_TIME,
    ComparisonMetadata,
    ScoreOptimizer,
    percentage_difference,
)


@pytest.fixture
def optimizer():
    return ScoreOptimizer()


def _plan(kind, t, c, e):
    return TransportPlan(plan=kind, time_h=t, cost=c, co2_kg=e)


# calculate_score


def test_raw_score_uses_log_cost(optimizer):
    plan = _plan(PlanType.TRUCK, 2.0, 1000.0, 3.0)
    assert optimizer.calculate_score(plan, WeightFactors(1, 1, 1)) == pytest.approx(8.0 / 3.0)


def test_raw_score_floors_cost_at_one(optimizer):
    plan = _plan(PlanType.TRUCK, 3.0, 0.5, 0.0)
    assert optimizer.calculate_score(plan, WeightFactors(1, 0, 0)) == pytest.approx(3.0)
    assert optimizer.calculate_score(plan, WeightFactors(0, 1, 0)) == pytest.approx(0.0)


def test_cargo_scales_emissions_by_load_curve(optimizer):
    plan = _plan(PlanType.TRUCK, 2.0, 1000.0, 3.0)
    # truck curve at 5000 kg: 1.0 + 0.8 * 0.5
    expected = (2.0 + 3.0 + 3.0 * 1.4) / 3.0
    assert optimizer.calculate_score(plan, WeightFactors(1, 1, 1), cargo_kg=5000) == pytest.approx(expected)


def test_load_curve_caps_at_capacity(optimizer):
    plan = _plan(PlanType.TRUCK_SHIP, 0.0, 1.0, 10.0)
    w = WeightFactors(0, 0, 1)
    assert optimizer.calculate_score(plan, w, cargo_kg=100_000) == pytest.approx(5.0)
    assert optimizer.calculate_score(plan, w, cargo_kg=1_000_000) == pytest.approx(5.0)


@pytest.mark.parametrize("t, c, e", [(-1, 1, 1), (1, -1, 1), (1, 1, -0.01)])
def test_negative_metric_rejected(optimizer, t, c, e):
    with pytest.raises(InvalidMetric):
        optimizer.calculate_score(_plan(PlanType.TRUCK, t, c, e), balanced_weights())


def test_invalid_metric_rejected_by_compare(optimizer, truck_plan):
    with pytest.raises(InvalidMetric):
        optimizer.compare_plans([truck_plan, _plan(PlanType.TRUCK_SHIP, 1, 1, -1)], balanced_weights())


# compare_plans


def test_balanced_weights_prefer_multi_modal(optimizer, truck_plan, ship_plan):
    result = optimizer.compare_plans([truck_plan, ship_plan], balanced_weights())
    assert result.recommendation == PlanType.TRUCK_SHIP
    assert result.override is None
    assert result.scores["truck"] == pytest.approx(0.67)
    assert result.scores["truck+ship"] == pytest.approx(0.33)


def test_co2_heavy_weights_with_heavy_cargo(optimizer):
    truck = _plan(PlanType.TRUCK, 7.2, 15600.0, 26.0)
    ship = _plan(PlanType.TRUCK_SHIP, 21.4, 6280.0, 26.0 * 0.2)
    result = optimizer.compare_plans([truck, ship], WeightFactors(0.1, 0.2, 0.7), cargo_kg=6000)
    assert result.recommendation == PlanType.TRUCK_SHIP
    assert result.scores["truck+ship"] < result.scores["truck"]


def test_environmental_override(optimizer, truck_plan, ship_plan):
    result = optimizer.compare_plans([truck_plan, ship_plan], WeightFactors(0.05, 0.15, 0.8), cargo_kg=6000)
    assert result.recommendation == PlanType.TRUCK_SHIP
    assert result.override == OVERRIDE_ENVIRONMENTAL
    assert set(result.scores) == {"truck", "truck+ship"}


def test_environmental_override_needs_heavy_cargo(optimizer, truck_plan, ship_plan):
    result = optimizer.compare_plans([truck_plan, ship_plan], WeightFactors(0.05, 0.15, 0.8), cargo_kg=5000)
    assert result.override is None


def test_time_override_forces_truck(optimizer, truck_plan, ship_plan):
    result = optimizer.compare_plans([truck_plan, ship_plan], WeightFactors(0.9, 0.05, 0.05))
    assert result.recommendation == PlanType.TRUCK
    assert result.override == OVERRIDE_TIME
    assert set(result.scores) == {"truck", "truck+ship"}


def test_time_override_needs_large_time_gap(optimizer):
    truck = _plan(PlanType.TRUCK, 8.0, 100.0, 10.0)
    ship = _plan(PlanType.TRUCK_SHIP, 10.0, 50.0, 2.0)
    result = optimizer.compare_plans([truck, ship], WeightFactors(0.9, 0.05, 0.05))
    assert result.override is None


def test_ties_go_to_first_plan(optimizer):
    a = _plan(PlanType.TRUCK_SHIP, 10.0, 100.0, 5.0)
    b = _plan(PlanType.TRUCK, 10.0, 100.0, 5.0)
    assert optimizer.compare_plans([a, b], balanced_weights()).recommendation == PlanType.TRUCK_SHIP
    assert optimizer.compare_plans([b, a], balanced_weights()).recommendation == PlanType.TRUCK


def test_single_plan_is_recommended(optimizer, truck_plan):
    result = optimizer.compare_plans([truck_plan], balanced_weights())
    assert result.recommendation == PlanType.TRUCK
    assert list(result.scores) == ["truck"]


def test_empty_plans_rejected(optimizer):
    with pytest.raises(ValueError):
        optimizer.compare_plans([], balanced_weights())


def test_z_score_method(truck_plan, ship_plan):
    optimizer = ScoreOptimizer(OptimizerConfig(normalization_method="z-score"))
    result = optimizer.compare_plans([truck_plan, ship_plan], balanced_weights())
    assert result.recommendation == PlanType.TRUCK_SHIP


def test_z_score_heavier_load_never_lowers_emissions_term():
    optimizer = ScoreOptimizer(OptimizerConfig(normalization_method="z-score"))
    # truck emits less raw CO2, but at full load its curve (1.8) overtakes
    # the ship's (0.32), so after scaling the truck is the dirtier plan
    truck = _plan(PlanType.TRUCK, 10.0, 1000.0, 10.0)
    ship = _plan(PlanType.TRUCK_SHIP, 10.0, 1000.0, 12.0)

    result = optimizer.compare_plans([truck, ship], WeightFactors(0, 0, 1), cargo_kg=10_000)

    assert result.override is None
    assert result.recommendation == PlanType.TRUCK_SHIP
    assert result.scores["truck"] == pytest.approx(1.0)
    assert result.scores["truck+ship"] == pytest.approx(-1.0)


def test_scaled_for_cargo(optimizer, truck_plan, ship_plan):
    assert optimizer.scaled_for_cargo([truck_plan], None) == [truck_plan]
    truck, ship = optimizer.scaled_for_cargo([truck_plan, ship_plan], 5000)
    assert truck.co2_kg == pytest.approx(26.0 * 1.4)
    assert ship.co2_kg == pytest.approx(5.26 * 0.31)
    assert truck_plan.co2_kg == 26.0


def test_unknown_method_rejected():
    with pytest.raises(ValueError):
        OptimizerConfig(normalization_method="rank")


def test_batch_compare(optimizer, truck_plan, ship_plan):
    out = optimizer.batch_compare(
        [truck_plan, ship_plan],
        [WeightFactors(0.9, 0.05, 0.05), balanced_weights()],
    )
    assert [c.recommendation for c in out] == [PlanType.TRUCK, PlanType.TRUCK_SHIP]


# explainability


def test_sensitivity_finds_time_threshold(optimizer, truck_plan, ship_plan):
    plans = [truck_plan, ship_plan]
    result = optimizer.analyze_sensitivity(plans)

    assert result.time_threshold == pytest.approx(0.67, abs=2e-3)
    assert result.cost_threshold is None
    assert result.co2_threshold is None

    base = balanced_weights()
    below = base.with_value("time", result.time_threshold - 0.002)
    above = base.with_value("time", result.time_threshold + 0.002)
    assert optimizer.compare_plans(plans, below).recommendation == PlanType.TRUCK_SHIP
    assert optimizer.compare_plans(plans, above).recommendation == PlanType.TRUCK


def test_sensitivity_needs_two_plans(optimizer, truck_plan):
    result = optimizer.analyze_sensitivity([truck_plan])
    assert result.to_dict() == {"time_threshold": None, "cost_threshold": None, "co2_threshold": None}


def test_breakdown_components_sum_to_total(optimizer, truck_plan, ship_plan):
    breakdown = optimizer.get_score_breakdown([truck_plan, ship_plan], WeightFactors(0.2, 0.5, 0.3))
    assert set(breakdown) == {"truck", "truck+ship"}
    for b in breakdown.values():
        assert sum(b.components.values()) == pytest.approx(b.total_score, abs=1e-12)
    assert breakdown["truck"].raw_metrics == {"time": 7.2, "cost": 15600.0, "co2": 26.0}
    assert breakdown["truck"].normalized_metrics == {"time": 0.0, "cost": 1.0, "co2": 1.0}


def test_dominant_factors(optimizer, truck_plan, ship_plan):
    factors = optimizer.identify_dominant_factors([truck_plan, ship_plan])
    assert factors["truck"] == ["co2", "cost"]
    assert factors["truck+ship"] == ["time"]


def test_zero_score_is_balanced(optimizer):
    best = _plan(PlanType.TRUCK, 1.0, 1.0, 1.0)
    worst = _plan(PlanType.TRUCK_SHIP, 2.0, 2.0, 2.0)
    factors = optimizer.identify_dominant_factors([best, worst], balanced_weights())
    assert factors["truck"] == ["balanced"]


def test_recommendation_confidence():
    assert ScoreOptimizer.recommendation_confidence({"truck": 1.0}) == 50
    assert ScoreOptimizer.recommendation_confidence({"truck": 0.0, "truck+ship": 0.0}) == 0
    assert ScoreOptimizer.recommendation_confidence({"truck": 1.0, "truck+ship": 0.5}) == 50
    assert ScoreOptimizer.recommendation_confidence({"truck": 100.0, "truck+ship": 0.0}) == 95


def test_percentage_difference():
    assert percentage_difference(150.0, 100.0) == 50
    assert percentage_difference(5.26, 26.0) == -80
    assert percentage_difference(1.0, 0.0) == 0


def test_generate_comparison_result(optimizer, truck_plan, ship_plan):
    result = optimizer.generate_comparison_result(
        [truck_plan, ship_plan],
        balanced_weights(),
        ComparisonMetadata(truck_distance_km=520.0, calculation_time_ms=12.5, route_complexity="simple"),
    )
    out = result.to_dict()

    assert out["recommendation"] == "truck+ship"
    assert [c["plan"] for c in out["candidates"]] == ["truck", "truck+ship"]

    truck_r = out["rationale"]["truck"]
    assert truck_r["distance_km"] == 520.0
    assert truck_r["co2_efficiency"] == 2_000_000
    assert truck_r["time_efficiency"] == 72

    ship_r = out["rationale"]["truck+ship"]
    assert [leg["from"] for leg in ship_r["legs"]] == ["Tokyo", "Tokyo Port", "Osaka Port"]
    assert ship_r["time_efficiency"] == 20
    assert ship_r["multi_modal_advantage"] == 70

    md = out["metadata"]
    assert md["calculation_time_ms"] == 12.5
    assert md["data_version"] == "2.0.0"
    assert md["route_complexity"] == "simple"
    assert "override" not in md
    assert md["performance_metrics"] == {
        "co2_reduction_percent": -80,
        "time_difference_percent": 197,
        "cost_difference_percent": -60,
        "recommendation_confidence": 51,
    }


def test_generate_result_single_plan(optimizer, truck_plan):
    result = optimizer.generate_comparison_result([truck_plan], balanced_weights())
    assert result.recommendation == PlanType.TRUCK
    assert result.rationale == {}
    assert result.metadata["performance_metrics"] == {"recommendation_confidence": 50}
    assert result.metadata["calculation_time_ms"] >= 0.0


def test_generate_result_reports_override(optimizer, truck_plan, ship_plan):
    result = optimizer.generate_comparison_result(
        [truck_plan, ship_plan],
        WeightFactors(0.9, 0.05, 0.05),
        ComparisonMetadata(cargo_kg=1000.0),
    )
    assert result.metadata["override"] == "time"
    assert result.metadata["cargo_kg"] == 1000.0
