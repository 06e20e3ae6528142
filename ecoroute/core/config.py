# ecoroute/core/config.py
# -*- coding: utf-8 -*-

"""
Core configuration models and globals.

Pure configuration structures, independent of HTTP or any data store, so
they are safe to import from anywhere. Every tunable number used by the
resolver or the optimizer lives here instead of inline.

Current contents
----------------
- ResolverDefaults: token bucket, retry and cache defaults
- OverrideThresholds: the two forced-recommendation heuristics
- LoadCurve / LOAD_CURVES: per-plan emissions scaling with cargo mass
- OptimizerConfig: normalization method + thresholds + load curves
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

# Plan keys (mirrors ecoroute.core.models.PlanType values; kept as plain
# strings here so this module has no project imports)
_PLAN_TRUCK = "truck"
_PLAN_TRUCK_SHIP = "truck+ship"


# ────────────────────────────────────────────────────────────────────────────────
# Resolver defaults
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResolverDefaults:
    """
    Defaults for the distance resolver.

    Attributes
    ----------
    bucket_capacity : int
        Maximum number of tokens the rate-limit bucket holds.
    refill_rate : float
        Tokens added per second.
    max_retries : int
        Total attempts for a call that keeps timing out.
    backoff_s : float
        Base delay before the second attempt; doubles on each further attempt.
    cache_ttl_s : float | None
        Entry lifetime in seconds; None keeps entries for the process lifetime.
    profile : str
        Vehicle profile sent to the distance service.
    """

    bucket_capacity: int = 5
    refill_rate: float = 5.0
    max_retries: int = 3
    backoff_s: float = 0.2
    cache_ttl_s: float | None = None
    profile: str = "driving-hgv"


# ────────────────────────────────────────────────────────────────────────────────
# Optimizer configuration
# ────────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OverrideThresholds:
    """
    Thresholds of the forced-recommendation heuristics.

    Environmental override: co2 weight > `co2_weight`, cargo > `heavy_cargo_kg`
    and multi-modal emissions more than `co2_reduction` below single-mode.

    Time override: time weight > `time_weight` and single-mode time more than
    `time_reduction` below multi-modal.
    """

    co2_weight: float = 0.7
    heavy_cargo_kg: float = 5000.0
    co2_reduction: float = 0.3
    time_weight: float = 0.8
    time_reduction: float = 0.5


@dataclass(frozen=True)
class LoadCurve:
    """
    Emissions load curve: scaled = raw * (base_factor + load_factor * min(cargo / capacity_kg, 1)).
    """

    base_factor: float
    load_factor: float
    capacity_kg: float

    def factor(self, cargo_kg: float) -> float:
        ratio = min(float(cargo_kg) / self.capacity_kg, 1.0)
        return self.base_factor + self.load_factor * ratio


LOAD_CURVES: Dict[str, LoadCurve] = {
      _PLAN_TRUCK:      LoadCurve(base_factor=1.0, load_factor=0.8, capacity_kg=10_000.0)
    , _PLAN_TRUCK_SHIP: LoadCurve(base_factor=0.3, load_factor=0.2, capacity_kg=100_000.0)
}

BALANCED_WEIGHTS = (0.33, 0.33, 0.34)


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Score optimizer configuration.

    Attributes
    ----------
    normalization_method : str
        'min-max' or 'z-score'.
    epsilon : float
        Ranges / standard deviations at or below this are treated as degenerate.
    overrides : OverrideThresholds
        Forced-recommendation thresholds.
    load_curves : Mapping[str, LoadCurve]
        Per plan key; unknown plan keys use the truck curve.
    dominance_share : float
        Share of the total score above which a component is dominant.
    sensitivity_iterations : int
        Binary search iterations per dimension.
    sensitivity_precision : float
        Binary search stops once the interval is narrower than this.
    data_version : str
        Reported in comparison metadata.
    """

    normalization_method: str = "min-max"
    epsilon: float = 0.001
    overrides: OverrideThresholds = field(default_factory=OverrideThresholds)
    load_curves: Mapping[str, LoadCurve] = field(default_factory=lambda: dict(LOAD_CURVES))
    dominance_share: float = 0.3
    sensitivity_iterations: int = 20
    sensitivity_precision: float = 0.001
    data_version: str = "2.0.0"

    def __post_init__(self) -> None:
        if self.normalization_method not in ("min-max", "z-score"):
            raise ValueError(
                f"normalization_method must be 'min-max' or 'z-score', got {self.normalization_method!r}"
            )

    def load_curve(self, plan_key: str) -> LoadCurve:
        curve = self.load_curves.get(plan_key)
        if curve is None:
            curve = self.load_curves.get(_PLAN_TRUCK, LOAD_CURVES[_PLAN_TRUCK])
        return curve


# ────────────────────────────────────────────────────────────────────────────────
# Singleton-style instances
# ────────────────────────────────────────────────────────────────────────────────

RESOLVER_DEFAULTS = ResolverDefaults()
OPTIMIZER_CONFIG = OptimizerConfig()


def get_resolver_defaults() -> ResolverDefaults:
    """
    Return the global resolver defaults.
    """
    return RESOLVER_DEFAULTS


def get_optimizer_config() -> OptimizerConfig:
    """
    Return the global optimizer configuration.

    Provided as a function in case this ever needs to be loaded from a file
    or environment without changing call sites.
    """
    return OPTIMIZER_CONFIG
