# ecoroute/scoring/normalization.py
# -*- coding: utf-8 -*-
"""
Weight and metric normalization
===============================

- normalize_weights(weights) -> WeightFactors
    Rescale to sum 1; an all-zero input becomes the balanced split
    (0.33, 0.33, 0.34).
- normalize_metrics(plans, method, epsilon) -> List[NormalizedMetrics]
    Rescale time / cost / co2 across the candidate set:
      • 'min-max': (v - min) / (max - min); 0.5 for every plan when the
        range is ≤ epsilon
      • 'z-score': (v - mean) / std (population std); 0 for every plan when
        std is ≤ epsilon
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from ecoroute.core.config import BALANCED_WEIGHTS
from ecoroute.core.models import TransportPlan, WeightFactors

METRICS = ("time", "cost", "co2")


@dataclass(frozen=True)
class NormalizedMetrics:
    time: float
    cost: float
    co2: float


def balanced_weights() -> WeightFactors:
    t, c, e = BALANCED_WEIGHTS
    return WeightFactors(time=t, cost=c, co2=e)


def normalize_weights(weights: WeightFactors) -> WeightFactors:
    """
    Divide each component by the sum; zero sum → balanced split.

    Raises
    ------
    ValueError
        On a negative component.
    """
    if weights.time < 0 or weights.cost < 0 or weights.co2 < 0:
        raise ValueError(f"Weights must be non-negative, got {weights}")

    total = weights.total
    if total == 0:
        return balanced_weights()

    return WeightFactors(
          time=weights.time / total
        , cost=weights.cost / total
        , co2=weights.co2 / total
    )


def _raw_columns(plans: Sequence[TransportPlan]) -> List[List[float]]:
    return [
          [float(p.time_h) for p in plans]
        , [float(p.cost) for p in plans]
        , [float(p.co2_kg) for p in plans]
    ]


def _min_max(values: List[float], epsilon: float) -> List[float]:
    lo, hi = min(values), max(values)
    rng = hi - lo
    if rng <= epsilon:
        return [0.5] * len(values)
    return [(v - lo) / rng for v in values]


def _z_score(values: List[float], epsilon: float) -> List[float]:
    mean = sum(values) / len(values)
    std = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    if std <= epsilon:
        return [0.0] * len(values)
    return [(v - mean) / std for v in values]


def normalize_metrics(
      plans: Sequence[TransportPlan]
    , method: str = "min-max"
    , epsilon: float = 0.001
) -> List[NormalizedMetrics]:
    """
    Per-plan normalized metrics, in input order.
    """
    if not plans:
        return []

    if method == "min-max":
        fn = _min_max
    elif method == "z-score":
        fn = _z_score
    else:
        raise ValueError(f"Unknown normalization method {method!r}")

    times, costs, co2s = (fn(col, epsilon) for col in _raw_columns(plans))
    return [
        NormalizedMetrics(time=t, cost=c, co2=e)
        for t, c, e in zip(times, costs, co2s)
    ]
