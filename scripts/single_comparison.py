#!/usr/bin/env python3
# scripts/single_comparison.py
# -*- coding: utf-8 -*-

"""
Score precomputed plans and print the comparison result as JSON.

Input JSON: a list of plans, e.g.

    [
      {"plan": "truck", "time_h": 7.2, "cost": 15600, "co2_kg": 26},
      {"plan": "truck+ship", "time_h": 21.4, "cost": 6280, "co2_kg": 5.26,
       "legs": [{"from": "Tokyo", "to": "Tokyo Port", "mode": "truck",
                 "distance_km": 20, "time_hours": 0.5}, ...]}
    ]

Usage
-----
python scripts/single_comparison.py --plans plans.json --time 0.5 --cost 0.3 --co2 0.2 ^
    --cargo-kg 500 --truck-distance 520 --explain --pretty
"""

from __future__ import annotations

# --- path bootstrap (must be the first lines of the file) ---
from pathlib import Path
import sys
ROOT = Path(__file__).resolve().parents[1]  # repo root (one level above /scripts)
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# ------------------------------------------------------------

import argparse
import json
import logging
from typing import List, Optional

from ecoroute.core.config import OptimizerConfig
from ecoroute.core.models import TransportPlan, WeightFactors
from ecoroute.infra.logging import init_logging, log_banner
from ecoroute.scoring.optimizer import ComparisonMetadata, ScoreOptimizer

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Compare TRUCK vs TRUCK+SHIP plans from a JSON file and print the recommendation."
    )
    p.add_argument("--plans", type=Path, required=True, help="JSON file with a list of plans.")
    p.add_argument("--time", type=float, default=0.33, help="Time weight. Default: 0.33")
    p.add_argument("--cost", type=float, default=0.33, help="Cost weight. Default: 0.33")
    p.add_argument("--co2", type=float, default=0.34, help="CO2 weight. Default: 0.34")
    p.add_argument("--cargo-kg", type=float, default=None, help="Cargo mass in kg (enables load curves).")
    p.add_argument("--truck-distance", type=float, default=None, help="Direct truck distance (km) for the rationale.")
    p.add_argument(
          "--method"
        , default="min-max"
        , choices=["min-max", "z-score"]
        , help="Metric normalization. Default: min-max"
    )
    p.add_argument("--explain", action="store_true", help="Add breakdown, dominant factors and sensitivity.")
    p.add_argument("--pretty", action="store_true", help="Pretty-print JSON.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def _load_plans(path: Path) -> List[TransportPlan]:
    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a JSON list of plans.")
    return [TransportPlan.from_dict(item) for item in payload]


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    init_logging(level=args.log_level, force=True)
    log_banner(log, f"single_comparison: {args.plans}")

    plans = _load_plans(args.plans)
    weights = WeightFactors(time=args.time, cost=args.cost, co2=args.co2)
    optimizer = ScoreOptimizer(OptimizerConfig(normalization_method=args.method))

    result = optimizer.generate_comparison_result(
          plans
        , weights
        , ComparisonMetadata(truck_distance_km=args.truck_distance, cargo_kg=args.cargo_kg)
    )
    out = result.to_dict()

    if args.explain:
        out["explain"] = {
              "scores": result.scores
            , "breakdown": {k: b.to_dict() for k, b in optimizer.get_score_breakdown(plans, weights).items()}
            , "dominant_factors": optimizer.identify_dominant_factors(plans, weights)
            , "sensitivity": optimizer.analyze_sensitivity(plans).to_dict()
        }

    print(json.dumps(out, ensure_ascii=False, indent=2 if args.pretty else None))
    return 0


if __name__ == "__main__":
    sys.exit(main())
