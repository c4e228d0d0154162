"""
scoring.py – Weighted multi-factor risk score.

Scoring model
-------------
1. Each raw factor is normalised into 0–10 with a fixed linear cap:
     volume    : transactions / 100
     conflicts : role conflicts × 2
     anomaly   : already on a 0–10 scale
     temporal  : temporal violations × 1.5
     previous  : previous violations × 0.5
2. The normalised factors are combined with RISK_WEIGHTS (sum = 1.0).
3. The result is clamped to [1, 10]: there is always some baseline risk.
"""
from __future__ import annotations

import math
from typing import Dict, Optional

from .config import (
    RISK_WEIGHTS,
    VOLUME_DIVISOR, CONFLICTS_MULTIPLIER, TEMPORAL_MULTIPLIER, PREVIOUS_MULTIPLIER,
    FACTOR_CAP, RISK_SCORE_MIN, RISK_SCORE_MAX,
)

if math.fsum(RISK_WEIGHTS.values()) != 1.0:
    raise RuntimeError(f"RISK_WEIGHTS must sum to 1.0, got {math.fsum(RISK_WEIGHTS.values())}")


def _normalise_factors(
    transaction_volume: float,
    role_conflicts: float,
    anomaly_score: float,
    temporal_violations: float,
    previous_violations: float,
) -> Dict[str, float]:
    return {
        "volume":    min(transaction_volume / VOLUME_DIVISOR, FACTOR_CAP),
        "conflicts": min(role_conflicts * CONFLICTS_MULTIPLIER, FACTOR_CAP),
        "anomaly":   min(anomaly_score, FACTOR_CAP),
        "temporal":  min(temporal_violations * TEMPORAL_MULTIPLIER, FACTOR_CAP),
        "previous":  min(previous_violations * PREVIOUS_MULTIPLIER, FACTOR_CAP),
    }


def calculate_risk_score(
    transaction_volume: Optional[float] = 0,
    role_conflicts: Optional[float] = 0,
    anomaly_score: Optional[float] = 0,
    temporal_violations: Optional[float] = 0,
    previous_violations: Optional[float] = 0,
) -> float:
    """
    Collapse five risk signals into a single score in [1, 10].

    Absent factors (``None``) count as 0, so ``calculate_risk_score()``
    returns the floor value 1.0.
    """
    normalised = _normalise_factors(
        transaction_volume or 0,
        role_conflicts or 0,
        anomaly_score or 0,
        temporal_violations or 0,
        previous_violations or 0,
    )
    score = sum(normalised[name] * weight for name, weight in RISK_WEIGHTS.items())
    return float(min(max(score, RISK_SCORE_MIN), RISK_SCORE_MAX))
