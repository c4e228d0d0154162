"""
stats.py – Descriptive-statistics primitives used by the risk engine.

Zero-default policy
-------------------
Empty inputs never raise: mean / standard deviation / z-score return 0 and
the outlier detector returns an empty set with zeroed bounds. Callers treat
"no data" as "no deviation" rather than as a failure.

Standard deviation is the *population* variant (divide by N).
"""
from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

from .config import IQR_MULTIPLIER, OUTLIER_MIN_POINTS


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return sum(values) / len(values)


def standard_deviation(values: Sequence[float], mean_override: Optional[float] = None) -> float:
    """
    Population standard deviation.

    ``mean_override`` lets callers that already hold the mean skip
    recomputing it.
    """
    if len(values) == 0:
        return 0.0
    avg = mean(values) if mean_override is None else mean_override
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def z_score(value: float, dataset: Sequence[float]) -> float:
    """Standard score of ``value`` in ``dataset``; 0 for a zero-variance dataset."""
    avg = mean(dataset)
    std = standard_deviation(dataset, avg)
    if std == 0:
        return 0.0
    return (value - avg) / std


def percentile(value: float, dataset: Sequence[float]) -> float:
    """
    Percentile rank (0–100): position of the first element >= value in the
    ascending dataset, as a share of its length. 100 when value exceeds
    every element.
    """
    ordered = sorted(dataset)
    for index, v in enumerate(ordered):
        if v >= value:
            return index / len(ordered) * 100.0
    return 100.0


def detect_outliers(values: Sequence[float]) -> Dict:
    """
    Tukey IQR outlier detection.

    Quartiles are taken at the floor(0.25·N) and floor(0.75·N) indices of the
    sorted data (no interpolation). Outliers keep their input order.

    Returns
    -------
    dict with:
        outliers  : list[float]  – values strictly outside the bounds
        threshold : dict         – {"lower": float, "upper": float}
    """
    if len(values) < OUTLIER_MIN_POINTS:
        return {"outliers": [], "threshold": {"lower": 0, "upper": 0}}

    ordered = sorted(values)
    q1 = ordered[math.floor(len(ordered) * 0.25)]
    q3 = ordered[math.floor(len(ordered) * 0.75)]
    iqr = q3 - q1

    lower = q1 - IQR_MULTIPLIER * iqr
    upper = q3 + IQR_MULTIPLIER * iqr
    outliers: List[float] = [v for v in values if v < lower or v > upper]

    return {"outliers": outliers, "threshold": {"lower": lower, "upper": upper}}
