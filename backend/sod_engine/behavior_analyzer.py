"""
behavior_analyzer.py – Behavioural baseline & anomaly detection for one actor.

Baseline profile
----------------
  avg_transactions_per_day : transaction count / BASELINE_PERIOD_DAYS (always
                             30, regardless of the span actually covered)
  avg_amount               : mean of the positive amounts
  most_common_hour         : modal hour-of-day of the timestamps
  most_common_action       : modal action code
  action_distribution      : action → count, in first-appearance order
Ties for "most common" go to the value seen first in row order.

Anomalies (only checked with more than BEHAVIOR_MIN_AMOUNTS positive amounts)
---------
  VOLUME_ANOMALY : z-score of the transaction count against a reference
                   dataset. By default the reference is the single point
                   avg_transactions_per_day × 30, i.e. the count itself, so
                   z is always 0. Pass ``volume_baseline`` (e.g. peer counts)
                   to compare against a real population.
  AMOUNT_ANOMALY : IQR outliers among the positive amounts.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import (
    BASELINE_PERIOD_DAYS,
    BEHAVIOR_MIN_AMOUNTS,
    VOLUME_Z_HIGH,
    VOLUME_Z_THRESHOLD,
)
from .stats import detect_outliers, mean, z_score

log = logging.getLogger(__name__)


def _most_frequent(values: Sequence):
    """Modal value; ties resolved in favour of the first value encountered."""
    if len(values) == 0:
        return None
    return Counter(values).most_common(1)[0][0]


def build_baseline_profile(df: pd.DataFrame) -> Dict:
    """Baseline profile of an actor's transactions ({} when there are none)."""
    if df.empty:
        return {}

    actions = df["action"].astype(str).tolist()
    hours = [int(h) for h in pd.to_datetime(df["timestamp"]).dt.hour]
    amounts = df["amount"].astype(float)
    positive = amounts[amounts > 0].tolist()

    return {
        "avg_transactions_per_day": len(df) / BASELINE_PERIOD_DAYS,
        "avg_amount": mean(positive),
        "most_common_hour": _most_frequent(hours),
        "most_common_action": _most_frequent(actions),
        "action_distribution": dict(Counter(actions)),
    }


def analyze_actor_behavior(
    df: pd.DataFrame,
    volume_baseline: Optional[Sequence[float]] = None,
) -> Dict:
    """
    Build a baseline profile for one actor and flag deviations from it.

    Parameters
    ----------
    df              : the actor's transactions (any row order)
    volume_baseline : optional reference transaction counts for the volume
                      check; replaces the self-derived one-point dataset

    Returns
    -------
    dict with:
        baseline_profile : dict       – see module docstring ({} for no data)
        anomalies        : list[dict] – VOLUME_ANOMALY / AMOUNT_ANOMALY entries
        risk_indicators  : list[str]  – one human-readable line per anomaly
    """
    if df is None or df.empty:
        return {"baseline_profile": {}, "anomalies": [], "risk_indicators": []}

    profile = build_baseline_profile(df)
    anomalies: List[Dict] = []
    risk_indicators: List[str] = []

    amounts = df["amount"].astype(float)
    positive = amounts[amounts > 0].tolist()

    if len(positive) > BEHAVIOR_MIN_AMOUNTS:
        # 1. Volume
        reference = (
            list(volume_baseline)
            if volume_baseline is not None
            else [profile["avg_transactions_per_day"] * BASELINE_PERIOD_DAYS]
        )
        volume_z = z_score(len(df), reference)
        if abs(volume_z) > VOLUME_Z_THRESHOLD:
            anomalies.append({
                "type": "VOLUME_ANOMALY",
                "description": "Unusual transaction volume detected",
                "severity": "HIGH" if abs(volume_z) > VOLUME_Z_HIGH else "MEDIUM",
                "z_score": volume_z,
            })
            risk_indicators.append("Abnormal transaction volume pattern")

        # 2. Amounts
        outliers = detect_outliers(positive)["outliers"]
        if outliers:
            anomalies.append({
                "type": "AMOUNT_ANOMALY",
                "description": "Unusual transaction amounts detected",
                "severity": "MEDIUM",
                "outliers": outliers,
            })
            risk_indicators.append("Atypical transaction amounts")

    log.info(
        "Behaviour analysis: %d transactions, %d anomalies",
        len(df), len(anomalies),
    )
    return {
        "baseline_profile": profile,
        "anomalies": anomalies,
        "risk_indicators": risk_indicators,
    }
