"""
formatter.py – Compose engine results into API-ready reports.

Reports
-------
  build_actor_report      – full SoD analysis of one actor: temporal
                            violations, risk score, behaviour analysis,
                            pattern insights and recommendations
  department_risk_heatmap – one risk row per department from stored
                            violations
  format_analysis         – response for a bulk CSV upload

All risk scores in reports are rounded to 1 decimal place.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .behavior_analyzer import analyze_actor_behavior
from .config import (
    DEFAULT_WINDOW_HOURS,
    HEATMAP_ANOMALY_MULTIPLIER,
    HEATMAP_VOLUME_PER_ACTOR,
    HIGH_RISK_SCORE,
    UNASSIGNED_DEPARTMENT,
    VIOLATION_TYPE_ROLE_CONFLICT,
    VIOLATION_TYPE_TEMPORAL,
    VOLUME_PATTERN_MULTIPLIER,
)
from .models import Actor, ViolationRef
from .scoring import calculate_risk_score
from .stats import mean
from .temporal_detector import detect_temporal_violations
from .utils import ViolationIdFactory

log = logging.getLogger(__name__)


def _patterns(
    actor: Actor,
    tx_count: int,
    temporal: List[Dict],
    behavior: Dict,
) -> List[str]:
    patterns: List[str] = []

    if temporal:
        patterns.append(
            f"Detected {len(temporal)} temporal SoD violations in recent activity"
        )
    if behavior["anomalies"]:
        patterns.append(
            f"Identified {len(behavior['anomalies'])} behavioral anomalies"
        )
    # avg_transactions_per_day is count / 30, so this cannot fire with the
    # self-derived baseline; kept for parity with the dashboard's rule.
    per_day = behavior["baseline_profile"].get("avg_transactions_per_day")
    if per_day is not None and tx_count > per_day * VOLUME_PATTERN_MULTIPLIER:
        patterns.append("Transaction volume significantly above departmental average")
    if actor.conflicting_roles:
        patterns.append(
            f"Role has {len(actor.conflicting_roles)} known conflicting role(s)"
        )
    return patterns


def _recommendations(
    risk_score: float,
    temporal: List[Dict],
    behavior: Dict,
    patterns: List[str],
) -> List[str]:
    recs: List[str] = []
    if temporal:
        recs.append("Review and address temporal SoD violations immediately")
    if risk_score > HIGH_RISK_SCORE:
        recs.append("Implement additional monitoring for high-risk activities")
    if behavior["anomalies"]:
        recs.append("Investigate unusual behavior patterns")
    if not patterns:
        recs.append("Continue normal monitoring procedures")
    return recs


def build_actor_report(
    actor: Actor,
    df: pd.DataFrame,
    actors: Optional[Iterable[Actor]] = None,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    recent_violations: Optional[Sequence[ViolationRef]] = None,
    volume_baseline: Optional[Sequence[float]] = None,
    id_factory: Optional[ViolationIdFactory] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Full SoD analysis of a single actor.

    Parameters
    ----------
    actor             : the actor under review
    df                : transaction DataFrame; rows of other actors are ignored
    actors            : known actors passed through to the temporal detector
    window_hours      : temporal detection window
    recent_violations : the actor's recent stored violations; when None,
                        ``actor.prior_violation_count`` is used instead
    volume_baseline   : optional peer transaction counts for the volume check
    id_factory / now  : forwarded to the temporal detector
    """
    actor_df = df[df["actor_id"] == actor.id]
    # The reviewed actor is always known, whatever the lookup list holds
    known = [actor, *actors] if actors is not None else None

    temporal = detect_temporal_violations(
        actor_df, known, window_hours, id_factory=id_factory, now=now,
    )
    previous = (
        len(recent_violations) if recent_violations is not None
        else actor.prior_violation_count
    )
    risk_score = calculate_risk_score(
        transaction_volume=len(actor_df),
        role_conflicts=len(actor.conflicting_roles),
        anomaly_score=actor.anomaly_score,
        temporal_violations=len(temporal),
        previous_violations=previous,
    )
    behavior = analyze_actor_behavior(actor_df, volume_baseline)

    patterns = _patterns(actor, len(actor_df), temporal, behavior)
    report = {
        "actor_id": actor.id,
        "role": actor.role,
        "department": actor.department,
        "risk_score": round(risk_score, 1),
        "temporal_violations": temporal,
        "patterns": patterns,
        "behavior_analysis": behavior,
        "recommendations": _recommendations(risk_score, temporal, behavior, patterns),
    }

    log.info(
        "Actor report %s: risk %.1f, %d temporal violations, %d patterns",
        actor.id, report["risk_score"], len(temporal), len(patterns),
    )
    return report


def department_risk_heatmap(
    actors: Iterable[Actor],
    violations: Iterable[ViolationRef],
) -> List[Dict[str, Any]]:
    """
    Aggregate stored violations into one risk row per department.

    Inactive actors are left out, as are violations of actors that are
    not listed or not active. Rows keep the order in which departments
    first appear in ``actors``.
    """
    members: Dict[str, List[str]] = defaultdict(list)
    department_of: Dict[str, str] = {}
    for actor in actors:
        if not actor.is_active:
            continue
        dept = actor.department or UNASSIGNED_DEPARTMENT
        members[dept].append(actor.id)
        department_of[actor.id] = dept

    by_actor: Dict[str, List[ViolationRef]] = defaultdict(list)
    for v in violations:
        if v.actor_id in department_of:
            by_actor[v.actor_id].append(v)

    rows: List[Dict[str, Any]] = []
    for dept, actor_ids in members.items():
        dept_violations = [v for a in actor_ids for v in by_actor.get(a, [])]
        per_actor_counts = [len(by_actor.get(a, [])) for a in actor_ids]

        risk_score = calculate_risk_score(
            transaction_volume=len(actor_ids) * HEATMAP_VOLUME_PER_ACTOR,
            role_conflicts=sum(
                1 for v in dept_violations if v.violation_type == VIOLATION_TYPE_ROLE_CONFLICT
            ),
            anomaly_score=mean(per_actor_counts) * HEATMAP_ANOMALY_MULTIPLIER,
            temporal_violations=sum(
                1 for v in dept_violations if v.violation_type == VIOLATION_TYPE_TEMPORAL
            ),
            previous_violations=len(dept_violations),
        )
        rows.append({
            "department": dept,
            "risk_score": round(risk_score, 1),
            "violation_count": len(dept_violations),
            "actor_count": len(actor_ids),
        })

    log.info("Risk heatmap: %d departments", len(rows))
    return rows


def format_analysis(
    df: pd.DataFrame,
    violations: List[Dict],
    processing_time: float,
    parse_stats: dict | None = None,
) -> Dict[str, Any]:
    """
    Build the bulk-analysis response: violations, a per-actor summary
    (sorted by violation count, descending) and run statistics.
    """
    violation_counts: Dict[str, int] = defaultdict(int)
    for v in violations:
        violation_counts[v["actor_id"]] += 1

    actors: List[Dict[str, Any]] = []
    for actor_id, grp in df.groupby("actor_id", sort=False):
        behavior = analyze_actor_behavior(grp)
        actors.append({
            "actor_id": str(actor_id),
            "transaction_count": len(grp),
            "violation_count": violation_counts.get(actor_id, 0),
            "anomaly_count": len(behavior["anomalies"]),
            "risk_indicators": behavior["risk_indicators"],
        })
    actors.sort(key=lambda a: a["violation_count"], reverse=True)

    response: Dict[str, Any] = {
        "violations": violations,
        "actors": actors,
        "summary": {
            "total_actors_analyzed": len(actors),
            "total_transactions": len(df),
            "violations_detected": len(violations),
            "processing_time_seconds": round(processing_time, 3),
        },
    }
    if parse_stats:
        response["parse_stats"] = parse_stats

    log.info(
        "Format complete: %d actors, %d violations",
        len(actors), len(violations),
    )
    return response
