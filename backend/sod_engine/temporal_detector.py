"""
temporal_detector.py – Detect temporal segregation-of-duties violations.

A temporal violation is one actor performing both halves of a conflicting
action pair (e.g. VENDOR_CREATE then PAYMENT_APPROVE) within a sliding time
window. Pairs are undirected: the order the two actions happened in does not
matter.

Severity
--------
Baseline severity comes from CONFLICTING_ACTION_PAIRS and is escalated by the
larger amount of the two transactions:
  > 100 000               → CRITICAL (any baseline)
  >  50 000 and MEDIUM    → HIGH
  >  10 000 and LOW       → MEDIUM
Escalation never downgrades.

Performance
-----------
Each actor's transactions are sorted once; the inner scan stops at the first
transaction past the window, so cost is O(n·k) per actor where k is the
number of transactions that fit in one window.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import pandas as pd

from .config import (
    CONFLICTING_ACTION_PAIRS,
    DEFAULT_SEVERITY,
    DEFAULT_WINDOW_HOURS,
    DETECTION_METHOD_TEMPORAL,
    MATERIALITY_CRITICAL, MATERIALITY_HIGH, MATERIALITY_MEDIUM,
    STATUS_OPEN,
    TEMPORAL_ANOMALY_FACTOR, TEMPORAL_VIOLATION_FACTOR,
    VIOLATION_TYPE_TEMPORAL,
)
from .models import Actor
from .scoring import calculate_risk_score
from .utils import ViolationIdFactory, make_violation_id

log = logging.getLogger(__name__)

# frozenset({action1, action2}) → baseline severity
_PAIR_SEVERITY: Dict[FrozenSet[str], str] = {
    frozenset((a1, a2)): severity for a1, a2, severity in CONFLICTING_ACTION_PAIRS
}


def conflict_severity(action1: str, action2: str) -> Optional[str]:
    """Baseline severity of an action pair, or None if the pair does not conflict."""
    return _PAIR_SEVERITY.get(frozenset((action1, action2)))


def _amount(tx: Mapping) -> float:
    value = tx.get("amount")
    if value is None or pd.isna(value):
        return 0.0
    return float(value)


def calculate_violation_severity(tx1: Mapping, tx2: Mapping) -> str:
    """
    Severity of a conflicting pair, escalated by financial materiality.

    ``tx1`` / ``tx2`` are transaction rows with at least ``action`` and
    ``amount``; a missing amount counts as 0.
    """
    max_amount = max(_amount(tx1), _amount(tx2))
    severity = conflict_severity(tx1["action"], tx2["action"]) or DEFAULT_SEVERITY

    if max_amount > MATERIALITY_CRITICAL:
        severity = "CRITICAL"
    elif max_amount > MATERIALITY_HIGH and severity == "MEDIUM":
        severity = "HIGH"
    elif max_amount > MATERIALITY_MEDIUM and severity == "LOW":
        severity = "MEDIUM"

    return severity


def _build_violation(
    actor_id: str,
    earlier: Mapping,
    later: Mapping,
    window_hours: float,
    violation_id: str,
    detected_at: datetime,
) -> Dict:
    return {
        "violation_id": violation_id,
        "actor_id": actor_id,
        "violation_type": VIOLATION_TYPE_TEMPORAL,
        "severity": calculate_violation_severity(earlier, later),
        "risk_score": calculate_risk_score(
            temporal_violations=TEMPORAL_VIOLATION_FACTOR,
            anomaly_score=TEMPORAL_ANOMALY_FACTOR,
        ),
        "description": (
            f"Employee performed conflicting actions: {earlier['action']} and "
            f"{later['action']} within {window_hours:g} hours"
        ),
        "detection_method": DETECTION_METHOD_TEMPORAL,
        "status": STATUS_OPEN,
        "detected_at": detected_at,
        "related_transactions": [str(earlier["transaction_id"]), str(later["transaction_id"])],
    }


def detect_temporal_violations(
    df: pd.DataFrame,
    actors: Optional[Iterable[Actor]] = None,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    id_factory: Optional[ViolationIdFactory] = None,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """
    Find conflicting action pairs performed by the same actor within
    ``window_hours`` of each other.

    Parameters
    ----------
    df           : transaction DataFrame (transaction_id, actor_id, action,
                   amount, timestamp); row order is irrelevant
    actors       : known actors; transactions of any other actor are skipped.
                   None analyses every actor present in ``df``.
    window_hours : window length measured from the earlier transaction
    id_factory   : actor_id → violation_id (defaults to make_violation_id)
    now          : detection timestamp stamped on every violation

    Returns
    -------
    List of violation dicts, one per conflicting (earlier, later) pair.
    No deduplication is applied.
    """
    violations: List[Dict] = []

    if df.empty:
        return violations

    id_factory = id_factory or make_violation_id
    detected_at = now or datetime.now(timezone.utc)
    window_td = pd.Timedelta(hours=window_hours)
    known_ids = {actor.id for actor in actors} if actors is not None else None

    analysed = 0
    for actor_id, grp in df.groupby("actor_id", sort=False):
        if known_ids is not None and actor_id not in known_ids:
            log.debug("Skipping transactions of unknown actor %s", actor_id)
            continue
        analysed += 1

        rows = grp.sort_values("timestamp", kind="mergesort").to_dict("records")

        for i, current in enumerate(rows):
            window_end = current["timestamp"] + window_td

            for later in rows[i + 1:]:
                if later["timestamp"] > window_end:
                    break
                if conflict_severity(current["action"], later["action"]) is None:
                    continue
                violations.append(_build_violation(
                    str(actor_id), current, later, window_hours,
                    id_factory(str(actor_id)), detected_at,
                ))

    log.info(
        "Temporal detection: %d violations across %d actors (window %gh)",
        len(violations), analysed, window_hours,
    )
    return violations
