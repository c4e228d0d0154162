"""
utils.py – Violation ID generation & deduplication utilities.

ID generation
-------------
Violation IDs mix the wall-clock time with a random suffix, so they are the
only non-reproducible part of detector output. Detectors accept any
``Callable[[str], str]`` in place of ``make_violation_id``; tests pass a
deterministic one.

Deduplication
-------------
The temporal detector emits one violation per conflicting (i, j) pair and
never collapses them. Stores that expect at most one violation per actor and
transaction pair run ``deduplicate_violations`` as a separate step.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Dict, List

log = logging.getLogger(__name__)

ViolationIdFactory = Callable[[str], str]


def make_violation_id(actor_id: str) -> str:
    """Return ``VIO-<epoch ms>-<actor suffix>-<random hex>``."""
    millis = int(time.time() * 1000)
    return f"VIO-{millis}-{actor_id[-4:]}-{uuid.uuid4().hex[:6]}"


def _pair_key(violation: Dict) -> tuple:
    """Order-independent key: (actor_id, frozenset of related transactions)."""
    return violation["actor_id"], frozenset(violation["related_transactions"])


def deduplicate_violations(violations: List[Dict]) -> List[Dict]:
    """
    Keep the first violation for each actor / transaction pair.

    Two violations are duplicates when they belong to the same actor and
    reference the same transactions, in either order. The input list is not
    modified.
    """
    seen: set = set()
    unique: List[Dict] = []

    for violation in violations:
        key = _pair_key(violation)
        if key in seen:
            continue
        seen.add(key)
        unique.append(violation)

    log.info("Violation dedup: %d → %d violations", len(violations), len(unique))
    return unique
