"""
Shared fixtures for the SoD risk engine tests.
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from sod_engine.models import Transaction
from sod_engine.parser import transactions_to_frame

T0 = datetime(2024, 1, 1, 9, 0, 0)


def tx(tx_id, actor_id, action, hours=0.0, amount=None):
    """Transaction record ``hours`` after T0."""
    return Transaction(
        transaction_id=tx_id,
        actor_id=actor_id,
        action=action,
        amount=amount,
        timestamp=T0 + timedelta(hours=hours),
    )


def frame(*records):
    return transactions_to_frame(records)


@pytest.fixture
def fixed_now():
    return datetime(2024, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def counting_ids():
    """Deterministic id factory: VIO-<actor>-1, VIO-<actor>-2, …"""
    counter = itertools.count(1)
    return lambda actor_id: f"VIO-{actor_id}-{next(counter)}"
