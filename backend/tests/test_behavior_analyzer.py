"""
Tests for the behavioural baseline & anomaly analyser.
"""
import pytest

from conftest import frame, tx
from sod_engine.behavior_analyzer import analyze_actor_behavior, build_baseline_profile


def _history(amounts, actions=None, hours=None):
    actions = actions or ["VENDOR_CREATE"] * len(amounts)
    hours = hours or list(range(len(amounts)))
    return frame(*[
        tx(f"T{i}", "EMP_A", action, hours=h, amount=amount)
        for i, (amount, action, h) in enumerate(zip(amounts, actions, hours))
    ])


def test_empty_history():
    assert analyze_actor_behavior(frame()) == {
        "baseline_profile": {},
        "anomalies": [],
        "risk_indicators": [],
    }
    assert build_baseline_profile(frame()) == {}


def test_baseline_profile():
    df = _history(
        amounts=[100, None, 300, -20, 0, 200],
        actions=["VENDOR_CREATE", "VENDOR_CREATE", "PAYMENT_APPROVE",
                 "VENDOR_CREATE", "PAYMENT_APPROVE", "INVOICE_CREATE"],
        # T0 is 09:00
        hours=[0, 1, 24, 25, 48, 49],
    )
    profile = analyze_actor_behavior(df)["baseline_profile"]

    assert profile["avg_transactions_per_day"] == pytest.approx(6 / 30)
    assert profile["avg_amount"] == pytest.approx(200)
    assert profile["most_common_hour"] == 9
    assert profile["most_common_action"] == "VENDOR_CREATE"
    assert profile["action_distribution"] == {
        "VENDOR_CREATE": 3,
        "PAYMENT_APPROVE": 2,
        "INVOICE_CREATE": 1,
    }
    assert list(profile["action_distribution"]) == ["VENDOR_CREATE", "PAYMENT_APPROVE", "INVOICE_CREATE"]


def test_ties_go_to_first_seen():
    df = _history(
        amounts=[None] * 4,
        actions=["PAYMENT_APPROVE", "VENDOR_CREATE", "VENDOR_CREATE", "PAYMENT_APPROVE"],
        # 14:00, 09:00, 09:00, 14:00
        hours=[5, 24, 48, 53],
    )
    profile = build_baseline_profile(df)
    assert profile["most_common_action"] == "PAYMENT_APPROVE"
    assert profile["most_common_hour"] == 14


def test_no_amounts_gives_zero_average():
    profile = build_baseline_profile(_history([None, None]))
    assert profile["avg_amount"] == 0


def test_amount_outlier_flagged():
    result = analyze_actor_behavior(_history([100, 110, 105, 95, 5000]))
    assert result["anomalies"] == [{
        "type": "AMOUNT_ANOMALY",
        "description": "Unusual transaction amounts detected",
        "severity": "MEDIUM",
        "outliers": [5000.0],
    }]
    assert result["risk_indicators"] == ["Atypical transaction amounts"]


def test_too_few_amounts_skips_checks():
    result = analyze_actor_behavior(_history([100, 110, 100_000, None, None]))
    assert result["anomalies"] == []
    assert result["risk_indicators"] == []


def test_self_referential_volume_check_never_fires():
    result = analyze_actor_behavior(_history([100, 101, 102, 103, 104, 105]))
    assert result["anomalies"] == []


def test_volume_baseline_high():
    result = analyze_actor_behavior(_history([100, 101, 102, 103, 104]), volume_baseline=[1, 1, 1, 2])
    volume = [a for a in result["anomalies"] if a["type"] == "VOLUME_ANOMALY"]
    assert len(volume) == 1
    assert volume[0]["severity"] == "HIGH"
    assert volume[0]["z_score"] > 3
    assert "Abnormal transaction volume pattern" in result["risk_indicators"]


def test_volume_baseline_medium():
    # 5 transactions against peers [2, 3, 4]: z ≈ 2.45
    result = analyze_actor_behavior(_history([100, 101, 102, 103, 104]), volume_baseline=[2, 3, 4])
    assert result["anomalies"][0]["type"] == "VOLUME_ANOMALY"
    assert result["anomalies"][0]["severity"] == "MEDIUM"


def test_volume_baseline_within_range():
    result = analyze_actor_behavior(_history([100, 101, 102, 103, 104]), volume_baseline=[4, 5, 6])
    assert result["anomalies"] == []


def test_idempotent():
    df = _history([100, 110, 105, 95, 5000])
    assert analyze_actor_behavior(df) == analyze_actor_behavior(df)
