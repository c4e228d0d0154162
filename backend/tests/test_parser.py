"""
Tests for CSV parsing and record → DataFrame conversion.
"""
from datetime import datetime, timezone

import pandas as pd
import pytest

from conftest import tx
from sod_engine.parser import COLUMNS, parse_csv, transactions_to_frame

HEADER = "transaction_id,actor_id,action,amount,timestamp\n"


def test_parse_valid_csv():
    csv = (
        HEADER
        + "T1,EMP_A,vendor_create,1500.50,2024-01-01 09:00:00\n"
        + "T2,EMP_A,PAYMENT_APPROVE,,2024-01-01 10:00:00\n"
    ).encode()
    df, stats = parse_csv(csv)

    assert list(df.columns) == COLUMNS
    assert df["action"].tolist() == ["VENDOR_CREATE", "PAYMENT_APPROVE"]
    assert df.loc[0, "amount"] == 1500.5
    assert pd.isna(df.loc[1, "amount"])
    assert df.loc[1, "timestamp"] == pd.Timestamp("2024-01-01 10:00:00", tz="UTC")
    assert stats["valid_rows"] == 2
    assert stats["missing_amounts"] == 1
    assert stats["warnings"] == []


def test_mixed_utc_offsets_normalised():
    # Same local hour either side of the March DST change
    csv = (
        HEADER
        + "T1,EMP_A,VENDOR_CREATE,100,2024-03-30T09:00:00+01:00\n"
        + "T2,EMP_A,PAYMENT_APPROVE,100,2024-03-31T10:00:00+02:00\n"
    ).encode()
    df, stats = parse_csv(csv)

    assert stats["valid_rows"] == 2
    assert df["timestamp"].tolist() == [
        pd.Timestamp("2024-03-30 08:00:00", tz="UTC"),
        pd.Timestamp("2024-03-31 08:00:00", tz="UTC"),
    ]


def test_bad_rows_dropped_with_warnings():
    csv = (
        HEADER
        + "# seeded anomalies\n"
        + "T1,EMP_A,VENDOR_CREATE,100,2024-01-01 09:00:00\n"
        + "T1,EMP_A,PAYMENT_APPROVE,100,2024-01-01 10:00:00\n"
        + "T2,,PAYMENT_APPROVE,100,2024-01-01 10:00:00\n"
        + "T3,EMP_A,PAYMENT_APPROVE,abc,2024-01-01 10:00:00\n"
        + "\n"
        + "T4,EMP_A,PAYMENT_APPROVE,100,2024-01-01 11:00:00\n"
    ).encode()
    df, stats = parse_csv(csv)

    assert df["transaction_id"].tolist() == ["T1", "T4"]
    assert stats["total_rows"] == 5
    assert stats["dropped_rows"] == 3
    assert stats["duplicate_tx_ids"] == 1
    assert len(stats["warnings"]) == 3


def test_amount_column_optional():
    csv = b"transaction_id,actor_id,action,timestamp\nT1,EMP_A,USER_CREATE,2024-01-01 09:00:00\n"
    df, _ = parse_csv(csv)
    assert pd.isna(df.loc[0, "amount"])


def test_missing_columns():
    with pytest.raises(ValueError, match="Missing required columns"):
        parse_csv(b"transaction_id,amount\nT1,10\n")


def test_empty_csv():
    with pytest.raises(ValueError):
        parse_csv(HEADER.encode())


def test_no_valid_rows():
    with pytest.raises(ValueError, match="No valid rows"):
        parse_csv((HEADER + "T1,EMP_A,USER_CREATE,1,not-a-date\n").encode())


def test_transactions_to_frame():
    aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    df = transactions_to_frame([
        tx("T1", "EMP_A", "USER_CREATE", amount=5),
        tx("T2", "EMP_A", "PERMISSION_ASSIGN").model_copy(update={"timestamp": aware}),
    ])
    assert list(df.columns) == COLUMNS
    assert df["amount"].isna().tolist() == [False, True]
    assert str(df["timestamp"].dt.tz) == "UTC"
    assert (df.loc[1, "timestamp"] - df.loc[0, "timestamp"]) == pd.Timedelta(hours=3)


def test_transactions_to_frame_empty():
    df = transactions_to_frame([])
    assert df.empty
    assert list(df.columns) == COLUMNS
