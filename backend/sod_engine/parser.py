"""
parser.py – Build the transaction DataFrame the engine consumes.

Two entry points:
  • parse_csv(file_bytes)        – uploaded CSV with validation & parse stats
  • transactions_to_frame(recs)  – already-validated pydantic records

CSV validation:
  • Required columns present (amount column optional)
  • Empty required fields dropped
  • amount optional; non-numeric amounts dropped
  • timestamp format YYYY-MM-DD HH:MM:SS (with fallbacks)
  • Duplicate transaction_id detection
  • Encoding auto-detection (UTF-8 / latin-1 fallback)
"""
from __future__ import annotations

import io
import logging
from typing import Iterable, Tuple

import pandas as pd

from .config import MAX_ROWS
from .models import Transaction

log = logging.getLogger(__name__)

COLUMNS = ["transaction_id", "actor_id", "action", "amount", "timestamp"]
REQUIRED_COLUMNS = frozenset({"transaction_id", "actor_id", "action", "timestamp"})

_TS_FORMATS = ["%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]


def _decode_bytes(raw: bytes) -> str:
    """Try UTF-8, then latin-1 fallback."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1", errors="replace")


def _parse_timestamps(series: pd.Series) -> pd.Series:
    """
    Try each known format then fall back to pandas flexible inference.

    Everything is normalised to UTC (naive values are taken as UTC) so rows
    recorded at different offsets, e.g. across a DST change, stay comparable.
    """
    for fmt in _TS_FORMATS:
        parsed = pd.to_datetime(series, format=fmt, errors="coerce", utc=True)
        if parsed.notna().mean() >= 0.9:
            return parsed
    return pd.to_datetime(series, errors="coerce", utc=True)


def transactions_to_frame(records: Iterable[Transaction]) -> pd.DataFrame:
    """
    Convert pydantic Transaction records to the engine's DataFrame layout.

    Timestamps are normalised to UTC so aware and naive values can be
    compared; naive values are taken to be UTC already.
    """
    rows = [
        {
            "transaction_id": r.transaction_id,
            "actor_id": r.actor_id,
            "action": r.action,
            "amount": r.amount,
            "timestamp": r.timestamp,
        }
        for r in records
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").astype(float)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


def parse_csv(file_bytes: bytes) -> Tuple[pd.DataFrame, dict]:
    """
    Parse and validate CSV bytes.

    Returns
    -------
    df    : pd.DataFrame  – cleaned, ready for analysis
    stats : dict          – parse statistics and warnings

    Raises
    ------
    ValueError on fatal errors (missing columns, zero valid rows).
    """
    stats: dict = {
        "total_rows": 0,
        "valid_rows": 0,
        "dropped_rows": 0,
        "duplicate_tx_ids": 0,
        "missing_amounts": 0,
        "warnings": [],
    }

    # 1. Decode & read ─────────────────────────────────────────────────────────
    text = _decode_bytes(file_bytes)

    # Comment lines ('#') and blank lines are not rows
    cleaned_lines = [
        line for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    cleaned_text = "\n".join(cleaned_lines)

    try:
        df = pd.read_csv(io.StringIO(cleaned_text), dtype=str, keep_default_na=False)
    except Exception as exc:
        raise ValueError(f"CSV parse error: {exc}") from exc

    stats["total_rows"] = len(df)
    log.info("CSV loaded: %d raw rows", len(df))

    if df.empty:
        raise ValueError("CSV file is empty – no rows found.")

    # 2. Normalise column names ────────────────────────────────────────────────
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(
            f"Missing required columns: {sorted(missing)}. "
            f"Found: {sorted(df.columns.tolist())}"
        )
    if "amount" not in df.columns:
        df["amount"] = ""
    df = df[COLUMNS].copy()

    # 3. Strip whitespace ──────────────────────────────────────────────────────
    for col in COLUMNS:
        df[col] = df[col].str.strip()
    df["action"] = df["action"].str.upper()

    # 4. Drop empty-field rows (amount may be blank) ───────────────────────────
    mask_empty = (
        df["transaction_id"].eq("") | df["actor_id"].eq("") |
        df["action"].eq("") | df["timestamp"].eq("")
    )
    n_empty = int(mask_empty.sum())
    if n_empty:
        stats["warnings"].append(f"Dropped {n_empty} rows with empty fields.")
    df = df[~mask_empty].copy()

    # 5. Parse amount (optional) ───────────────────────────────────────────────
    blank_amount = df["amount"].eq("")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    bad = df["amount"].isna() & ~blank_amount
    if bad.any():
        stats["warnings"].append(f"Dropped {int(bad.sum())} rows with non-numeric amount.")
        df = df[~bad].copy()
    df["amount"] = df["amount"].astype(float)
    stats["missing_amounts"] = int(df["amount"].isna().sum())

    # 6. Parse timestamps ──────────────────────────────────────────────────────
    df["timestamp"] = _parse_timestamps(df["timestamp"])
    bad_ts = df["timestamp"].isna()
    if bad_ts.any():
        stats["warnings"].append(
            f"Dropped {int(bad_ts.sum())} rows with unparseable timestamp."
        )
        df = df[~bad_ts].copy()

    # 7. Deduplicate transaction_id ────────────────────────────────────────────
    dups = df.duplicated(subset=["transaction_id"], keep="first")
    stats["duplicate_tx_ids"] = int(dups.sum())
    if stats["duplicate_tx_ids"]:
        stats["warnings"].append(
            f"Dropped {stats['duplicate_tx_ids']} duplicate transaction_id rows."
        )
        df = df[~dups].copy()

    # 8. Row limit ─────────────────────────────────────────────────────────────
    if len(df) > MAX_ROWS:
        stats["warnings"].append(
            f"Dataset truncated from {len(df)} to {MAX_ROWS} rows."
        )
        df = df.head(MAX_ROWS).copy()

    if df.empty:
        raise ValueError(
            "No valid rows remain after validation. "
            f"Issues: {'; '.join(stats['warnings']) or 'unknown'}"
        )

    df = df.reset_index(drop=True)
    stats["valid_rows"] = len(df)
    stats["dropped_rows"] = stats["total_rows"] - len(df)
    log.info("Parse complete: %d valid / %d total rows", stats["valid_rows"], stats["total_rows"])
    return df, stats
