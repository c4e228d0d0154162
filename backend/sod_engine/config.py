"""
config.py – Centralised configuration.

Engine tunables (weights, caps, severity thresholds, window default) are fixed
named constants so every figure in an audit trail can be traced back here.
Only service limits for the HTTP layer are read from environment variables.
"""
import os


# ── Service limits ─────────────────────────────────────────────────────────────
MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
MAX_FILE_SIZE_BYTES: int = MAX_FILE_SIZE_MB * 1024 * 1024
MAX_ROWS: int = int(os.getenv("MAX_ROWS", "10000"))
CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

# ── Temporal detection ─────────────────────────────────────────────────────────
DEFAULT_WINDOW_HOURS: float = 72.0
VIOLATION_TYPE_TEMPORAL: str = "SOD_TEMPORAL"
VIOLATION_TYPE_ROLE_CONFLICT: str = "SOD_ROLE_CONFLICT"
DETECTION_METHOD_TEMPORAL: str = "TEMPORAL_ANALYSIS"
STATUS_OPEN: str = "OPEN"

# Risk factors a freshly detected temporal violation is scored with
TEMPORAL_VIOLATION_FACTOR: int = 1
TEMPORAL_ANOMALY_FACTOR: float = 5.0

# ── Severity ───────────────────────────────────────────────────────────────────
SEVERITY_LEVELS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
DEFAULT_SEVERITY: str = "MEDIUM"

# Financial materiality escalation thresholds (largest amount of the pair)
MATERIALITY_CRITICAL: float = 100_000.0   # any baseline  → CRITICAL
MATERIALITY_HIGH: float = 50_000.0        # MEDIUM        → HIGH
MATERIALITY_MEDIUM: float = 10_000.0      # LOW           → MEDIUM

# (action1, action2, baseline severity). Pairs are undirected.
CONFLICTING_ACTION_PAIRS = (
    ("VENDOR_CREATE", "PAYMENT_APPROVE", "HIGH"),
    ("VENDOR_CREATE", "PAYMENT_PROCESS", "CRITICAL"),
    ("INVOICE_CREATE", "PAYMENT_APPROVE", "HIGH"),
    ("PURCHASE_ORDER_CREATE", "PURCHASE_ORDER_APPROVE", "MEDIUM"),
    ("JOURNAL_ENTRY_CREATE", "JOURNAL_ENTRY_APPROVE", "HIGH"),
    ("USER_CREATE", "PERMISSION_ASSIGN", "CRITICAL"),
    ("BANK_RECONCILIATION", "CASH_MANAGEMENT", "MEDIUM"),
    ("PAYROLL_PROCESS", "PAYROLL_APPROVE", "HIGH"),
)

# ── Risk scoring ───────────────────────────────────────────────────────────────
# Weights must sum to 1.0; rebalance them together if a factor is added.
RISK_WEIGHTS: dict = {
    "volume":    0.15,
    "conflicts": 0.25,
    "anomaly":   0.30,
    "temporal":  0.20,
    "previous":  0.10,
}

# Linear normalisation of each raw factor into the 0–10 range
VOLUME_DIVISOR: float = 100.0
CONFLICTS_MULTIPLIER: float = 2.0
TEMPORAL_MULTIPLIER: float = 1.5
PREVIOUS_MULTIPLIER: float = 0.5
FACTOR_CAP: float = 10.0

RISK_SCORE_MIN: float = 1.0
RISK_SCORE_MAX: float = 10.0

# ── Outlier detection ──────────────────────────────────────────────────────────
OUTLIER_MIN_POINTS: int = 4
IQR_MULTIPLIER: float = 1.5

# ── Behavioural analysis ───────────────────────────────────────────────────────
# Average tx/day always assumes a 30-day history, whatever the real span is.
BASELINE_PERIOD_DAYS: int = 30
# Anomaly checks need more than this many positive-amount transactions
BEHAVIOR_MIN_AMOUNTS: int = 3
VOLUME_Z_THRESHOLD: float = 2.0
VOLUME_Z_HIGH: float = 3.0

# ── Actor report ───────────────────────────────────────────────────────────────
HIGH_RISK_SCORE: float = 7.0
VOLUME_PATTERN_MULTIPLIER: float = 50.0
HEATMAP_VOLUME_PER_ACTOR: int = 10
HEATMAP_ANOMALY_MULTIPLIER: float = 2.0
UNASSIGNED_DEPARTMENT: str = "Unassigned"
