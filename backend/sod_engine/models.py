"""
models.py – Pydantic models.

Input records (Actor, Transaction) are shared by the engine and the API.
The remaining models define the exact JSON contract the API returns.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_WINDOW_HOURS

Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
ViolationStatus = Literal["OPEN", "INVESTIGATING", "RESOLVED", "FALSE_POSITIVE"]


# ── Input records ──────────────────────────────────────────────────────────────
class Actor(BaseModel):
    """
    An employee as far as the engine is concerned.
    Extra storage fields (name, email, …) are allowed and ignored.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    role: str
    conflicting_roles: List[str] = Field(default_factory=list)
    prior_violation_count: int = Field(0, ge=0)
    department: Optional[str] = None
    anomaly_score: float = Field(0.0, ge=0.0)
    is_active: bool = True


class Transaction(BaseModel):
    model_config = ConfigDict(extra="allow")

    transaction_id: str
    actor_id: str
    action: str
    amount: Optional[float] = None
    timestamp: datetime


class ViolationRef(BaseModel):
    """Minimal stored-violation view used for department aggregation."""
    model_config = ConfigDict(extra="allow")

    actor_id: str
    violation_type: str


# ── Engine outputs ─────────────────────────────────────────────────────────────
class Violation(BaseModel):
    violation_id: str
    actor_id: str
    violation_type: str
    severity: Severity
    risk_score: float = Field(..., ge=1.0, le=10.0)
    description: str
    detection_method: str
    status: ViolationStatus
    detected_at: datetime
    related_transactions: List[str] = Field(..., min_length=2)


class Anomaly(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["VOLUME_ANOMALY", "AMOUNT_ANOMALY"]
    description: str
    severity: Severity
    z_score: Optional[float] = None
    outliers: Optional[List[float]] = None


class BehaviorAnalysis(BaseModel):
    """``baseline_profile`` is ``{}`` for an actor without transactions."""
    baseline_profile: Dict[str, Any]
    anomalies: List[Anomaly]
    risk_indicators: List[str]


class TemporalDetectionResult(BaseModel):
    violations: List[Violation]
    actors_analyzed: int
    window_hours: float


class ActorReport(BaseModel):
    actor_id: str
    role: str
    department: Optional[str] = None
    risk_score: float = Field(..., ge=1.0, le=10.0)
    temporal_violations: List[Violation]
    patterns: List[str]
    behavior_analysis: BehaviorAnalysis
    recommendations: List[str]


class DepartmentRisk(BaseModel):
    department: str
    risk_score: float = Field(..., ge=1.0, le=10.0)
    violation_count: int
    actor_count: int


class ActorSummary(BaseModel):
    actor_id: str
    transaction_count: int
    violation_count: int
    anomaly_count: int
    risk_indicators: List[str]


class ParseStats(BaseModel):
    total_rows: int
    valid_rows: int
    dropped_rows: int
    duplicate_tx_ids: int
    missing_amounts: int
    warnings: List[str]


class AnalysisSummary(BaseModel):
    total_actors_analyzed: int
    total_transactions: int
    violations_detected: int
    processing_time_seconds: float


class AnalysisResult(BaseModel):
    violations: List[Violation]
    actors: List[ActorSummary]
    summary: AnalysisSummary
    parse_stats: Optional[ParseStats] = None


# ── Request bodies ─────────────────────────────────────────────────────────────
class RiskFactors(BaseModel):
    transaction_volume: Optional[float] = Field(None, ge=0.0)
    role_conflicts: Optional[float] = Field(None, ge=0.0)
    anomaly_score: Optional[float] = Field(None, ge=0.0)
    temporal_violations: Optional[float] = Field(None, ge=0.0)
    previous_violations: Optional[float] = Field(None, ge=0.0)


class TemporalDetectionRequest(BaseModel):
    transactions: List[Transaction]
    actors: Optional[List[Actor]] = None
    window_hours: float = Field(DEFAULT_WINDOW_HOURS, gt=0.0)
    deduplicate: bool = False


class BehaviorRequest(BaseModel):
    transactions: List[Transaction]
    volume_baseline: Optional[List[float]] = None


class SodAnalysisRequest(BaseModel):
    actor: Actor
    transactions: List[Transaction]
    actors: Optional[List[Actor]] = None
    window_hours: float = Field(DEFAULT_WINDOW_HOURS, gt=0.0)
    recent_violations: Optional[List[ViolationRef]] = None


class HeatmapRequest(BaseModel):
    actors: List[Actor]
    violations: List[ViolationRef] = Field(default_factory=list)
