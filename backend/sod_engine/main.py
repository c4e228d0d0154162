"""
main.py – FastAPI application entry point.

Endpoints
---------
GET  /                     – root banner
GET  /health               – liveness / readiness probe with version info
POST /risk-score           – weighted risk score from raw factors
POST /violations/temporal  – temporal SoD violations over supplied transactions
POST /behavior             – behavioural baseline & anomalies for one actor
POST /sod-analysis         – full SoD report for one actor
POST /risk-heatmap         – per-department risk from stored violations
POST /analyze              – upload CSV, run temporal + behaviour analysis

The service is stateless: every endpoint works only on the data in the
request and never touches storage.
"""
from __future__ import annotations

import logging
import time
import uuid

from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .behavior_analyzer import analyze_actor_behavior
from .config import CORS_ORIGINS, DEFAULT_WINDOW_HOURS, MAX_FILE_SIZE_BYTES, MAX_ROWS
from .formatter import build_actor_report, department_risk_heatmap, format_analysis
from .models import (
    ActorReport,
    AnalysisResult,
    BehaviorAnalysis,
    BehaviorRequest,
    DepartmentRisk,
    HeatmapRequest,
    RiskFactors,
    SodAnalysisRequest,
    TemporalDetectionRequest,
    TemporalDetectionResult,
)
from .parser import parse_csv, transactions_to_frame
from .scoring import calculate_risk_score
from .temporal_detector import detect_temporal_violations
from .utils import deduplicate_violations

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s │ %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("SoD Risk Engine v%s starting up", __version__)
    yield
    log.info("SoD Risk Engine shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
ALLOWED_ORIGINS = CORS_ORIGINS.split(",")

app = FastAPI(
    title="SoD Risk Engine",
    description="Segregation-of-duties risk scoring and violation detection",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "service": "SoD Risk Engine", "version": __version__}


@app.get("/health")
def health():
    """Liveness / readiness probe."""
    return {
        "status": "healthy",
        "version": __version__,
        "max_file_size_mb": MAX_FILE_SIZE_BYTES // (1024 * 1024),
        "max_rows": MAX_ROWS,
    }


@app.post("/risk-score")
def risk_score(factors: RiskFactors):
    """Weighted risk score in [1, 10]; omitted factors count as 0."""
    return {"risk_score": calculate_risk_score(**factors.model_dump())}


@app.post("/violations/temporal", response_model=TemporalDetectionResult)
def temporal_violations(body: TemporalDetectionRequest):
    df = transactions_to_frame(body.transactions)
    violations = detect_temporal_violations(df, body.actors, body.window_hours)
    if body.deduplicate:
        violations = deduplicate_violations(violations)

    if body.actors is not None:
        known = {a.id for a in body.actors}
        analysed = df.loc[df["actor_id"].isin(known), "actor_id"].nunique()
    else:
        analysed = df["actor_id"].nunique()

    return {
        "violations": violations,
        "actors_analyzed": int(analysed),
        "window_hours": body.window_hours,
    }


@app.post("/behavior", response_model=BehaviorAnalysis, response_model_exclude_none=True)
def behavior(body: BehaviorRequest):
    """Behavioural baseline for one actor's transactions."""
    actor_ids = {t.actor_id for t in body.transactions}
    if len(actor_ids) > 1:
        raise HTTPException(
            status_code=422,
            detail=f"Transactions must belong to a single actor, got {len(actor_ids)}.",
        )
    df = transactions_to_frame(body.transactions)
    return analyze_actor_behavior(df, body.volume_baseline)


@app.post("/sod-analysis", response_model=ActorReport, response_model_exclude_none=True)
def sod_analysis(body: SodAnalysisRequest):
    df = transactions_to_frame(body.transactions)
    return build_actor_report(
        body.actor,
        df,
        actors=body.actors,
        window_hours=body.window_hours,
        recent_violations=body.recent_violations,
    )


@app.post("/risk-heatmap", response_model=List[DepartmentRisk])
def risk_heatmap(body: HeatmapRequest):
    return department_risk_heatmap(body.actors, body.violations)


@app.post("/analyze", response_model=AnalysisResult)
async def analyze(
    file: UploadFile = File(...),
    window_hours: float = Query(DEFAULT_WINDOW_HOURS, gt=0),
    deduplicate: bool = Query(False),
):
    """
    Upload a CSV of transactions and receive temporal SoD violations plus a
    per-actor behaviour summary.

    Expected CSV columns: transaction_id, actor_id, action, amount, timestamp
    (amount may be blank for non-monetary actions)
    """
    # ---- basic validation ----
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are accepted.")

    file_bytes = await file.read()

    if len(file_bytes) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_FILE_SIZE_BYTES // (1024*1024)} MB.",
        )

    start_time = time.perf_counter()

    # ---- 1. Parse ----
    try:
        df, parse_stats = parse_csv(file_bytes)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if parse_stats.get("warnings"):
        log.warning("Parse warnings for %s: %s", file.filename, parse_stats["warnings"])

    log.info(
        "Parsed %s: %d valid rows, %d actors",
        file.filename,
        parse_stats.get("valid_rows", len(df)),
        df["actor_id"].nunique(),
    )

    # ---- 2. Detect ----
    violations = detect_temporal_violations(df, window_hours=window_hours)
    if deduplicate:
        violations = deduplicate_violations(violations)

    # ---- 3. Format & return ----
    elapsed = time.perf_counter() - start_time
    result = format_analysis(df, violations, elapsed, parse_stats)

    log.info(
        "Analysis complete for %s in %.2fs: %d violations",
        file.filename,
        elapsed,
        len(violations),
    )
    return result
