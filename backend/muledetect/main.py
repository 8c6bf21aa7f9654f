"""
main.py – FastAPI application entry point.

Endpoints
---------
GET  /                – service banner
GET  /health          – liveness / readiness probe with version info
POST /analyze         – upload CSV, run full forensics pipeline, return JSON
POST /analyze/report  – upload CSV, download forensics_report.json
                        (suspicious accounts, fraud rings, summary; no graph)
"""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Tuple

import pandas as pd
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .budget import AnalysisTimeout
from .config import CORS_ORIGINS, MAX_FILE_SIZE_BYTES
from .formatter import build_report
from .models import AnalysisResult
from .parser import parse_csv
from .pipeline import analyze_transactions

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
    log.info("Mule Ring Detector v%s starting up", __version__)
    yield
    log.info("Mule Ring Detector shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Mule Ring Detector",
    description="Detect money-muling rings through transfer graph analysis",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
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
# Helpers
# ---------------------------------------------------------------------------
async def _read_upload(file: UploadFile) -> Tuple[pd.DataFrame, dict]:
    """Validate the upload and parse it into a transfer frame."""
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are accepted.")

    file_bytes = await file.read()
    if len(file_bytes) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_FILE_SIZE_BYTES // (1024*1024)} MB.",
        )

    try:
        df, parse_stats = parse_csv(file_bytes)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if parse_stats.get("warnings"):
        log.warning("Parse warnings for %s: %s", file.filename, parse_stats["warnings"])
    return df, parse_stats


def _run(df: pd.DataFrame, filename: str | None) -> AnalysisResult:
    try:
        result = analyze_transactions(df)
    except AnalysisTimeout as exc:
        log.error("Analysis of %s aborted: %s", filename, exc)
        raise HTTPException(status_code=503, detail=str(exc))
    log.info(
        "Analysis complete for %s: %d rings, %d flagged accounts",
        filename,
        result.summary.fraud_rings_detected,
        result.summary.suspicious_accounts_flagged,
    )
    return result


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "service": "Mule Ring Detector", "version": __version__}


@app.get("/health")
def health():
    """Liveness / readiness probe."""
    return {
        "status": "healthy",
        "version": __version__,
        "max_file_size_mb": MAX_FILE_SIZE_BYTES // (1024 * 1024),
    }


@app.post("/analyze")
async def analyze(file: UploadFile = File(...)):
    """
    Upload a CSV of transfers and receive the full analysis.

    Expected CSV columns: transaction_id, sender_id, receiver_id, amount, timestamp
    """
    df, parse_stats = await _read_upload(file)
    result = _run(df, file.filename)
    content = result.model_dump(mode="json")
    content["parse_stats"] = parse_stats
    return JSONResponse(content=content)


@app.post("/analyze/report")
async def analyze_report(file: UploadFile = File(...)):
    """Same analysis as /analyze, returned as a downloadable JSON report."""
    df, _ = await _read_upload(file)
    report = build_report(_run(df, file.filename))
    return JSONResponse(
        content=report.model_dump(mode="json"),
        headers={"Content-Disposition": 'attachment; filename="forensics_report.json"'},
    )
