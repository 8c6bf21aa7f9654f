"""
models.py – Pydantic models.
Defines the typed input record and the exact JSON contract of the analysis result.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Transfer(BaseModel):
    """One validated transfer record; CSV rows and library callers both go through it."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    transaction_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    receiver_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0.0)
    timestamp: datetime


class NodeStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    in_degree: int = 0
    out_degree: int = 0
    total_amount_in: float = 0.0
    total_amount_out: float = 0.0
    total_transactions: int = 0


class SuspiciousAccount(BaseModel):
    """
    Mandatory fields: account_id, suspicion_score, detected_patterns, ring_id.
    ring_id is the first ring the account was added to, not the riskiest one.
    """
    account_id: str
    suspicion_score: float = Field(..., ge=0.0, le=100.0)
    detected_patterns: List[str]
    ring_id: str


class FraudRing(BaseModel):
    ring_id: str
    member_accounts: List[str] = Field(..., min_length=2)
    pattern_type: str
    risk_score: float = Field(..., ge=0.0, le=100.0)


class NetworkStatistics(BaseModel):
    total_nodes: int
    total_edges: int
    graph_density: float
    avg_degree: float
    connected_components: int


class AnalysisSummary(BaseModel):
    total_accounts_analyzed: int
    suspicious_accounts_flagged: int
    fraud_rings_detected: int
    processing_time_seconds: float
    network_statistics: Optional[NetworkStatistics] = None
    truncated_detectors: List[str] = Field(default_factory=list)


class GraphNode(BaseModel):
    id: str
    label: str
    suspicious: bool
    suspicion_score: float = 0.0
    ring_ids: List[str] = Field(default_factory=list)
    in_degree: int
    out_degree: int
    total_amount_in: float
    total_amount_out: float
    tx_count: int


class GraphEdge(BaseModel):
    """One edge per raw transfer. Aggregation is left to the visualiser."""
    source: str
    target: str
    amount: float
    transaction_id: str
    timestamp: datetime


class GraphData(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]


class AnalysisResult(BaseModel):
    suspicious_accounts: List[SuspiciousAccount]
    fraud_rings: List[FraudRing]
    summary: AnalysisSummary
    graph: GraphData


class ForensicsReport(BaseModel):
    """Downloadable subset of an AnalysisResult (no graph payload)."""
    suspicious_accounts: List[SuspiciousAccount]
    fraud_rings: List[FraudRing]
    summary: AnalysisSummary


class ParseStats(BaseModel):
    total_rows: int
    valid_rows: int
    dropped_rows: int
    duplicate_tx_ids: int
    self_transactions: int
    negative_amounts: int
    warnings: List[str] = Field(default_factory=list)
