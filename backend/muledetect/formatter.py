"""
formatter.py – Produce the final analysis result.

JSON contract
-------------
{
  "suspicious_accounts": [{account_id, suspicion_score, detected_patterns, ring_id}],
  "fraud_rings":         [{ring_id, member_accounts, pattern_type, risk_score}],
  "summary":             {total_accounts_analyzed, suspicious_accounts_flagged,
                          fraud_rings_detected, processing_time_seconds,
                          network_statistics, truncated_detectors},
  "graph":               {nodes: [...], edges: [...]}
}

Graph edges are one per input transfer.  Grouping them by (source, target)
for display is the visualiser's job.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import networkx as nx
import pandas as pd

from .graph_builder import TransactionGraph
from .models import (
    AnalysisResult,
    AnalysisSummary,
    ForensicsReport,
    GraphData,
    GraphEdge,
    GraphNode,
    NetworkStatistics,
    SuspiciousAccount,
)
from .rings import RingAggregator

log = logging.getLogger(__name__)


def _network_statistics(graph: TransactionGraph) -> NetworkStatistics:
    """Graph-level statistics over the collapsed account graph."""
    G = graph.to_networkx()
    n_nodes = G.number_of_nodes()
    n_edges = G.number_of_edges()
    return NetworkStatistics(
        total_nodes=n_nodes,
        total_edges=n_edges,
        graph_density=round(nx.density(G), 6) if n_nodes > 1 else 0.0,
        avg_degree=round((2 * n_edges) / n_nodes, 2) if n_nodes > 0 else 0.0,
        connected_components=nx.number_weakly_connected_components(G) if n_nodes > 0 else 0,
    )


def _graph_nodes(
    graph: TransactionGraph,
    rings: RingAggregator,
    scores: Dict[str, float],
) -> List[GraphNode]:
    nodes: List[GraphNode] = []
    for acc, s in zip(graph.account_ids, graph.stats):
        suspicious = acc in scores
        nodes.append(GraphNode(
            id=acc,
            label=acc,
            suspicious=suspicious,
            suspicion_score=scores.get(acc, 0.0),
            ring_ids=list(rings.account_rings.get(acc, [])),
            in_degree=s.in_degree,
            out_degree=s.out_degree,
            total_amount_in=round(s.total_amount_in, 2),
            total_amount_out=round(s.total_amount_out, 2),
            tx_count=s.total_transactions,
        ))
    return nodes


def _graph_edges(df: pd.DataFrame) -> List[GraphEdge]:
    return [
        GraphEdge(
            source=row.sender_id,
            target=row.receiver_id,
            amount=float(row.amount),
            transaction_id=row.transaction_id,
            timestamp=row.timestamp.to_pydatetime(),
        )
        for row in df[["sender_id", "receiver_id", "amount", "transaction_id", "timestamp"]]
        .itertuples(index=False)
    ]


def format_output(
    graph: TransactionGraph,
    df: pd.DataFrame,
    rings: RingAggregator,
    accounts: List[SuspiciousAccount],
    processing_time: float,
    truncated_detectors: Sequence[str] = (),
) -> AnalysisResult:
    """
    Build the complete analysis result.

    Parameters
    ----------
    graph               : interned transfer graph
    df                  : transfer frame, one graph edge per row
    rings               : aggregated rings and per-account membership
    accounts            : ranked output of scoring.calculate_scores()
    processing_time     : elapsed wall-clock seconds
    truncated_detectors : detectors whose search budget ran out
    """
    scores = {a.account_id: a.suspicion_score for a in accounts}

    summary = AnalysisSummary(
        total_accounts_analyzed=len(graph),
        suspicious_accounts_flagged=len(accounts),
        fraud_rings_detected=len(rings.rings),
        processing_time_seconds=round(processing_time, 3),
        network_statistics=_network_statistics(graph),
        truncated_detectors=list(truncated_detectors),
    )

    result = AnalysisResult(
        suspicious_accounts=accounts,
        fraud_rings=rings.rings,
        summary=summary,
        graph=GraphData(nodes=_graph_nodes(graph, rings, scores), edges=_graph_edges(df)),
    )
    log.info(
        "Format complete: %d suspicious accounts, %d fraud rings",
        len(accounts),
        len(rings.rings),
    )
    return result


def build_report(result: AnalysisResult) -> ForensicsReport:
    """The downloadable subset of a result: accounts, rings and summary."""
    return ForensicsReport(
        suspicious_accounts=result.suspicious_accounts,
        fraud_rings=result.fraud_rings,
        summary=result.summary,
    )
