"""
graph_builder.py – Build the transfer graph the detectors read from.

Accounts are interned to dense integer indexes in order of first appearance
(sender before receiver within a row).  Adjacency is array-backed: one list of
Edge tuples per index, forward (outgoing) and reverse (incoming), each list in
transfer order.  The detectors' greedy "first match wins" choices follow that
order, so it must never be re-sorted.

Node statistics are vectorised pandas aggregations computed once every edge is
known.  Nothing here is mutated after build_graph() returns.
"""
from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple

import networkx as nx
import pandas as pd

from .models import NodeStats

log = logging.getLogger(__name__)


class Edge(NamedTuple):
    counterparty: int
    amount: float
    timestamp: pd.Timestamp
    transaction_id: str


class TransactionGraph:
    """Interned, read-only adjacency view over one transfer batch."""

    def __init__(
        self,
        account_ids: List[str],
        out_edges: List[List[Edge]],
        in_edges: List[List[Edge]],
        stats: List[NodeStats],
    ):
        self.account_ids = account_ids
        self.index: Dict[str, int] = {acc: i for i, acc in enumerate(account_ids)}
        self.out_edges = out_edges
        self.in_edges = in_edges
        self.stats = stats
        self._nx: nx.DiGraph | None = None

    def __len__(self) -> int:
        return len(self.account_ids)

    def stats_for(self, account_id: str) -> NodeStats:
        return self.stats[self.index[account_id]]

    def successors(self, account_id: str) -> List[str]:
        """Outgoing counterparties of an account, one entry per transfer."""
        ids = self.account_ids
        return [ids[e.counterparty] for e in self.out_edges[self.index[account_id]]]

    def predecessors(self, account_id: str) -> List[str]:
        ids = self.account_ids
        return [ids[e.counterparty] for e in self.in_edges[self.index[account_id]]]

    def to_networkx(self) -> nx.DiGraph:
        """Collapsed simple DiGraph over account indexes (built once, cached)."""
        if self._nx is None:
            G = nx.DiGraph()
            G.add_nodes_from(range(len(self.account_ids)))
            G.add_edges_from(
                (i, e.counterparty)
                for i, edges in enumerate(self.out_edges)
                for e in edges
            )
            self._nx = G
        return self._nx


def build_graph(df: pd.DataFrame) -> TransactionGraph:
    """
    Construct the adjacency view and per-account statistics from a validated
    transfer frame (columns: transaction_id, sender_id, receiver_id, amount,
    timestamp).  An empty frame yields an empty graph.
    """
    if df.empty:
        log.info("Graph built: 0 nodes, 0 edges")
        return TransactionGraph([], [], [], [])

    # ravel() on the (sender, receiver) matrix walks row by row, so pd.unique
    # keeps first-appearance order with senders ahead of their receivers.
    account_ids: List[str] = list(pd.unique(df[["sender_id", "receiver_id"]].to_numpy().ravel()))
    index = pd.Index(account_ids)
    sender_codes = index.get_indexer(df["sender_id"])
    receiver_codes = index.get_indexer(df["receiver_id"])

    out_edges: List[List[Edge]] = [[] for _ in account_ids]
    in_edges: List[List[Edge]] = [[] for _ in account_ids]
    for s, r, row in zip(
        sender_codes,
        receiver_codes,
        df[["transaction_id", "amount", "timestamp"]].itertuples(index=False),
    ):
        amount = float(row.amount)
        out_edges[s].append(Edge(int(r), amount, row.timestamp, row.transaction_id))
        in_edges[r].append(Edge(int(s), amount, row.timestamp, row.transaction_id))

    # ── Vectorised node statistics ─────────────────────────────────────────────
    sent = (
        df.groupby("sender_id", sort=False)["amount"]
        .agg(out_degree="count", total_amount_out="sum")
        .reindex(index, fill_value=0)
    )
    recv = (
        df.groupby("receiver_id", sort=False)["amount"]
        .agg(in_degree="count", total_amount_in="sum")
        .reindex(index, fill_value=0)
    )
    node_df = pd.concat([sent, recv], axis=1)
    node_df["total_transactions"] = node_df["in_degree"] + node_df["out_degree"]

    stats = [
        NodeStats(
            in_degree=int(row.in_degree),
            out_degree=int(row.out_degree),
            total_amount_in=float(row.total_amount_in),
            total_amount_out=float(row.total_amount_out),
            total_transactions=int(row.total_transactions),
        )
        for row in node_df.itertuples()
    ]

    graph = TransactionGraph(account_ids, out_edges, in_edges, stats)
    log.info("Graph built: %d nodes, %d edges", len(account_ids), len(df))
    return graph
