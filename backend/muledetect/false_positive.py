"""
false_positive.py – Classify legitimate high-volume accounts.

Accounts matched here are removed from every ring before the ring is kept.

  MERCHANT : a shop-like receiver – at least MERCHANT_MIN_IN_DEGREE incoming
             transfers from MERCHANT_MIN_SENDERS+ distinct payers, spread over
             more than MERCHANT_MIN_SPAN_HOURS (one week by default).

  PAYROLL  : a payroll-like sender – at least PAYROLL_MIN_OUT_DEGREE outgoing
             transfers whose amounts are near-uniform, i.e. the coefficient of
             variation (population std / mean) is below
             PAYROLL_AMOUNT_CV_THRESHOLD.  Senders whose mean payout is zero
             have no defined ratio and are skipped.
"""
from __future__ import annotations

import logging
from typing import Set

import pandas as pd

from .config import (
    MERCHANT_MIN_IN_DEGREE,
    MERCHANT_MIN_SENDERS,
    MERCHANT_MIN_SPAN_HOURS,
    PAYROLL_MIN_OUT_DEGREE,
    PAYROLL_AMOUNT_CV_THRESHOLD,
)
from .graph_builder import TransactionGraph

log = logging.getLogger(__name__)


def detect_merchants(df: pd.DataFrame, graph: TransactionGraph) -> Set[str]:
    """Return receiver IDs that look like legitimate merchants."""
    candidates = [
        acc for acc, s in zip(graph.account_ids, graph.stats)
        if s.in_degree >= MERCHANT_MIN_IN_DEGREE
    ]
    if not candidates:
        return set()

    incoming = df[df["receiver_id"].isin(candidates)]
    agg = incoming.groupby("receiver_id").agg(
        senders=("sender_id", "nunique"),
        first_ts=("timestamp", "min"),
        last_ts=("timestamp", "max"),
    )
    span_hours = (agg["last_ts"] - agg["first_ts"]).dt.total_seconds() / 3600.0
    merchants = set(
        agg.index[(agg["senders"] >= MERCHANT_MIN_SENDERS) & (span_hours > MERCHANT_MIN_SPAN_HOURS)]
    )
    if merchants:
        log.info("Merchant exclusion: %d accounts", len(merchants))
    return merchants


def detect_payroll(df: pd.DataFrame, graph: TransactionGraph) -> Set[str]:
    """Return sender IDs that look like payroll / batch payout accounts."""
    candidates = [
        acc for acc, s in zip(graph.account_ids, graph.stats)
        if s.out_degree >= PAYROLL_MIN_OUT_DEGREE
    ]
    if not candidates:
        return set()

    outgoing = df[df["sender_id"].isin(candidates)]
    agg = outgoing.groupby("sender_id")["amount"].agg(
        mean="mean",
        std=lambda a: a.std(ddof=0),
    )
    agg = agg[agg["mean"] != 0]
    cv = agg["std"] / agg["mean"]
    payroll = set(agg.index[cv < PAYROLL_AMOUNT_CV_THRESHOLD])
    if payroll:
        log.info("Payroll exclusion: %d accounts", len(payroll))
    return payroll


def legitimate_accounts(df: pd.DataFrame, graph: TransactionGraph) -> Set[str]:
    """Union of merchant-like and payroll-like accounts."""
    return detect_merchants(df, graph) | detect_payroll(df, graph)
