"""
smurf_detector.py – Detect smurfing patterns (fan-in / fan-out).

Smurfing (structuring)
-----------------------
  Fan-in  : FAN_THRESHOLD+ distinct senders → 1 receiver within SMURF_WINDOW_HOURS.
  Fan-out : 1 sender → FAN_THRESHOLD+ distinct receivers within SMURF_WINDOW_HOURS.

Window policy
-------------
Each hub's transfers are stably sorted by timestamp and every transfer is
tried as a window anchor covering [anchor, anchor + window], both ends
inclusive.  The first anchor whose window reaches the threshold produces the
hit and scanning for that hub stops: at most one fan-in and one fan-out hit
per account, and not necessarily the largest window.

Hubs are visited in order of first appearance in the batch.  Merchant and
payroll exclusion is applied later, when hits become rings.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Optional

import pandas as pd

from .config import FAN_THRESHOLD, SMURF_WINDOW_HOURS

log = logging.getLogger(__name__)


def _first_dense_window(
    grp: pd.DataFrame,
    counterparty_col: str,
    window_td: timedelta,
    threshold: int,
) -> Optional[List[str]]:
    """
    Return the distinct counterparties (in order of appearance) of the first
    anchored window holding >= threshold of them, or None.
    """
    times = grp["timestamp"]
    counterparts = grp[counterparty_col]
    for anchor in times:
        in_window = (times >= anchor) & (times <= anchor + window_td)
        unique = counterparts[in_window].unique()
        if len(unique) >= threshold:
            return list(unique)
    return None


def _scan(
    df: pd.DataFrame,
    hub_col: str,
    counterparty_col: str,
    pattern: str,
    window_td: timedelta,
    threshold: int,
) -> List[Dict]:
    hits: List[Dict] = []
    for hub, grp in df.groupby(hub_col, sort=False):
        # No window can hold more counterparties than the hub has overall.
        if grp[counterparty_col].nunique() < threshold:
            continue
        grp = grp.sort_values("timestamp", kind="stable")
        counterparts = _first_dense_window(grp, counterparty_col, window_td, threshold)
        if counterparts is None:
            continue
        # Unlike a plain [hub, *counterparts], a self-transfer must not list the
        # hub twice: it would join its own ring twice and earn the multi-ring bonus.
        members = list(dict.fromkeys([hub] + counterparts))
        hits.append({
            "members": members,
            "pattern": pattern,
            "hub": hub,
            "member_count": len(members),
        })
    return hits


def detect_smurfing(df: pd.DataFrame) -> List[Dict]:
    """
    Detect fan-in and fan-out smurfing patterns.

    Returns
    -------
    List of pattern-hit dicts, all fan-in hits first, with keys:
        members      : list[str]  – [hub, *counterparties in the window]
        pattern      : str        – "fan_in" or "fan_out"
        hub          : str        – the central aggregator/disperser
        member_count : int
    """
    if df.empty:
        log.info("Smurfing detection: 0 rings found (empty batch)")
        return []

    window_td = timedelta(hours=SMURF_WINDOW_HOURS)

    # ── Fan-in: many senders → one receiver ────────────────────────────────
    fan_in = _scan(df, "receiver_id", "sender_id", "fan_in", window_td, FAN_THRESHOLD)

    # ── Fan-out: one sender → many receivers ───────────────────────────────
    fan_out = _scan(df, "sender_id", "receiver_id", "fan_out", window_td, FAN_THRESHOLD)

    log.info(
        "Smurfing detection: %d rings found (%d fan-in, %d fan-out)",
        len(fan_in) + len(fan_out), len(fan_in), len(fan_out),
    )
    return fan_in + fan_out
