"""
scoring.py – Suspicion scoring engine.

Scoring model
-------------
Only accounts that belong to at least one surviving ring are scored.

1. Pattern contributions – SCORE_CYCLE for any cycle_length_N tag, SCORE_FAN_IN,
                            SCORE_FAN_OUT, SCORE_SHELL for shell_network
2. Multi-ring bonus      – SCORE_MULTI_RING_BONUS once the account is in 2+ rings
3. High-velocity bonus   – more than HIGH_VELOCITY_MIN_TX transfers touching the
                            account, all within HIGH_VELOCITY_WINDOW_HOURS of each
                            other; adds the "high_velocity" tag

Scores are rounded to one decimal, clamped to [0, 100] and returned sorted
descending.  Ties keep ring-insertion order.
"""
from __future__ import annotations

import logging
from typing import List, Set

import pandas as pd

from .config import (
    SCORE_CYCLE,
    SCORE_FAN_IN,
    SCORE_FAN_OUT,
    SCORE_SHELL,
    SCORE_MULTI_RING_BONUS,
    SCORE_HIGH_VELOCITY,
    HIGH_VELOCITY_MIN_TX,
    HIGH_VELOCITY_WINDOW_HOURS,
)
from .models import SuspiciousAccount
from .rings import RingAggregator

log = logging.getLogger(__name__)


def velocity_accounts(df: pd.DataFrame, accounts: Set[str]) -> Set[str]:
    """
    Return the accounts among `accounts` with more than HIGH_VELOCITY_MIN_TX
    transfers whose full time span is under HIGH_VELOCITY_WINDOW_HOURS.
    """
    if df.empty or not accounts:
        return set()

    sides = pd.concat([
        df[["transaction_id", "timestamp"]].assign(account_id=df["sender_id"]),
        df[["transaction_id", "timestamp"]].assign(account_id=df["receiver_id"]),
    ])
    sides = sides[sides["account_id"].isin(accounts)]
    # A self-transfer touches its account once.
    sides = sides.drop_duplicates(subset=["account_id", "transaction_id"])

    agg = sides.groupby("account_id")["timestamp"].agg(["count", "min", "max"])
    span_hours = (agg["max"] - agg["min"]).dt.total_seconds() / 3600.0
    flagged = set(
        agg.index[(agg["count"] > HIGH_VELOCITY_MIN_TX) & (span_hours < HIGH_VELOCITY_WINDOW_HOURS)]
    )
    log.info("High-velocity accounts: %d", len(flagged))
    return flagged


def _pattern_score(patterns: List[str], ring_count: int) -> float:
    score = 0.0
    if any(p.startswith("cycle_length_") for p in patterns):
        score += SCORE_CYCLE
    if "fan_in" in patterns:
        score += SCORE_FAN_IN
    if "fan_out" in patterns:
        score += SCORE_FAN_OUT
    if "shell_network" in patterns:
        score += SCORE_SHELL
    if ring_count > 1:
        score += SCORE_MULTI_RING_BONUS
    return score


def calculate_scores(
    rings: RingAggregator,
    df: pd.DataFrame,
    excluded: Set[str] | None = None,
) -> List[SuspiciousAccount]:
    """
    Build the ranked suspicious-account list.

    Parameters
    ----------
    rings    : aggregated rings with per-account ring ids and pattern tags
    df       : transfer frame (for the velocity check)
    excluded : legitimate accounts; never scored even if present in a ring
    """
    excluded = excluded or set()
    members = [acc for acc in rings.account_rings if acc not in excluded]
    fast = velocity_accounts(df, set(members))

    accounts: List[SuspiciousAccount] = []
    for acc in members:
        ring_ids = rings.account_rings[acc]
        patterns = rings.patterns_for(acc)
        score = _pattern_score(patterns, len(ring_ids))
        if acc in fast:
            score += SCORE_HIGH_VELOCITY
            patterns.append("high_velocity")

        accounts.append(SuspiciousAccount(
            account_id=acc,
            suspicion_score=max(0.0, min(round(score, 1), 100.0)),
            detected_patterns=patterns,
            ring_id=ring_ids[0],
        ))

    accounts.sort(key=lambda a: a.suspicion_score, reverse=True)
    log.info("Scoring complete: %d accounts scored", len(accounts))
    return accounts
