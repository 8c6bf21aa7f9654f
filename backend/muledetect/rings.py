"""
rings.py – Turn pattern hits into fraud rings.

Every hit (cycles first, then smurfing, then shell chains) is filtered against
the legitimate-account set.  Hits with fewer than two surviving members are
dropped; the rest receive the next sequential RING_001, RING_002, … id and a
risk score:

    risk_score = min(100, base + RING_MEMBER_WEIGHT × surviving members)

    base: cycle  RING_BASE_CYCLE + RING_CYCLE_LENGTH_WEIGHT × cycle length
          fan_in / fan_out  RING_BASE_SMURFING
          shell_network     RING_BASE_SHELL

Each surviving member accumulates the ring id and the hit's pattern tag.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set

from .config import (
    RING_BASE_CYCLE,
    RING_CYCLE_LENGTH_WEIGHT,
    RING_BASE_SMURFING,
    RING_BASE_SHELL,
    RING_MEMBER_WEIGHT,
)
from .models import FraudRing

log = logging.getLogger(__name__)


class RingAggregator:
    def __init__(self, excluded: Set[str] | None = None):
        self.excluded = excluded or set()
        self.rings: List[FraudRing] = []
        # account → ring ids in insertion order
        self.account_rings: Dict[str, List[str]] = {}
        # account → pattern tags; dict keys keep insertion order
        self.account_patterns: Dict[str, Dict[str, None]] = {}

    def add(self, members: Iterable[str], pattern_type: str, base_score: float, tag: str) -> FraudRing | None:
        """Register one hit; return the new ring, or None if it was discarded."""
        survivors = [m for m in members if m not in self.excluded]
        if len(survivors) < 2:
            return None

        ring = FraudRing(
            ring_id=f"RING_{len(self.rings) + 1:03d}",
            member_accounts=survivors,
            pattern_type=pattern_type,
            risk_score=min(100.0, base_score + RING_MEMBER_WEIGHT * len(survivors)),
        )
        self.rings.append(ring)
        for acc in survivors:
            self.account_rings.setdefault(acc, []).append(ring.ring_id)
            self.account_patterns.setdefault(acc, {})[tag] = None
        return ring

    def add_cycles(self, hits: List[Dict]) -> None:
        for hit in hits:
            length = len(hit["members"])
            self.add(
                hit["members"],
                "cycle",
                RING_BASE_CYCLE + RING_CYCLE_LENGTH_WEIGHT * length,
                f"cycle_length_{length}",
            )

    def add_smurfing(self, hits: List[Dict]) -> None:
        for hit in hits:
            self.add(hit["members"], hit["pattern"], RING_BASE_SMURFING, hit["pattern"])

    def add_shells(self, hits: List[Dict]) -> None:
        for hit in hits:
            self.add(hit["members"], "shell_network", RING_BASE_SHELL, "shell_network")

    def patterns_for(self, account_id: str) -> List[str]:
        return list(self.account_patterns.get(account_id, {}))


def aggregate_rings(
    cycle_hits: List[Dict],
    smurf_hits: List[Dict],
    shell_hits: List[Dict],
    excluded: Set[str] | None = None,
) -> RingAggregator:
    """Combine all detector output, in priority order, into one ring index."""
    agg = RingAggregator(excluded)
    agg.add_cycles(cycle_hits)
    agg.add_smurfing(smurf_hits)
    agg.add_shells(shell_hits)

    raw = len(cycle_hits) + len(smurf_hits) + len(shell_hits)
    log.info("Ring aggregation: %d hits → %d rings (%d discarded)", raw, len(agg.rings), raw - len(agg.rings))
    return agg
