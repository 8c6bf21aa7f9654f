"""
cycle_detector.py – Detect circular fund routing (money-mule rings).

Strategy
--------
Depth-bounded DFS from every account, in account order.  A cycle is recorded
when an edge leads back to the start account and the cycle length lies within
[CYCLE_MIN_LEN, CYCLE_MAX_LEN].  Once a start account's search finishes it is
marked processed and is never entered again by a later search, so each cycle
is discovered only from the first of its members to be searched.

The DFS uses an explicit stack of (account, next-edge-position) frames rather
than recursion; edge order and pruning match the recursive walk exactly.

Canonical deduplication: [A,B,C] and [B,C,A] are the same ring; each cycle is
rotated so its lexicographically smallest account comes first and keyed on the
"|"-joined sequence.

Performance
-----------
• SCC pre-filter: a cycle of length >= CYCLE_MIN_LEN lies inside one strongly
  connected component of at least that size.  Only such components are
  searched and the walk never leaves the start account's component.
• Every edge expansion is charged to a SearchBudget.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Set

import networkx as nx

from .budget import SearchBudget, SearchBudgetExceeded
from .config import CYCLE_MIN_LEN, CYCLE_MAX_LEN
from .graph_builder import TransactionGraph

log = logging.getLogger(__name__)


def _canonical_cycle(cycle: List[str]) -> List[str]:
    """Rotate cycle so the lexicographically smallest account is first."""
    if not cycle:
        return list(cycle)
    min_idx = cycle.index(min(cycle))
    return cycle[min_idx:] + cycle[:min_idx]


def _component_ids(graph: TransactionGraph, min_len: int) -> List[int]:
    """
    Map each account index to its SCC number, or -1 when the component is too
    small to hold a cycle of min_len accounts.
    """
    component = [-1] * len(graph)
    sccs = nx.strongly_connected_components(graph.to_networkx())
    for n, scc in enumerate(sccs):
        if len(scc) >= min_len:
            for node in scc:
                component[node] = n
    return component


def find_cycles(
    graph: TransactionGraph,
    min_len: int = CYCLE_MIN_LEN,
    max_len: int = CYCLE_MAX_LEN,
    budget: SearchBudget | None = None,
) -> List[List[str]]:
    """
    Return raw cycles as ordered account-id lists, in discovery order,
    before rotation or deduplication.  Stops early (keeping what it found)
    when the budget runs out.
    """
    budget = (budget or SearchBudget("cycle")).start()
    component = _component_ids(graph, min_len)
    successors = [[e.counterparty for e in edges] for edges in graph.out_edges]
    ids = graph.account_ids

    raw: List[List[str]] = []
    processed: Set[int] = set()

    try:
        for start in range(len(graph)):
            comp = component[start]
            if comp < 0:
                processed.add(start)
                continue

            path = [start]
            on_path = {start}
            stack = [(start, 0)]
            while stack:
                node, pos = stack[-1]
                nbrs = successors[node]
                if pos == len(nbrs):
                    stack.pop()
                    if len(path) > 1:
                        on_path.discard(path.pop())
                    continue
                stack[-1] = (node, pos + 1)
                budget.tick()

                target = nbrs[pos]
                if component[target] != comp:
                    continue
                # len(path) is the cycle length if this edge closes the loop
                if target == start and min_len <= len(path) <= max_len:
                    raw.append([ids[i] for i in path])
                elif (
                    target not in on_path
                    and target not in processed
                    and len(path) < max_len
                ):
                    path.append(target)
                    on_path.add(target)
                    stack.append((target, 0))

            processed.add(start)
    except SearchBudgetExceeded as exc:
        log.warning("Cycle search stopped early (%s); keeping %d cycles found so far.", exc, len(raw))

    return raw


def detect_cycles(graph: TransactionGraph, budget: SearchBudget | None = None) -> List[Dict]:
    """
    Detect directed cycles of length CYCLE_MIN_LEN to CYCLE_MAX_LEN.

    Returns
    -------
    List of pattern-hit dicts with keys:
        members       : list[str]   – canonical ordering of the cycle
        pattern       : str         – e.g. "cycle_length_3"
        cycle_length  : int
    """
    hits: List[Dict] = []
    seen: set = set()

    for cycle in find_cycles(graph, budget=budget):
        canonical = _canonical_cycle(cycle)
        key = "|".join(canonical)
        if key in seen:
            continue
        seen.add(key)
        hits.append({
            "members": canonical,
            "pattern": f"cycle_length_{len(canonical)}",
            "cycle_length": len(canonical),
        })

    log.info("Cycle detection: %d rings found", len(hits))
    return hits
