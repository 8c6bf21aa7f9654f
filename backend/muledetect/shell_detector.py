"""
shell_detector.py – Detect layered shell account networks.

Definition
----------
A shell chain starts at a high-activity origin (more than SHELL_MAX_TX
transactions in + out) and runs through low-activity intermediaries (at most
SHELL_MAX_TX transactions each), used purely to add layers of obfuscation.

Algorithm
---------
For every origin, in account order, and every outgoing transfer of that origin
whose receiver is low-activity, start a chain [origin, receiver] and extend it
greedily from the tail:
  • take the first not-yet-visited successor that is itself low-activity and
    keep going, up to SHELL_MAX_CHAIN accounts;
  • if no successor qualifies, append the first unvisited successor (if any)
    as the exit account and stop.
Chains shorter than SHELL_MIN_CHAIN accounts are dropped; repeated sequences
are reported once.

This is a single-path heuristic: one chain per (origin, first shell) edge,
and which chain is found depends on transfer order.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from .budget import SearchBudget, SearchBudgetExceeded
from .config import SHELL_MAX_TX, SHELL_MIN_CHAIN, SHELL_MAX_CHAIN
from .graph_builder import TransactionGraph

log = logging.getLogger(__name__)


def _extend_chain(
    graph: TransactionGraph,
    chain: List[int],
    is_shell: List[bool],
    budget: SearchBudget,
) -> List[int]:
    visited = set(chain)
    current = chain[-1]
    while len(chain) < SHELL_MAX_CHAIN:
        budget.tick()
        unvisited = [
            e.counterparty for e in graph.out_edges[current]
            if e.counterparty not in visited
        ]
        next_shell = next((n for n in unvisited if is_shell[n]), None)
        if next_shell is None:
            if unvisited:
                chain.append(unvisited[0])
            break
        chain.append(next_shell)
        visited.add(next_shell)
        current = next_shell
    return chain


def detect_shell_networks(graph: TransactionGraph, budget: SearchBudget | None = None) -> List[Dict]:
    """
    Detect layered shell-account chains.

    Returns
    -------
    List of pattern-hit dicts with keys:
        members               : list[str]  – full path [origin, shell1, ..., exit]
        pattern               : "shell_network"
        chain_length          : int        – number of accounts in the chain
        shell_intermediaries  : list[str]  – the low-activity accounts on the path
    """
    budget = (budget or SearchBudget("shell")).start()
    hits: List[Dict] = []
    seen_paths: set = set()
    ids = graph.account_ids

    is_shell = [s.total_transactions <= SHELL_MAX_TX for s in graph.stats]
    log.info(
        "Shell detection: %d low-activity candidates / %d total nodes",
        sum(is_shell),
        len(graph),
    )

    try:
        for origin in range(len(graph)):
            if is_shell[origin]:
                continue
            for edge in graph.out_edges[origin]:
                first = edge.counterparty
                if not is_shell[first]:
                    continue
                chain = _extend_chain(graph, [origin, first], is_shell, budget)
                if len(chain) < SHELL_MIN_CHAIN:
                    continue

                members = [ids[i] for i in chain]
                key = "→".join(members)
                if key in seen_paths:
                    continue
                seen_paths.add(key)
                hits.append({
                    "members": members,
                    "pattern": "shell_network",
                    "chain_length": len(members),
                    "shell_intermediaries": [ids[i] for i in chain[1:] if is_shell[i]],
                })
    except SearchBudgetExceeded as exc:
        log.warning("Shell search stopped early (%s); keeping %d chains found so far.", exc, len(hits))

    log.info("Shell detection: %d chains found", len(hits))
    return hits
