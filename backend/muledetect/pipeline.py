"""
pipeline.py – Run the full forensics analysis on one transfer batch.

    transfers → build_graph → {cycles, smurfing, shells, legitimate accounts}
              → aggregate_rings → calculate_scores → format_output

The three detectors and the false-positive classifier only read the graph
and the transfer frame, so they may run concurrently (PARALLEL_DETECTORS).
Ring aggregation waits for all four.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Union

import pandas as pd

from .budget import AnalysisTimeout, SearchBudget
from .config import PARALLEL_DETECTORS, SEARCH_BUDGET_STRICT
from .cycle_detector import detect_cycles
from .false_positive import legitimate_accounts
from .formatter import format_output
from .graph_builder import build_graph
from .models import AnalysisResult, Transfer
from .parser import frame_from_transfers
from .rings import aggregate_rings
from .scoring import calculate_scores
from .shell_detector import detect_shell_networks
from .smurf_detector import detect_smurfing

log = logging.getLogger(__name__)


def analyze_transactions(
    transfers: Union[pd.DataFrame, Iterable[Transfer]],
    parallel: bool | None = None,
    strict: bool | None = None,
) -> AnalysisResult:
    """
    Analyse a closed batch of validated transfers.

    Parameters
    ----------
    transfers : transfer frame (see parser.TRANSFER_COLUMNS) or Transfer records,
                in batch order
    parallel  : run detectors in a thread pool (default: PARALLEL_DETECTORS)
    strict    : raise AnalysisTimeout when a search budget runs out instead of
                returning the partial result (default: SEARCH_BUDGET_STRICT)
    """
    parallel = PARALLEL_DETECTORS if parallel is None else parallel
    strict = SEARCH_BUDGET_STRICT if strict is None else strict
    start_time = time.perf_counter()

    df = transfers if isinstance(transfers, pd.DataFrame) else frame_from_transfers(transfers)

    # ---- 1. Build graph ----
    graph = build_graph(df)

    # ---- 2. Run detectors & classifier ----
    cycle_budget = SearchBudget("cycle")
    shell_budget = SearchBudget("shell")
    if parallel:
        with ThreadPoolExecutor(max_workers=4, thread_name_prefix="detector") as pool:
            f_cycles = pool.submit(detect_cycles, graph, cycle_budget)
            f_smurfs = pool.submit(detect_smurfing, df)
            f_shells = pool.submit(detect_shell_networks, graph, shell_budget)
            f_legit = pool.submit(legitimate_accounts, df, graph)
            cycle_hits = f_cycles.result()
            smurf_hits = f_smurfs.result()
            shell_hits = f_shells.result()
            excluded = f_legit.result()
    else:
        cycle_hits = detect_cycles(graph, cycle_budget)
        smurf_hits = detect_smurfing(df)
        shell_hits = detect_shell_networks(graph, shell_budget)
        excluded = legitimate_accounts(df, graph)

    truncated: List[str] = [b.name for b in (cycle_budget, shell_budget) if b.exhausted]
    if truncated and strict:
        raise AnalysisTimeout(truncated)

    # ---- 3. Rings ----
    rings = aggregate_rings(cycle_hits, smurf_hits, shell_hits, excluded)

    # ---- 4. Score accounts ----
    accounts = calculate_scores(rings, df, excluded)

    # ---- 5. Assemble ----
    elapsed = time.perf_counter() - start_time
    result = format_output(graph, df, rings, accounts, elapsed, truncated)

    log.info(
        "Analysis complete in %.2fs: %d accounts, %d rings, %d flagged%s",
        elapsed,
        len(graph),
        len(rings.rings),
        len(accounts),
        f" (truncated: {', '.join(truncated)})" if truncated else "",
    )
    return result
