"""
budget.py – Work budget for the graph searches.

Cycle and shell-chain search are worst-case exponential on dense graphs, so
every search runs against a SearchBudget: a cap on expansion steps plus a
wall-clock deadline.  Running out raises SearchBudgetExceeded inside the
detector, which keeps whatever it found so far and records the truncation.
"""
from __future__ import annotations

import time

from .config import SEARCH_MAX_STEPS, SEARCH_TIMEOUT_SECONDS

# Checking the clock on every step is measurable on large graphs.
_CLOCK_CHECK_INTERVAL = 1024


class SearchBudgetExceeded(RuntimeError):
    """Raised by SearchBudget.tick() once the step cap or deadline is hit."""


class AnalysisTimeout(RuntimeError):
    """Raised to the caller when a search budget ran out in strict mode."""

    def __init__(self, detectors):
        self.detectors = list(detectors)
        super().__init__(
            f"Search budget exhausted in: {', '.join(self.detectors)}"
        )


class SearchBudget:
    """Step cap and wall-clock deadline for one search; tick() charges one edge expansion."""

    def __init__(
        self,
        name: str,
        max_steps: int = SEARCH_MAX_STEPS,
        timeout_seconds: float = SEARCH_TIMEOUT_SECONDS,
    ):
        self.name = name
        self.max_steps = max_steps
        self.timeout_seconds = timeout_seconds
        self.steps = 0
        self.exhausted = False
        self._deadline = time.perf_counter() + timeout_seconds

    def start(self) -> "SearchBudget":
        """Restart the clock; called when the search actually begins."""
        self._deadline = time.perf_counter() + self.timeout_seconds
        return self

    def tick(self, n: int = 1) -> None:
        self.steps += n
        if self.steps > self.max_steps:
            self._exhaust(f"step cap {self.max_steps} reached")
        if self.steps % _CLOCK_CHECK_INTERVAL < n and time.perf_counter() > self._deadline:
            self._exhaust(f"timed out after {self.timeout_seconds:.1f}s")

    def _exhaust(self, reason: str) -> None:
        self.exhausted = True
        raise SearchBudgetExceeded(f"{self.name}: {reason}")
