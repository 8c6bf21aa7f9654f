"""
config.py – Centralised configuration via environment variables.
All tunable thresholds live here so nothing is scattered across modules.
"""
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── File limits ────────────────────────────────────────────────────────────────
MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
MAX_FILE_SIZE_BYTES: int = MAX_FILE_SIZE_MB * 1024 * 1024
MAX_ROWS: int = int(os.getenv("MAX_ROWS", "10000"))

# ── Cycle detection ────────────────────────────────────────────────────────────
CYCLE_MIN_LEN: int = 3
CYCLE_MAX_LEN: int = 5

# ── Smurfing detection ─────────────────────────────────────────────────────────
FAN_THRESHOLD: int = int(os.getenv("FAN_THRESHOLD", "10"))
SMURF_WINDOW_HOURS: int = int(os.getenv("SMURF_WINDOW_HOURS", "72"))

# ── Shell detection ────────────────────────────────────────────────────────────
# An account with at most SHELL_MAX_TX transactions (in + out) is "low activity".
SHELL_MAX_TX: int = int(os.getenv("SHELL_MAX_TX", "3"))
SHELL_MIN_CHAIN: int = 4
SHELL_MAX_CHAIN: int = int(os.getenv("SHELL_MAX_CHAIN", "8"))

# ── False-positive classification ──────────────────────────────────────────────
# MERCHANT: many distinct payers spread over more than a week.
MERCHANT_MIN_IN_DEGREE: int = int(os.getenv("MERCHANT_MIN_IN_DEGREE", "20"))
MERCHANT_MIN_SENDERS: int = int(os.getenv("MERCHANT_MIN_SENDERS", "15"))
MERCHANT_MIN_SPAN_HOURS: float = float(os.getenv("MERCHANT_MIN_SPAN_HOURS", "168"))

# PAYROLL: many near-identical payouts (coefficient of variation below threshold).
PAYROLL_MIN_OUT_DEGREE: int = int(os.getenv("PAYROLL_MIN_OUT_DEGREE", "10"))
PAYROLL_AMOUNT_CV_THRESHOLD: float = float(os.getenv("PAYROLL_AMOUNT_CV_THRESHOLD", "0.15"))

# ── Scoring ────────────────────────────────────────────────────────────────────
SCORE_CYCLE: float = 35.0
SCORE_FAN_IN: float = 25.0
SCORE_FAN_OUT: float = 25.0
SCORE_SHELL: float = 20.0
SCORE_MULTI_RING_BONUS: float = 15.0
SCORE_HIGH_VELOCITY: float = 15.0

# High velocity: more than this many transfers, all inside the window.
HIGH_VELOCITY_MIN_TX: int = int(os.getenv("HIGH_VELOCITY_MIN_TX", "5"))
HIGH_VELOCITY_WINDOW_HOURS: float = float(os.getenv("HIGH_VELOCITY_WINDOW_HOURS", "24"))

# ── Ring risk ──────────────────────────────────────────────────────────────────
# risk_score = min(100, base + RING_MEMBER_WEIGHT * member_count)
RING_BASE_CYCLE: float = 75.0
RING_CYCLE_LENGTH_WEIGHT: float = 3.0
RING_BASE_SMURFING: float = 65.0
RING_BASE_SHELL: float = 70.0
RING_MEMBER_WEIGHT: float = 2.0

# ── Search budget (cycle + shell search) ───────────────────────────────────────
SEARCH_MAX_STEPS: int = int(os.getenv("SEARCH_MAX_STEPS", "2000000"))
SEARCH_TIMEOUT_SECONDS: float = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "5.0"))
# When true, an exhausted budget aborts the analysis instead of returning
# the partial result.
SEARCH_BUDGET_STRICT: bool = _env_bool("SEARCH_BUDGET_STRICT", "false")

# ── Execution ──────────────────────────────────────────────────────────────────
PARALLEL_DETECTORS: bool = _env_bool("PARALLEL_DETECTORS", "false")

# ── HTTP ───────────────────────────────────────────────────────────────────────
CORS_ORIGINS: list = os.getenv("CORS_ORIGINS", "*").split(",")
