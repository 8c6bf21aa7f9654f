"""Money-muling ring detection over batches of financial transfers."""
__version__ = "1.0.0"

from .pipeline import analyze_transactions  # noqa: E402,F401
