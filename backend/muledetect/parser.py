"""
parser.py – CSV ingestion.

Every data row is validated into a models.Transfer, the same model library
callers pass to analyze_transactions(), so both entry points share one set of
field rules (non-empty ids, amount >= 0, parseable timestamp).  On top of the
model, ingestion drops self-transfers and repeated transaction ids and caps the
batch at MAX_ROWS.  Rows keep their upload order; detectors rely on it to
break ties.
"""
from __future__ import annotations

import io
import logging
from collections import Counter
from typing import Dict, Iterable, List, Tuple

import pandas as pd
from pydantic import ValidationError

from .config import MAX_ROWS
from .models import Transfer

log = logging.getLogger(__name__)

TRANSFER_COLUMNS = ["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"]

# Rejection reason → (ParseStats counter, warning text)
_REASONS: Dict[str, Tuple[str | None, str]] = {
    "empty":      (None, "rows with empty fields"),
    "amount":     (None, "rows with non-numeric amount"),
    "negative":   ("negative_amounts", "rows with negative amount"),
    "timestamp":  (None, "rows with unparseable timestamp"),
    "self":       ("self_transactions", "self-transactions"),
    "duplicate":  ("duplicate_tx_ids", "duplicate transaction_id rows"),
}


def empty_frame() -> pd.DataFrame:
    """A zero-row transfer frame with the canonical column dtypes."""
    return pd.DataFrame({
        "transaction_id": pd.Series(dtype=str),
        "sender_id":      pd.Series(dtype=str),
        "receiver_id":    pd.Series(dtype=str),
        "amount":         pd.Series(dtype=float),
        "timestamp":      pd.Series(dtype="datetime64[ns]"),
    })


def frame_from_transfers(transfers: Iterable[Transfer]) -> pd.DataFrame:
    """Convert typed Transfer records into the canonical transfer frame."""
    records = [t.model_dump() for t in transfers]
    if not records:
        return empty_frame()
    df = pd.DataFrame.from_records(records, columns=TRANSFER_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


def _read_rows(file_bytes: bytes) -> pd.DataFrame:
    try:
        text = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = file_bytes.decode("latin-1")
    # '#' lines annotate sample files; they are not data
    body = "\n".join(
        line for line in text.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    )
    try:
        df = pd.read_csv(io.StringIO(body), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValueError(f"CSV parse error: {exc}") from exc
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    return df


def _rejection(row: dict, exc: ValidationError) -> str:
    """Name the first reason a row failed Transfer validation."""
    if any(not row[col] for col in TRANSFER_COLUMNS):
        return "empty"
    err = exc.errors()[0]
    field = err["loc"][0] if err["loc"] else ""
    if field == "amount":
        return "negative" if err["type"] == "greater_than_equal" else "amount"
    if field == "timestamp":
        return "timestamp"
    return "empty"


def parse_csv(file_bytes: bytes) -> Tuple[pd.DataFrame, dict]:
    """
    Parse CSV bytes into a validated transfer frame.

    Returns
    -------
    df    : pd.DataFrame  – canonical transfer frame, upload order
    stats : dict          – counters and warnings (see models.ParseStats)

    Raises
    ------
    ValueError when the CSV cannot be read, lacks a required column, or has no
    valid rows left.
    """
    df = _read_rows(file_bytes)
    log.info("CSV loaded: %d raw rows", len(df))
    if df.empty:
        raise ValueError("CSV file is empty – no rows found.")

    missing = sorted(set(TRANSFER_COLUMNS) - set(df.columns))
    if missing:
        raise ValueError(
            f"Missing required columns: {missing}. Found: {sorted(df.columns.tolist())}"
        )

    rejected: Counter = Counter()
    seen_ids: set = set()
    transfers: List[Transfer] = []
    for raw in df[TRANSFER_COLUMNS].to_dict("records"):
        row = {col: value.strip() for col, value in raw.items()}
        try:
            tx = Transfer(**row)
        except ValidationError as exc:
            rejected[_rejection(row, exc)] += 1
            continue
        if tx.sender_id == tx.receiver_id:
            rejected["self"] += 1
        elif tx.transaction_id in seen_ids:
            rejected["duplicate"] += 1
        else:
            seen_ids.add(tx.transaction_id)
            transfers.append(tx)

    stats: dict = {
        "total_rows": len(df),
        "valid_rows": 0,
        "dropped_rows": 0,
        "duplicate_tx_ids": 0,
        "self_transactions": 0,
        "negative_amounts": 0,
        "warnings": [],
    }
    for reason, (counter, text) in _REASONS.items():
        if rejected[reason]:
            stats["warnings"].append(f"Dropped {rejected[reason]} {text}.")
            if counter:
                stats[counter] = rejected[reason]

    if len(transfers) > MAX_ROWS:
        stats["warnings"].append(f"Dataset truncated from {len(transfers)} to {MAX_ROWS} rows.")
        transfers = transfers[:MAX_ROWS]

    if not transfers:
        raise ValueError(
            "No valid rows remain after validation. "
            f"Issues: {'; '.join(stats['warnings']) or 'unknown'}"
        )

    stats["valid_rows"] = len(transfers)
    stats["dropped_rows"] = stats["total_rows"] - len(transfers)
    log.info("Parse complete: %d valid / %d total rows", stats["valid_rows"], stats["total_rows"])
    return frame_from_transfers(transfers), stats
