"""Shared transfer-frame builders for the detector tests."""
import pandas as pd
import pytest

from muledetect.parser import TRANSFER_COLUMNS

BASE_TS = pd.Timestamp("2024-01-01 00:00:00")


def at(hours: float) -> pd.Timestamp:
    return BASE_TS + pd.Timedelta(hours=hours)


def frame(rows) -> pd.DataFrame:
    """rows: (transaction_id, sender_id, receiver_id, amount, hours-after-base)"""
    df = pd.DataFrame(
        [(tx, s, r, float(amt), at(h)) for tx, s, r, amt, h in rows],
        columns=TRANSFER_COLUMNS,
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


def chain_rows(accounts, amount=100.0, start_hour=0, prefix="T"):
    """Transfers a[0]→a[1]→…→a[-1], one hour apart."""
    return [
        (f"{prefix}{i}", s, r, amount, start_hour + i)
        for i, (s, r) in enumerate(zip(accounts, accounts[1:]))
    ]


@pytest.fixture
def triangle() -> pd.DataFrame:
    return frame(chain_rows(["A", "B", "C", "A"]))
