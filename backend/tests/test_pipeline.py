import time
from datetime import datetime, timedelta

import pytest

from muledetect import pipeline
from muledetect.budget import AnalysisTimeout, SearchBudget
from muledetect.models import Transfer
from muledetect.parser import empty_frame
from muledetect.pipeline import analyze_transactions

from conftest import chain_rows, frame


def _transfers(rows):
    base = datetime(2024, 1, 1)
    return [
        Transfer(
            transaction_id=tx, sender_id=s, receiver_id=r,
            amount=amt, timestamp=base + timedelta(hours=h),
        )
        for tx, s, r, amt, h in rows
    ]


def _ring_members(result):
    return {m for ring in result.fraud_rings for m in ring.member_accounts}


@pytest.mark.parametrize("batch", [[], empty_frame()], ids=["records", "frame"])
def test_empty_batch(batch):
    result = analyze_transactions(batch)
    assert result.summary.total_accounts_analyzed == 0
    assert result.summary.suspicious_accounts_flagged == 0
    assert result.summary.fraud_rings_detected == 0
    assert result.suspicious_accounts == []
    assert result.fraud_rings == []
    assert result.graph.nodes == []
    assert result.graph.edges == []


def test_three_account_cycle_end_to_end():
    result = analyze_transactions(_transfers(chain_rows(["A", "B", "C", "A"])))

    assert len(result.fraud_rings) == 1
    ring = result.fraud_rings[0]
    assert ring.pattern_type == "cycle"
    assert sorted(ring.member_accounts) == ["A", "B", "C"]
    assert ring.risk_score == 90.0

    flagged = {a.account_id: a for a in result.suspicious_accounts}
    assert set(flagged) == {"A", "B", "C"}
    for account in flagged.values():
        assert "cycle_length_3" in account.detected_patterns
        assert account.suspicion_score >= 35
        assert account.ring_id == ring.ring_id

    assert result.summary.total_accounts_analyzed == 3
    assert result.summary.suspicious_accounts_flagged == 3
    assert result.summary.fraud_rings_detected == 1
    assert result.summary.truncated_detectors == []


def test_graph_output_is_one_edge_per_transfer():
    df = frame(chain_rows(["A", "B", "C", "A"]) + [("T9", "A", "B", 40, 10), ("T10", "X", "Y", 5, 11)])
    result = analyze_transactions(df)

    assert [e.transaction_id for e in result.graph.edges] == ["T0", "T1", "T2", "T9", "T10"]
    nodes = {n.id: n for n in result.graph.nodes}
    assert nodes["A"].suspicious and nodes["A"].ring_ids == ["RING_001"]
    assert nodes["A"].out_degree == 2
    assert nodes["A"].total_amount_out == 140.0
    assert not nodes["X"].suspicious
    assert nodes["X"].suspicion_score == 0.0
    assert nodes["X"].ring_ids == []
    assert result.summary.network_statistics.total_edges == 4


def test_multi_ring_account_ranks_first():
    df = frame(
        chain_rows(["A", "B", "C", "A"], prefix="X")
        + chain_rows(["A", "D", "E", "A"], prefix="Y", start_hour=10)
    )
    result = analyze_transactions(df)
    assert [r.ring_id for r in result.fraud_rings] == ["RING_001", "RING_002"]
    top = result.suspicious_accounts[0]
    assert top.account_id == "A"
    assert top.suspicion_score == 50.0
    assert top.ring_id == "RING_001"


def test_payroll_account_excluded_from_fan_out_ring():
    rows = [(f"PAY{i}", "CORP", f"EMP{i}", 3000, i) for i in range(12)]
    result = analyze_transactions(frame(rows))

    assert len(result.fraud_rings) == 1
    assert result.fraud_rings[0].pattern_type == "fan_out"
    assert "CORP" not in _ring_members(result)
    assert "CORP" not in {a.account_id for a in result.suspicious_accounts}


def test_merchant_account_excluded_from_fan_in_ring():
    rows = [(f"BUY{i}", f"C{i:02d}", "SHOP", 20 + 13 * i, i) for i in range(12)]
    rows += [(f"BUY{i}", f"C{i:02d}", "SHOP", 20 + 13 * i, 24 * (i - 10)) for i in range(12, 20)]
    result = analyze_transactions(frame(rows))

    assert [r.pattern_type for r in result.fraud_rings] == ["fan_in"]
    assert "SHOP" not in _ring_members(result)
    nodes = {n.id: n for n in result.graph.nodes}
    assert not nodes["SHOP"].suspicious


def test_parallel_run_matches_sequential():
    df = frame(
        chain_rows(["A", "B", "C", "A"])
        + [(f"FI{i}", f"S{i}", "HUB", 100, i) for i in range(10)]
    )
    seq = analyze_transactions(df, parallel=False).model_dump(exclude={"summary": {"processing_time_seconds"}})
    par = analyze_transactions(df, parallel=True).model_dump(exclude={"summary": {"processing_time_seconds"}})
    assert seq == par


def test_exhausted_budget_returns_partial_result(monkeypatch, triangle):
    monkeypatch.setattr(pipeline, "SearchBudget", lambda name: SearchBudget(name, max_steps=0))
    result = analyze_transactions(triangle, strict=False)
    assert result.summary.truncated_detectors == ["cycle"]
    assert result.fraud_rings == []


def test_exhausted_budget_raises_in_strict_mode(monkeypatch, triangle):
    monkeypatch.setattr(pipeline, "SearchBudget", lambda name: SearchBudget(name, max_steps=0))
    with pytest.raises(AnalysisTimeout) as excinfo:
        analyze_transactions(triangle, strict=True)
    assert excinfo.value.detectors == ["cycle"]


def _fan_of_shell_chains(n):
    rows = []
    for i in range(n):
        rows += [
            (f"A{i}", "O", f"S{i}", 100 + i, 0),
            (f"B{i}", f"S{i}", f"T{i}", 90 + i, 1),
            (f"C{i}", f"T{i}", f"U{i}", 80 + i, 2),
        ]
    return frame(rows)


def test_slow_cycle_search_does_not_eat_shell_deadline(monkeypatch):
    real_detect_cycles = pipeline.detect_cycles

    def slow_detect_cycles(graph, budget):
        time.sleep(0.6)
        return real_detect_cycles(graph, budget)

    monkeypatch.setattr(pipeline, "SearchBudget", lambda name: SearchBudget(name, timeout_seconds=0.5))
    monkeypatch.setattr(pipeline, "detect_cycles", slow_detect_cycles)

    result = analyze_transactions(_fan_of_shell_chains(500), parallel=False, strict=False)
    shells = [r for r in result.fraud_rings if r.pattern_type == "shell_network"]
    assert len(shells) == 500
    assert result.summary.truncated_detectors == []
