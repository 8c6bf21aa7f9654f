"""HTTP surface tests: upload a CSV, check the JSON contract."""
import csv
import io

import pytest
from fastapi.testclient import TestClient

from muledetect.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _upload(rows, name="transactions.csv"):
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"])
    writer.writerows(rows)
    return {"file": (name, buf.getvalue().encode(), "text/csv")}


def _scenario_rows():
    rows = [
        ["CYC_01", "ACC_A", "ACC_B", "500", "2024-01-01 10:00:00"],
        ["CYC_02", "ACC_B", "ACC_C", "490", "2024-01-01 11:00:00"],
        ["CYC_03", "ACC_C", "ACC_A", "480", "2024-01-01 12:00:00"],
    ]
    for i in range(12):
        rows.append([f"FI_{i:02d}", f"SENDER_{i:02d}", "HUB_IN", str(100 + 17 * i), "2024-01-02 10:00:00"])
    for i in range(12):
        rows.append([f"FO_{i:02d}", "HUB_OUT", f"RECEIVER_{i:02d}", str(200 + 31 * i), f"2024-01-03 {i:02d}:30:00"])
    return rows


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_analyze(client):
    resp = client.post("/analyze", files=_upload(_scenario_rows()))
    assert resp.status_code == 200
    assert "X-Request-ID" in resp.headers
    data = resp.json()

    for key in ("suspicious_accounts", "fraud_rings", "summary", "graph", "parse_stats"):
        assert key in data

    patterns = [r["pattern_type"] for r in data["fraud_rings"]]
    assert patterns == ["cycle", "fan_in", "fan_out"]
    assert [r["ring_id"] for r in data["fraud_rings"]] == ["RING_001", "RING_002", "RING_003"]

    flagged = {a["account_id"] for a in data["suspicious_accounts"]}
    assert {"ACC_A", "ACC_B", "ACC_C", "HUB_IN", "HUB_OUT"} <= flagged
    scores = [a["suspicion_score"] for a in data["suspicious_accounts"]]
    assert scores == sorted(scores, reverse=True)

    summary = data["summary"]
    assert summary["total_accounts_analyzed"] == 29
    assert summary["fraud_rings_detected"] == 3
    assert len(data["graph"]["edges"]) == 27
    assert data["parse_stats"]["valid_rows"] == 27


def test_report_download(client):
    resp = client.post("/analyze/report", files=_upload(_scenario_rows()))
    assert resp.status_code == 200
    assert "forensics_report.json" in resp.headers["content-disposition"]
    assert set(resp.json()) == {"suspicious_accounts", "fraud_rings", "summary"}


def test_rejects_non_csv(client):
    resp = client.post("/analyze", files=_upload(_scenario_rows(), name="data.txt"))
    assert resp.status_code == 400


def test_rejects_missing_columns(client):
    files = {"file": ("t.csv", b"transaction_id,sender_id\nT1,A\n", "text/csv")}
    resp = client.post("/analyze", files=files)
    assert resp.status_code == 422
    assert "Missing required columns" in resp.json()["detail"]
