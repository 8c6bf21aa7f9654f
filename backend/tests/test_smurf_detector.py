from muledetect.parser import empty_frame
from muledetect.smurf_detector import detect_smurfing

from conftest import frame


def _fan_in(n_senders, hub="HUB", spacing_hours=1.0, start=0.0):
    return [
        (f"FI_{i:02d}", f"S{i:02d}", hub, 100 + i, start + i * spacing_hours)
        for i in range(n_senders)
    ]


def _fan_out(n_receivers, hub="HUB", spacing_hours=1.0):
    return [
        (f"FO_{i:02d}", hub, f"R{i:02d}", 100 + i, i * spacing_hours)
        for i in range(n_receivers)
    ]


def test_fan_in_at_threshold():
    hits = detect_smurfing(frame(_fan_in(10)))
    assert len(hits) == 1
    hit = hits[0]
    assert hit["pattern"] == "fan_in"
    assert hit["hub"] == "HUB"
    assert hit["members"] == ["HUB"] + [f"S{i:02d}" for i in range(10)]
    assert hit["member_count"] == 11


def test_fan_in_below_threshold():
    assert detect_smurfing(frame(_fan_in(9))) == []


def test_repeat_senders_are_counted_once():
    rows = _fan_in(9) + [("DUP", "S00", "HUB", 5, 20)]
    assert detect_smurfing(frame(rows)) == []


def test_senders_outside_window_do_not_count():
    # 5 senders at the start, 5 more 100 hours later: no 72h window holds 10.
    rows = _fan_in(5) + [
        (f"LATE_{i}", f"L{i}", "HUB", 50, 100 + i) for i in range(5)
    ]
    assert detect_smurfing(frame(rows)) == []


def test_window_end_is_inclusive():
    # Ten senders, the last exactly 72 hours after the first.
    rows = _fan_in(9, spacing_hours=8.0) + [("EDGE", "S_EDGE", "HUB", 10, 72.0)]
    hits = detect_smurfing(frame(rows))
    assert len(hits) == 1
    assert "S_EDGE" in hits[0]["members"]


def test_first_qualifying_window_wins():
    # The window anchored at hour 0 already holds 10 senders, so the later
    # senders (outside that window) never join the hit.
    rows = _fan_in(10) + [
        (f"LATE_{i}", f"L{i}", "HUB", 50, 80 + i) for i in range(10)
    ]
    hits = detect_smurfing(frame(rows))
    assert len(hits) == 1
    assert not any(m.startswith("L") for m in hits[0]["members"])


def test_unsorted_input_is_windowed_by_timestamp():
    rows = list(reversed(_fan_in(10)))
    hits = detect_smurfing(frame(rows))
    assert len(hits) == 1
    assert hits[0]["members"][1:] == [f"S{i:02d}" for i in range(10)]


def test_fan_out():
    hits = detect_smurfing(frame(_fan_out(12)))
    assert [h["pattern"] for h in hits] == ["fan_out"]
    assert hits[0]["members"][0] == "HUB"
    assert len(hits[0]["members"]) == 13


def test_fan_in_hits_listed_before_fan_out():
    rows = _fan_out(10, hub="OUT") + _fan_in(10, hub="IN")
    hits = detect_smurfing(frame(rows))
    assert [(h["pattern"], h["hub"]) for h in hits] == [("fan_in", "IN"), ("fan_out", "OUT")]


def test_empty_batch():
    assert detect_smurfing(empty_frame()) == []


def test_hub_listed_once_when_it_pays_itself():
    rows = _fan_in(9) + [("SELF", "HUB", "HUB", 10, 5)]
    hits = detect_smurfing(frame(rows))
    assert len(hits) == 1
    assert hits[0]["members"].count("HUB") == 1
    assert hits[0]["member_count"] == 10
