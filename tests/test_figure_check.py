"""Tests for vn_director.figure_check."""

from vn_director.figure_check import find_missing_features, format_report

CONTROLS = {
    "figure_table": [{
        "speaker": "Alice",
        "refer_table": {
            "smile": [{"motion": "tap", "expression": "happy"}],
            "sad": [{"motion": "cry", "expression": "tears"}, {"motion": "tap"}],
        },
    }],
}

MODEL = {
    "motions": {"tap": [], "idle": []},
    "expressions": [{"name": "happy", "file": "happy.exp.json"}],
}


def test_find_missing_features():
    motions, expressions = find_missing_features(CONTROLS, MODEL)
    assert motions == ["Alice - sad - cry"]
    assert expressions == ["Alice - sad - tears"]


def test_nothing_missing():
    model = {"motions": {"tap": [], "cry": []}, "expressions": [{"name": "happy"}, {"name": "tears"}]}
    assert find_missing_features(CONTROLS, model) == ([], [])


def test_empty_controls():
    assert find_missing_features({}, MODEL) == ([], [])


def test_format_report():
    report = format_report(["Alice - sad - cry"], [])
    lines = report.splitlines()
    assert lines[0] == "=== motions missing from model.json ==="
    assert "Alice - sad - cry" in lines
    assert lines[-1] == "all expressions found in model.json"
