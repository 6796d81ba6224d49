"""Tests for vn_director.mcp_server tool functions (called directly)."""

import pytest

from vn_director import mcp_server


@pytest.fixture(autouse=True)
def active_session(session):
    mcp_server.set_session(session)
    yield session


def test_get_session_returns_active(active_session):
    assert mcp_server.get_session() is active_session


def test_search_lore_by_text():
    results = mcp_server.search_lore(["Is the lighthouse open?"])
    assert results == [{
        "source": "town",
        "keys": ["lighthouse"],
        "content": "The lighthouse is dark.",
        "position": 4,
    }]


def test_search_lore_no_match():
    assert mcp_server.search_lore(["nothing relevant"]) == []


def test_resolve_figure():
    result = mcp_server.resolve_figure("Alice", "smile")
    assert result["speaker"] == "Alice"
    assert result["default_path"] == "alice/model.json"
    assert result["features"] == [{"motion": "tap", "expression": "happy", "path": ""}]


def test_resolve_figure_unknown_pose():
    assert mcp_server.resolve_figure("Alice", "angry")["features"] == []


def test_resolve_figure_unknown_speaker():
    assert mcp_server.resolve_figure("Nobody", "smile") is None
