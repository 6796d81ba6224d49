"""FastMCP server exposing lore search and figure lookup as MCP tools.

Tools:
  - search_lore(texts):              entries activated by the given texts
  - resolve_figure(speaker, key):    default path and pose options of a speaker

The session is replaced via set_session() for tests, or built from the cards
under DATA_DIR when run as __main__.

Usage:
    uv run python -m vn_director.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from vn_director.lore import activate_lore
from vn_director.models import PromptMessage
from vn_director.session import Session

mcp = FastMCP("vn-director")

_session = Session()


def set_session(session: Session) -> None:
    """Replace the active session (used in tests)."""
    global _session
    _session = session


def get_session() -> Session:
    return _session


@mcp.tool()
def search_lore(texts: list[str]) -> list[dict]:
    """Return the lore entries that the given texts would activate."""
    window = [PromptMessage(role="user", content=t) for t in texts]
    entries = activate_lore(_session.catalog.lore, window)
    return [
        {"source": e.source, "keys": e.keys, "content": e.content, "position": int(e.position)}
        for e in entries
    ]


@mcp.tool()
def resolve_figure(speaker: str, key: str) -> dict | None:
    """Look up a speaker's default figure path and the pose options for key."""
    characters = _session.tables.characters
    chara = characters.get_character(speaker)
    if chara is None:
        return None
    features = characters.get_features(speaker, key, _session.config.live2d.strict) or []
    return {
        "speaker": chara.speaker_id,
        "default_path": chara.default_path,
        "features": [f.model_dump() for f in features],
    }


if __name__ == "__main__":
    import os
    from pathlib import Path

    from vn_director.storage import Storage

    data_dir = Path(os.getenv("DATA_DIR", Path(__file__).parent.parent / "data"))
    set_session(Session.from_cards(Storage(data_dir).get_cards()))
    mcp.run()
