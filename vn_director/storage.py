"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database; reads and writes go through plain helper methods that
load and dump JSON.

Directory layout:

    {base}/
      cards/
        global.json       ← prompts and model parameters
        controls.json     ← matching rules, layout bounds, lookup tables
        {name}.json       ← world books and character cards
      transcript.json     ← lines shown so far, written by the scene runtime
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from vn_director.models import TranscriptEntry

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._cards_dir = base_path / "cards"
        self._cards_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _card_file(self, name: str) -> Path:
        return self._cards_dir / f"{name}.json"

    def _transcript_file(self) -> Path:
        return self._base / "transcript.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text(encoding="utf-8"))

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def list_cards(self) -> list[str]:
        return sorted(p.stem for p in self._cards_dir.glob("*.json"))

    def get_card(self, name: str) -> Any | None:
        path = self._card_file(name)
        if not path.exists():
            return None
        return self._read_json(path)

    def get_cards(self) -> dict[str, Any]:
        """Load every card; unreadable files are skipped with a warning."""
        cards: dict[str, Any] = {}
        for name in self.list_cards():
            try:
                cards[name] = self.get_card(name)
            except json.JSONDecodeError as e:
                logger.warning("Card %s.json is not valid JSON (%s); skipped", name, e)
        return cards

    def save_card(self, name: str, content: Any) -> None:
        self._write_json(self._card_file(name), content)

    def delete_card(self, name: str) -> bool:
        path = self._card_file(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Transcript (append-only)
    # ------------------------------------------------------------------

    def get_transcript(self) -> list[TranscriptEntry]:
        path = self._transcript_file()
        if not path.exists():
            return []
        return [TranscriptEntry.model_validate(e) for e in self._read_json(path)]

    def append_transcript(self, entries: list[TranscriptEntry]) -> None:
        existing = self.get_transcript()
        existing.extend(entries)
        self._write_json(self._transcript_file(), [e.model_dump() for e in existing])

    def clear_transcript(self) -> None:
        self._write_json(self._transcript_file(), [])
