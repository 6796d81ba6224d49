"""Card documents → config, lookup tables, lore entries and character cards.

A card is a named JSON document. Its name and shape decide how it is read:

  "global"            → AIConfig.apply_global
  "controls"          → AIConfig.apply_controls + LookupTables.load
  {"data": {...}}     → one CharacterCard, plus data.character_book.entries as lore
  {"entries": {...}}  → a world book; every entry becomes a LoreEntry

Lore entries are normalised from both the world-book and the character-book
dialects. Entries missing keys or content after defaulting are dropped with a
warning, as are character cards missing a name or description.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import ValidationError

from vn_director.config import AIConfig
from vn_director.models import CharacterCard, LoreEntry, LorePosition, Role
from vn_director.tables import LookupTables

logger = logging.getLogger(__name__)

_POSITION_TOKENS = {
    "before_char": LorePosition.BEFORE_CHAR,
    "after_char": LorePosition.AFTER_CHAR,
}

_ROLE_CODES: dict[Any, Role] = {None: "system", 0: "system", 1: "user", 2: "assistant"}


def _first_present(*values: Any) -> Any:
    """Return the first value that is not None."""
    for v in values:
        if v is not None:
            return v
    return None


def resolve_enabled(raw: dict[str, Any]) -> bool:
    """Explicit `enabled` wins; otherwise invert `disable`; otherwise enabled."""
    if raw.get("enabled") is not None:
        return bool(raw["enabled"])
    if raw.get("disable") is not None:
        return not raw["disable"]
    return True


def resolve_position(value: Any) -> LorePosition:
    if value is None:
        return LorePosition.ANCHORED
    if isinstance(value, int) and not isinstance(value, bool):
        if value in (0, 1, 4):
            return LorePosition(value)
        logger.warning("Unsupported lore position %r; falling back to anchored", value)
        return LorePosition.ANCHORED
    if isinstance(value, str) and value in _POSITION_TOKENS:
        return _POSITION_TOKENS[value]
    logger.warning("Unsupported lore position %r; falling back to anchored", value)
    return LorePosition.ANCHORED


def resolve_role(value: Any) -> Role:
    if isinstance(value, bool) or value not in _ROLE_CODES:
        logger.warning("Unsupported lore role %r; falling back to system", value)
        return "system"
    return _ROLE_CODES[value]


class CardCatalog:
    """Everything a session learns from its card documents."""

    def __init__(self, config: AIConfig, tables: LookupTables) -> None:
        self.config = config
        self.tables = tables
        self.lore: list[LoreEntry] = []
        self.characters: list[CharacterCard] = []

    def parse_and_add(self, name: str, raw: Any) -> None:
        if not raw:
            logger.error("Empty card %r", name)
            return
        if not isinstance(raw, dict):
            logger.warning("Card %r is not a JSON object; skipped", name)
            return

        if name == "global":
            self.config.apply_global(raw)
        elif name == "controls":
            self.config.apply_controls(raw)
            self.tables.load(raw)
        elif isinstance(raw.get("data"), dict):
            data = raw["data"]
            self.add_character(name, data)
            book = data.get("character_book")
            if isinstance(book, dict) and book.get("entries"):
                for entry in book["entries"]:
                    self.add_lore(name, entry)
        else:
            entries = raw.get("entries")
            if not isinstance(entries, dict):
                logger.warning("World book %r has no entries map; skipped", name)
                return
            for entry in entries.values():
                self.add_lore(name, entry)
        logger.debug("Card parsed: %s (lore=%d, characters=%d)",
                     name, len(self.lore), len(self.characters))

    def add_lore(self, source: str, raw: Any) -> LoreEntry | None:
        if not isinstance(raw, dict):
            logger.warning("Lore entry in %r is not an object; dropped", source)
            return None
        ext = raw.get("extensions")
        if not isinstance(ext, dict):
            ext = {}

        keys = _first_present(raw.get("keys"), raw.get("key"))
        if isinstance(keys, str):
            keys = [keys]
        content = raw.get("content")
        if keys is None or content is None:
            logger.warning("Lore entry in %r is missing keys or content; dropped: %r", source, raw)
            return None

        try:
            entry = LoreEntry(
                uuid=str(uuid.uuid4()),
                id=_first_present(raw.get("id"), 0),
                content=content,
                keys=[k for k in keys if isinstance(k, str) and k],
                constant=bool(raw.get("constant", False)),
                enabled=resolve_enabled(raw),
                depth=int(_first_present(raw.get("depth"), ext.get("depth"), 4)),
                order=int(_first_present(raw.get("order"), raw.get("insertion_order"), 10)),
                position=resolve_position(raw.get("position")),
                exclude_recursion=bool(raw.get("excludeRecursion", False)),
                prevent_recursion=bool(raw.get("preventRecursion", False)),
                role=resolve_role(_first_present(raw.get("role"), ext.get("role"))),
                source=source,
            )
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Malformed lore entry in %r dropped (%s): %r", source, e, raw)
            return None
        self.lore.append(entry)
        return entry

    def add_character(self, source: str, data: dict[str, Any]) -> CharacterCard | None:
        ext = data.get("extensions")
        if not isinstance(ext, dict):
            ext = {}
        name = data.get("name")
        description = data.get("description")
        if name is None or description is None:
            logger.warning("Character card %r is missing name or description; dropped", source)
            return None
        try:
            card = CharacterCard(
                uuid=str(uuid.uuid4()),
                id=_first_present(data.get("id"), ext.get("id"), 0),
                name=name,
                description=description,
                source=source,
            )
        except ValidationError as e:
            logger.warning("Malformed character card %r dropped (%s)", source, e)
            return None
        self.characters.append(card)
        return card
