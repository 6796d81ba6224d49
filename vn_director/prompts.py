"""Prompt assembly for the chat-completions request.

Final message order:

  system     front prompt
  system     format prompt
  ...        lore positioned before the character block
  system     one message per character card
  ...        lore positioned after the character block
  ...        history, with anchored lore inserted `depth` messages from the end
  user       the utterance prompt of this turn
  user       back prompt

Character descriptions are Handlebars templates; `{{char}}` renders as the
card's name and `{{user}}` as the configured player name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pybars

from vn_director.models import CharacterCard, LoreEntry, LorePosition, PromptMessage

logger = logging.getLogger(__name__)

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def character_messages(cards: list[CharacterCard], user_name: str = "") -> list[PromptMessage]:
    messages = []
    for card in cards:
        try:
            content = render_prompt(card.description, {"char": card.name, "user": user_name})
        except PromptError as e:
            logger.warning("Description of %r is not a valid template (%s); sent as-is", card.name, e)
            content = card.description
        messages.append(PromptMessage(role="system", content=content))
    return messages


def sort_lore(entries: list[LoreEntry]) -> list[LoreEntry]:
    """Order by position ascending, depth descending, order ascending."""
    return sorted(entries, key=lambda e: (int(e.position), -e.depth, e.order))


def insert_from_back(messages: list, item: Any, index_from_back: int) -> None:
    """Insert item so that exactly index_from_back elements follow it."""
    index = len(messages) - index_from_back
    if index < 0 or index > len(messages):
        raise IndexError(
            f"insert position {index_from_back} from back is outside a list of {len(messages)}"
        )
    messages.insert(index, item)


def _lore_message(entry: LoreEntry) -> PromptMessage:
    return PromptMessage(role=entry.role, content=entry.content)


def assemble_prompt(
    *,
    front_prompt: str,
    format_prompt: str,
    characters: list[PromptMessage],
    history: list[PromptMessage],
    lore: list[LoreEntry],
    utterance: str,
    back_prompt: str,
) -> list[PromptMessage]:
    """Build the full message list for one model request."""
    ordered = sort_lore(lore)

    before = [_lore_message(e) for e in ordered if e.position == LorePosition.BEFORE_CHAR]
    after = [_lore_message(e) for e in ordered if e.position == LorePosition.AFTER_CHAR]

    window = list(history)
    for entry in ordered:
        if entry.position != LorePosition.ANCHORED:
            continue
        depth = min(max(entry.depth, 0), len(window))
        insert_from_back(window, _lore_message(entry), depth)

    return [
        PromptMessage(role="system", content=front_prompt),
        PromptMessage(role="system", content=format_prompt),
        *before,
        *characters,
        *after,
        *window,
        PromptMessage(role="user", content=utterance),
        PromptMessage(role="user", content=back_prompt),
    ]
