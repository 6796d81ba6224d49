"""Lorebook activation.

Three phases decide which entries are injected into one prompt:

  1. constant:  every enabled constant entry
  2. keyword:   entries with a key occurring in one of the window messages
  3. recursive: entries with a key occurring in the content of an entry
                activated earlier, unless the earlier entry prevents recursion
                or the later one excludes it

Matching is a case-sensitive substring test. Each entry activates at most once
per call; the `processed` flag lives on a working copy and never touches the
catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vn_director.models import LoreEntry, PromptMessage

logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    entry: LoreEntry
    processed: bool = False


def _first_matching_key(entry: LoreEntry, text: str) -> str | None:
    for key in entry.keys:
        if key in text:
            return key
    return None


def _search(text: str, candidates: list[_Candidate], *, recursive: bool) -> list[_Candidate]:
    hits = []
    for c in candidates:
        e = c.entry
        if c.processed or not e.enabled:
            continue
        if recursive:
            if e.exclude_recursion:
                continue
        elif e.constant:
            continue
        key = _first_matching_key(e, text)
        if key is not None:
            c.processed = True
            hits.append(c)
            logger.debug("lore activated uuid=%s key=%r recursive=%s", e.uuid, key, recursive)
    return hits


def activate_lore(entries: list[LoreEntry], window: list[PromptMessage]) -> list[LoreEntry]:
    """Return the lore entries activated by a window of prompt messages."""
    candidates = [_Candidate(e) for e in entries]
    activated: list[_Candidate] = []

    for c in candidates:
        if c.entry.enabled and c.entry.constant:
            c.processed = True
            activated.append(c)

    for message in window:
        activated.extend(_search(message.content, candidates, recursive=False))

    stack = [c for c in activated if not c.entry.prevent_recursion]
    while stack:
        source = stack.pop()
        found = _search(source.entry.content, candidates, recursive=True)
        activated.extend(found)
        stack.extend(found)

    logger.debug("lore search done: %d of %d entries active", len(activated), len(entries))
    return [c.entry for c in activated]
