"""Per-session context.

One Session holds everything a dialogue needs: the config and lookup tables
built from the card documents, the lore/character catalog, the presentation
orchestrator and the transcript compactor. Components receive the session's
objects explicitly, so independent sessions (and tests) never share state.

`token` identifies the current timeline. Loading a save or resetting the
session replaces it; a turn that started under an older token is discarded
when its model response arrives.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from typing import Any

from vn_director.cards import CardCatalog
from vn_director.config import AIConfig
from vn_director.history import HistoryCompactor
from vn_director.orchestrator import DialogueOrchestrator
from vn_director.tables import LookupTables
from vn_director.tags import TagExtractor

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self.config = AIConfig()
        self.tables = LookupTables()
        self.catalog = CardCatalog(self.config, self.tables)
        self.tags = TagExtractor(self.config)
        self.history = HistoryCompactor(self.config)
        self.orchestrator = DialogueOrchestrator(self.config, rng=self.rng)
        self.token = str(uuid.uuid4())
        self.lock = asyncio.Lock()

    @classmethod
    def from_cards(cls, cards: dict[str, Any], rng: random.Random | None = None) -> Session:
        session = cls(rng=rng)
        session.load_cards(cards)
        return session

    def load_cards(self, cards: dict[str, Any]) -> None:
        for name, raw in cards.items():
            self.catalog.parse_and_add(name, raw)
        logger.info(
            "session loaded %d cards: %d lore entries, %d characters",
            len(cards), len(self.catalog.lore), len(self.catalog.characters),
        )

    def reload(self, cards: dict[str, Any]) -> None:
        """Rebuild config, tables and catalog from fresh card documents.

        Screen roster and last-emitted values survive; the token is renewed so
        a turn in flight against the old cards is discarded.
        """
        self.config = AIConfig()
        self.tables = LookupTables()
        self.catalog = CardCatalog(self.config, self.tables)
        self.tags.config = self.config
        self.history.config = self.config
        self.orchestrator.config = self.config
        self.load_cards(cards)
        self.invalidate()

    def invalidate(self) -> str:
        """Start a new timeline; pending turns become stale."""
        old = self.token
        self.token = str(uuid.uuid4())
        logger.info("session token renewed %s → %s", old, self.token)
        return self.token
