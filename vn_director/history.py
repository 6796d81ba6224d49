"""Transcript → prompt messages.

The scene runtime logs every displayed line. One AI reply is usually shown as
several lines (one per page), all sharing a paragraph id and carrying the full
reply text; the compactor collapses them into a single assistant message.
"""

from __future__ import annotations

import logging
import uuid

from vn_director.config import AIConfig
from vn_director.models import PromptMessage, TranscriptEntry

logger = logging.getLogger(__name__)

DEBUG_SPEAKER = "debuggerInfo"


class HistoryCompactor:
    def __init__(self, config: AIConfig) -> None:
        self.config = config
        # Paragraph id of the most recently decoded AI reply. Kept across calls.
        self.last_decoded_id: str = str(uuid.uuid4())

    def _qualifies(self, entry: TranscriptEntry) -> bool:
        if entry.paragraph_id and entry.paragraph_id == self.last_decoded_id:
            return False
        if entry.shown_text == "":
            return False
        if entry.shown_text == self.config.waiting_info:
            return False
        if entry.speaker_name == DEBUG_SPEAKER:
            return False
        return True

    def _decode(self, entry: TranscriptEntry) -> PromptMessage:
        if entry.speaker_name == self.config.user_name:
            return PromptMessage(role="user", content=entry.shown_text)
        if entry.paragraph_id:
            self.last_decoded_id = entry.paragraph_id
            return PromptMessage(role="assistant", content=entry.full_ai_text)
        return PromptMessage(role="system", content=f"{entry.speaker_name}: {entry.shown_text}")

    def last_n(self, transcript: list[TranscriptEntry], n: int) -> list[PromptMessage]:
        """Return up to n messages from the newest qualifying entries, oldest first."""
        messages: list[PromptMessage] = []
        if n <= 0:
            return messages
        for entry in reversed(transcript):
            if not self._qualifies(entry):
                continue
            messages.append(self._decode(entry))
            if len(messages) >= n:
                break
        messages.reverse()
        logger.debug("history compacted: %d of %d transcript lines", len(messages), len(transcript))
        return messages
