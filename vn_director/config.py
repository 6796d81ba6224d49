"""Session configuration: matching rules, layout bounds, prompts, model parameters.

Two card documents feed it:

  controls: delimiter rules per directive kind, paragraph/sentence splitters,
            screen layout bounds. Boolean flags arrive as the string "true".
  global:   prompts, model parameters, context window sizes, API settings.

Values absent from a document keep their defaults.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from pydantic import BaseModel, Field

from vn_director.models import MatchRule

logger = logging.getLogger(__name__)

DEFAULT_SENTENCE_TERMINATORS = [
    "。", "！", "？", ".", "!", "?", "\n", "；", ";", "）", ")", "】", "]", "》", ">",
]
DEFAULT_CLOSE_PUNCTUATION = [
    "”", "’", "》", "】", "）", "]", ")", ">", "\"", "'", "」",
]

# Directive kinds read from the controls document: (attribute, key prefix)
_RULE_PREFIXES = [
    ("live2d", "live2d"),
    ("speaker", "speaker"),
    ("bg", "bg"),
    ("bgm", "bgm"),
    ("scene", "scene"),
    ("memory", "memory"),
]


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _rule(front: str = "<<<", back: str = ">>>", splitter: str = "") -> MatchRule:
    return MatchRule(front=front, back=back, splitter=splitter)


class AIConfig(BaseModel):
    # ── matching rules ──
    live2d: MatchRule = Field(default_factory=lambda: _rule(splitter="|"))
    live2d_speaker_indicator: list[str] = Field(default_factory=lambda: [":", "："])
    speaker: MatchRule = Field(default_factory=lambda: _rule(splitter="|"))
    bg: MatchRule = Field(default_factory=_rule)
    bgm: MatchRule = Field(default_factory=_rule)
    scene: MatchRule = Field(default_factory=_rule)
    memory: MatchRule = Field(default_factory=lambda: _rule("[[[", "]]]"))

    # ── splitters ──
    paragraph_splitter: str = ">>>"
    sentence_terminators: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENTENCE_TERMINATORS)
    )
    close_punctuation: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CLOSE_PUNCTUATION)
    )
    page_length: int = 78

    # ── prompts ──
    front_prompt: str = ""
    back_prompt: str = ""
    format_prompt: str = ""

    # ── transcript ──
    user_name: str = "你"
    waiting_info: str = "waiting for AI response..."
    context_item_length: int = 10
    lore_search_length: int = 2

    # ── model ──
    temperature: float = 0.7
    max_tokens: int = 10000
    model: str = "anthropic/claude-3.7-sonnet"
    api_url: str = "https://openrouter.ai/api/v1"
    api_key: str = ""
    api_max_trying_limit: int = 1  # retries after the first empty response

    # ── layout ──
    screen_border_left: float = -1300
    screen_border_right: float = 1300
    standard_character_gap: float = 600
    position_change_factor: float = 1

    def rules(self) -> list[MatchRule]:
        """Every directive rule, in cleanup order."""
        return [self.speaker, self.live2d, self.bg, self.bgm, self.scene, self.memory]

    def apply_controls(self, raw: dict[str, Any]) -> None:
        """Load matching rules, splitters and layout bounds from the controls card."""
        for attr, prefix in _RULE_PREFIXES:
            rule: MatchRule = getattr(self, attr)
            if f"{prefix}_front_match" in raw:
                rule.front = raw[f"{prefix}_front_match"] or ""
            if f"{prefix}_back_match" in raw:
                rule.back = raw[f"{prefix}_back_match"] or ""
            if f"{prefix}_spliter" in raw:
                rule.splitter = raw[f"{prefix}_spliter"] or ""
            if f"{prefix}_use_strict" in raw:
                rule.strict = _flag(raw[f"{prefix}_use_strict"])
            if f"{prefix}_allow_repeat" in raw:
                rule.allow_repeat = _flag(raw[f"{prefix}_allow_repeat"])

        if "live2d_speaker_indicator" in raw:
            indicator = raw["live2d_speaker_indicator"]
            self.live2d_speaker_indicator = (
                list(indicator) if isinstance(indicator, (list, str)) else []
            )
        if "paragraph_spliter" in raw:
            self.paragraph_splitter = raw["paragraph_spliter"] or ""
        if "sentence_spliter" in raw:
            self.sentence_terminators = list(raw["sentence_spliter"] or [])
        if "close_punctuation" in raw:
            self.close_punctuation = list(raw["close_punctuation"] or [])
        if "page_length" in raw:
            self.page_length = int(raw["page_length"])

        for key in (
            "screen_border_left",
            "screen_border_right",
            "standard_character_gap",
            "position_change_factor",
        ):
            if raw.get(key) is not None:
                setattr(self, key, float(raw[key]))

    def apply_global(self, raw: dict[str, Any]) -> None:
        """Load prompts and model parameters from the global card."""
        mapping = {
            "front_prompt": "front_prompt",
            "back_prompt": "back_prompt",
            "format_prompt": "format_prompt",
            "model": "model",
            "temperature": "temperature",
            "max_tokens": "max_tokens",
            "user_name": "user_name",
            "waiting_info": "waiting_info",
            "context_item_length": "context_item_length",
            "lore_search_length": "lore_search_length",
            "API_max_trying_limit": "api_max_trying_limit",
            "API_key": "api_key",
            "API_url": "api_url",
        }
        for raw_key, attr in mapping.items():
            if raw.get(raw_key) is not None:
                setattr(self, attr, raw[raw_key])

        if not self.api_key:
            self.api_key = os.getenv("VN_API_KEY", "")
        if not self.api_key:
            logger.warning(
                "API key is not set; AI dialogue needs API_key in global.json "
                "or VN_API_KEY in the environment"
            )
