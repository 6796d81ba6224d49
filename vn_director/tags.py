"""Directive extraction from model output.

The model annotates its text with delimiter-bounded directives, e.g. with
speakers in "{{{" / "}}}" and Live2D poses in "<<<" / ">>>":

    {{{Alice|Bob}}} <<<Alice:smile|Bob:angry>>> Hello there!

Delimiters come from user configuration, so spans are located with a literal
substring scan rather than a pattern compiled from the delimiter text.
"""

from __future__ import annotations

import re

from vn_director.config import AIConfig
from vn_director.models import DirectiveBundle, Live2DDirective, MatchRule

_WHITESPACE_RUN = re.compile(r"\s{2,}")


def extract_tag(text: str, front: str, back: str) -> str | None:
    """Return the text between the first `front` and the next `back`, or None."""
    if not front or not back:
        return None
    start = text.find(front)
    if start == -1:
        return None
    start += len(front)
    end = text.find(back, start)
    if end == -1:
        return None
    return text[start:end]


def _remove_spans(text: str, front: str, back: str) -> str:
    parts: list[str] = []
    pos = 0
    while True:
        start = text.find(front, pos)
        if start == -1:
            break
        end = text.find(back, start + len(front))
        if end == -1:
            break
        parts.append(text[pos:start])
        pos = end + len(back)
    parts.append(text[pos:])
    return "".join(parts)


def strip_tags(text: str, rules: list[MatchRule]) -> str:
    """Remove every directive span, then collapse runs of whitespace.

    Repeats until nothing changes, so removing one span can never leave a new
    span behind.
    """
    active = [r for r in rules if r.enabled]
    while True:
        cleaned = text
        for rule in active:
            cleaned = _remove_spans(cleaned, rule.front, rule.back)
        cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
        if cleaned == text:
            return cleaned
        text = cleaned


def _split_on_any(text: str, separators: set[str]) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    for ch in text:
        if ch in separators:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


class TagExtractor:
    def __init__(self, config: AIConfig) -> None:
        self.config = config

    def _span(self, text: str, rule: MatchRule) -> str | None:
        return extract_tag(text, rule.front, rule.back)

    def live2d(self, text: str) -> list[Live2DDirective]:
        span = self._span(text, self.config.live2d)
        if span is None:
            return []
        splitter = self.config.live2d.splitter
        items = span.split(splitter) if splitter else [span]
        indicators = {ch for ind in self.config.live2d_speaker_indicator for ch in ind}

        directives = []
        for item in items:
            if not item.strip():
                continue
            halves = _split_on_any(item, indicators)
            if len(halves) < 2:
                continue
            speaker, key = halves[0].strip(), halves[1].strip()
            if speaker and key:
                directives.append(Live2DDirective(speaker_key=speaker, live2d_key=key))
        return directives

    def speakers(self, text: str) -> list[str]:
        span = self._span(text, self.config.speaker)
        if span is None:
            return []
        splitter = self.config.speaker.splitter
        names = span.split(splitter) if splitter else [span]
        return [n.strip() for n in names if n.strip()]

    def background(self, text: str) -> str | None:
        return self._span(text, self.config.bg)

    def music(self, text: str) -> str | None:
        return self._span(text, self.config.bgm)

    def scene(self, text: str) -> str | None:
        return self._span(text, self.config.scene)

    def memory(self, text: str) -> str | None:
        return self._span(text, self.config.memory)

    def clean(self, text: str) -> str:
        return strip_tags(text, self.config.rules())

    def parse(self, text: str) -> DirectiveBundle:
        return DirectiveBundle(
            speakers=self.speakers(text),
            live2d=self.live2d(text),
            bg=self.background(text) or "",
            bgm=self.music(text) or "",
            scene=self.scene(text) or "",
            content=self.clean(text),
            raw_content=text,
            memory=self.memory(text) or "",
        )
