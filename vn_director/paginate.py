"""Long-text pagination for the dialogue box."""

from __future__ import annotations

from collections.abc import Iterable


def split_overflow_text(
    text: str,
    max_length: int,
    terminators: Iterable[str],
    closers: Iterable[str],
) -> list[str]:
    """Split text into pages of at most max_length characters.

    Each window [start, start + max_length) is cut after its last sentence
    terminator. A closing punctuation mark right after that terminator stays on
    the same page; when the closer falls outside the window, that terminator is
    skipped and the next one to the left is used instead. A window without a
    usable terminator is cut at max_length. Blank pages are dropped.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    terminators = set(terminators)
    closers = set(closers)
    pages: list[str] = []
    start = 0

    while start < len(text):
        end = min(start + max_length, len(text))
        split = end
        for i in range(end - 1, start - 1, -1):
            if text[i] not in terminators:
                continue
            if i + 1 < len(text) and text[i + 1] in closers:
                if i + 1 >= end:
                    continue
                split = i + 2
            else:
                split = i + 1
            break

        page = text[start:split]
        if page.strip():
            pages.append(page)
        start = split

    return pages
