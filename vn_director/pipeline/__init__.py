"""Dialogue turn pipeline.

run_turn() drives one AI utterance: prompt assembly, the model call with
bounded retry, the stale-turn check and command synthesis per paragraph.
"""

from .turn import (  # noqa: F401
    build_messages,
    dispatch_paragraph,
    request_completion,
    run_turn,
    split_paragraphs,
)
