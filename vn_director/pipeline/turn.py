"""Turn pipeline: runs one AI utterance end-to-end.

Turn flow:
  1. Capture the session token.
  2. Build the prompt: compacted transcript, activated lore, character cards.
  3. Call the model; blank responses are retried up to the configured limit.
  4. Discard the turn if the session token changed while waiting; the
     transcript compactor is rolled back to its state before step 2.
  5. Split the reply into paragraphs. For each paragraph:
       parse directives → resolve speakers, poses, background, music, scene
       → emit bgm, background, then per page figures + say, then scene.
  6. Return the command stream.
"""

from __future__ import annotations

import logging

from vn_director.llm import LLM
from vn_director.lore import activate_lore
from vn_director.models import (
    ChatRequest,
    Command,
    DirectiveBundle,
    Live2DFeature,
    PromptMessage,
    TranscriptEntry,
    TurnRequest,
    TurnResult,
)
from vn_director.paginate import split_overflow_text
from vn_director.prompts import assemble_prompt, character_messages
from vn_director.session import Session

logger = logging.getLogger(__name__)


async def request_completion(llm: LLM, request: ChatRequest, max_retries: int) -> str:
    """Call the model, retrying only while it answers with blank content.

    Transport failures (LLMError) propagate on the first occurrence. After
    1 + max_retries blank answers an empty string is returned.
    """
    attempts = 1 + max(max_retries, 0)
    for attempt in range(1, attempts + 1):
        text = await llm("dialogue", request)
        if text.strip():
            return text
        logger.warning("Empty model response (attempt %d/%d)", attempt, attempts)

    logger.error("Model returned empty content %d times; giving up on this turn", attempts)
    logger.error(
        "If this keeps happening, make sure the back prompt is not empty: some "
        "providers answer blank when the request has few or empty user messages"
    )
    return ""


def build_messages(
    session: Session, transcript: list[TranscriptEntry], utterance: str
) -> list[PromptMessage]:
    config = session.config
    history = session.history.last_n(transcript, config.context_item_length)
    window = history[-config.lore_search_length:] if config.lore_search_length > 0 else []
    lore = activate_lore(session.catalog.lore, window)
    return assemble_prompt(
        front_prompt=config.front_prompt,
        format_prompt=config.format_prompt,
        characters=character_messages(session.catalog.characters, config.user_name),
        history=history,
        lore=lore,
        utterance=utterance,
        back_prompt=config.back_prompt,
    )


def split_paragraphs(feedback: str, splitter: str) -> list[str]:
    """Split a reply on the paragraph splitter, keeping it on all but the last chunk."""
    if not splitter:
        return [feedback] if feedback.strip() else []
    chunks = feedback.split(splitter)
    paragraphs = []
    for i, chunk in enumerate(chunks):
        if not chunk.strip():
            continue
        paragraphs.append(chunk + splitter if i != len(chunks) - 1 else chunk)
    return paragraphs


def _speaker_line(session: Session, bundle: DirectiveBundle) -> str:
    config = session.config
    ids = []
    for name in bundle.speakers:
        chara = session.tables.characters.get_character(name, config.speaker.strict)
        if chara is not None:
            ids.append(chara.speaker_id)
    return config.speaker.splitter.join(ids)


def _figures(session: Session, bundle: DirectiveBundle) -> tuple[list[Live2DFeature], list[str]]:
    characters = session.tables.characters
    features: list[Live2DFeature] = []
    paths: list[str] = []
    for directive in bundle.live2d:
        chara = characters.get_character(directive.speaker_key)
        options = characters.get_features(
            directive.speaker_key, directive.live2d_key, session.config.live2d.strict
        )
        if chara is None or not chara.default_path or not options:
            continue
        features.append(session.rng.choice(options))
        paths.append(chara.default_path)
    return features, paths


def dispatch_paragraph(
    session: Session,
    request: TurnRequest,
    paragraph: str,
    full_text: str,
    current_scene: str,
) -> list[Command]:
    """Resolve one paragraph's directives and synthesize its commands."""
    config = session.config
    tables = session.tables
    orchestrator = session.orchestrator
    bundle = session.tags.parse(paragraph)

    speaker = _speaker_line(session, bundle)
    logger.info("speaker resolved: %r", speaker)

    features: list[Live2DFeature] = []
    paths: list[str] = []
    if request.for_figure:
        features, paths = _figures(session, bundle)
        logger.info("figures resolved: %s", paths)

    bg_url = (
        tables.backgrounds.get(bundle.bg or None, config.bg.strict)
        if request.for_background else None
    )
    bgm_url = (
        tables.music.get(bundle.bgm or None, config.bgm.strict)
        if request.for_music else None
    )
    scene_url = (
        tables.scenes.get(current_scene, bundle.scene or None, config.scene.strict)
        if request.for_scene else None
    )

    orchestrator.new_sentence()
    commands: list[Command] = []
    if request.for_music:
        commands.extend(orchestrator.dispatch_bgm(bgm_url))
    if request.for_background:
        commands.extend(orchestrator.dispatch_background(bg_url))

    pages = split_overflow_text(
        bundle.content, config.page_length, config.sentence_terminators, config.close_punctuation
    )
    for page in pages:
        if request.for_figure:
            commands.extend(orchestrator.dispatch_figures(features, paths))
        if request.for_dialogue:
            commands.extend(orchestrator.dispatch_say(speaker, full_text, page))

    if request.for_scene:
        commands.extend(orchestrator.dispatch_scene(scene_url))
    return commands


async def run_turn(
    *,
    session: Session,
    request: TurnRequest,
    transcript: list[TranscriptEntry],
    llm: LLM,
    current_scene: str = "",
) -> TurnResult | None:
    """Execute one AI utterance. Returns None when the turn went stale."""
    token = session.token
    config = session.config

    decoded_id = session.history.last_decoded_id
    messages = build_messages(session, transcript, request.prompt)
    chat = ChatRequest(
        model=request.model or config.model,
        messages=messages,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
    logger.debug("prompt built: %d messages", len(messages))

    feedback = await request_completion(llm, chat, config.api_max_trying_limit)

    if session.token != token:
        logger.warning("Session changed while waiting for the model (%s → %s); turn discarded",
                       token, session.token)
        session.history.last_decoded_id = decoded_id
        return None

    orchestrator = session.orchestrator
    orchestrator.new_paragraph()
    commands: list[Command] = []
    for paragraph in split_paragraphs(feedback, config.paragraph_splitter):
        commands.extend(dispatch_paragraph(session, request, paragraph, feedback, current_scene))

    logger.info("turn %s done: %d commands", request.id, len(commands))
    return TurnResult(
        request_id=request.id,
        response=feedback,
        commands=commands,
        advance=not request.show_after_point,
    )
