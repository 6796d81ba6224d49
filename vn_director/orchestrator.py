"""Scene-command synthesis across dialogue turns.

The orchestrator owns all cross-turn presentation state:

  roster        characters currently on screen, each with a stable integer id
  last values   the background, music and scene most recently emitted
  last speaker  reused when a line carries no speaker directive
  reply ids     one UUID per AI reply (paragraph) and per dispatched sentence

Every dispatch method returns the commands it produced; callers concatenate
them into the turn's command stream. Nothing here touches the scene runtime.
"""

from __future__ import annotations

import json
import logging
import random
import uuid

from vn_director.config import AIConfig
from vn_director.models import Command, CommandArg, Live2DFeature, Point, ScreenEntity

logger = logging.getLogger(__name__)

MAX_SCREEN_ID = 1000


class RosterOverflowError(RuntimeError):
    """Raised when no screen id below MAX_SCREEN_ID is free."""


def transform_json(position: Point) -> str:
    return json.dumps({"position": {"x": position.x, "y": position.y}}, separators=(",", ":"))


def layout_positions(count: int, left: float, right: float, gap: float) -> list[Point]:
    """Evenly spaced, centred x positions between the screen borders."""
    if count <= 0:
        return []
    width = right - left
    if count == 1:
        return [Point(x=left + width / 2, y=0)]
    actual_gap = min(gap, width / (count - 1))
    start = left + (width - (count - 1) * actual_gap) / 2
    return [Point(x=start + i * actual_gap, y=0) for i in range(count)]


class DialogueOrchestrator:
    def __init__(self, config: AIConfig, rng: random.Random | None = None) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.roster: list[ScreenEntity] = []
        self.last_bg: str | None = None
        self.last_bgm: str | None = None
        self.last_scene: str | None = None
        self.last_speaker = ""
        self.sentence_id = ""
        self.paragraph_id = ""

    def new_paragraph(self) -> None:
        self.paragraph_id = str(uuid.uuid4())

    def new_sentence(self) -> None:
        self.sentence_id = str(uuid.uuid4())

    # ------------------------------------------------------------------
    # Background / music / scene
    # ------------------------------------------------------------------

    def _suppressed(self, value: str, last: str | None, allow_repeat: bool) -> bool:
        return not allow_repeat and value == last

    def dispatch_background(self, url: str | None) -> list[Command]:
        if url is None:
            logger.warning("No background resolved; nothing dispatched")
            return []
        if self._suppressed(url, self.last_bg, self.config.bg.allow_repeat):
            return []
        self.last_bg = url
        return [Command(command="changeBg", content=url, args=[CommandArg(key="next", value=True)])]

    def dispatch_bgm(self, url: str | None) -> list[Command]:
        if url is None:
            logger.warning("No bgm resolved; nothing dispatched")
            return []
        if self._suppressed(url, self.last_bgm, self.config.bgm.allow_repeat):
            return []
        self.last_bgm = url
        return [Command(command="bgm", content=url, args=[CommandArg(key="next", value=True)])]

    def dispatch_scene(self, url: str | None) -> list[Command]:
        if url is None:
            logger.warning("No scene resolved; nothing dispatched")
            return []
        if self._suppressed(url, self.last_scene, self.config.scene.allow_repeat):
            return []
        self.last_scene = url
        return [Command(command="changeScene", content=url)]

    # ------------------------------------------------------------------
    # Dialogue text
    # ------------------------------------------------------------------

    def dispatch_say(self, speaker: str, full_text: str, content: str) -> list[Command]:
        if not speaker.strip():
            speaker = self.last_speaker
        args = []
        if speaker:
            args.append(CommandArg(key="speaker", value=speaker))
        args.extend([
            CommandArg(key="AiFullShowText", value=full_text),
            CommandArg(key="AiShowTextUUIDForSentence", value=self.sentence_id),
            CommandArg(key="AiShowTextUUIDForParagraph", value=self.paragraph_id),
        ])
        self.last_speaker = speaker
        return [Command(command="say", content=content, args=args)]

    # ------------------------------------------------------------------
    # Figures
    # ------------------------------------------------------------------

    def find_entity(self, path: str) -> ScreenEntity | None:
        for entity in self.roster:
            if entity.path == path:
                return entity
        return None

    def next_free_id(self) -> int:
        used = {e.id for e in self.roster}
        for candidate in range(MAX_SCREEN_ID):
            if candidate not in used:
                return candidate
        raise RosterOverflowError(f"All {MAX_SCREEN_ID} screen ids are in use")

    def remove_absent(self, paths: list[str]) -> list[Command]:
        commands = []
        kept = []
        for entity in self.roster:
            if entity.path in paths:
                kept.append(entity)
            else:
                commands.append(Command(
                    command="changeFigure",
                    content="",
                    args=[CommandArg(key="id", value=entity.id), CommandArg(key="next", value=True)],
                ))
        self.roster = kept
        return commands

    def add_new(self, paths: list[str]) -> None:
        for path in paths:
            if self.find_entity(path) is not None:
                continue
            entity = ScreenEntity(id=self.next_free_id(), path=path)
            self.roster.insert(self.rng.randint(0, len(self.roster)), entity)

    def relayout(self) -> None:
        positions = layout_positions(
            len(self.roster),
            self.config.screen_border_left,
            self.config.screen_border_right,
            self.config.standard_character_gap,
        )
        for entity, position in zip(self.roster, positions):
            entity.position = position

    def dispatch_figures(
        self, features: list[Live2DFeature], default_paths: list[str]
    ) -> list[Command]:
        """Sync the roster with this turn's characters and pose each of them."""
        if not features or not default_paths:
            logger.warning("No figure directives; nothing dispatched")
            return []

        commands = self.remove_absent(default_paths)
        self.add_new(default_paths)
        self.relayout()

        for feature, path in zip(features, default_paths):
            entity = self.find_entity(path)
            if entity is None:
                raise RuntimeError(f"Screen entity for {path!r} vanished after roster sync")
            commands.extend(self._pose(entity, feature))
        return commands

    def _pose(self, entity: ScreenEntity, feature: Live2DFeature) -> list[Command]:
        position = entity.position.model_copy()
        commands = [Command(
            command="changeFigure",
            content=feature.path or entity.path,
            args=[
                CommandArg(key="motion", value=feature.motion),
                CommandArg(key="expression", value=feature.expression),
                CommandArg(key="next", value=True),
                CommandArg(key="transform", value=transform_json(position)),
                CommandArg(key="id", value=entity.id),
            ],
        )]
        if entity.last_position.x != position.x:
            duration = self.config.position_change_factor * abs(entity.last_position.x - position.x)
            commands.append(Command(
                command="setTransform",
                content=transform_json(position),
                args=[
                    CommandArg(key="target", value=entity.id),
                    CommandArg(key="next", value=True),
                    CommandArg(key="duration", value=duration),
                ],
            ))
            entity.last_position = position
        return commands
