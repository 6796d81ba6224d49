"""Core domain models.

Every stage of the dialogue pipeline (tag parsing, lore activation, prompt
assembly, command synthesis) operates on these types. Pydantic is used for
validation and serialisation at every data boundary.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]

CommandType = Literal[
    "say",
    "changeBg",
    "bgm",
    "changeScene",
    "changeFigure",
    "setTransform",
]


class LorePosition(IntEnum):
    """Where an activated lore entry is injected into the prompt."""

    BEFORE_CHAR = 0
    AFTER_CHAR = 1
    ANCHORED = 4  # depth-from-end inside the history window


# ---------------------------------------------------------------------------
# Configuration rows
# ---------------------------------------------------------------------------

class MatchRule(BaseModel):
    """Delimiters and matching policy for one directive kind."""

    front: str = ""
    back: str = ""
    splitter: str = ""
    strict: bool = False
    allow_repeat: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.front) and bool(self.back)


class KeyValueEntry(BaseModel):
    key: str = ""
    value: str = ""


class Live2DFeature(BaseModel):
    motion: str = ""
    expression: str = ""
    path: str = ""  # overrides the character's default path when set


class Live2DTrigger(BaseModel):
    key: str
    features: list[Live2DFeature] = Field(default_factory=list)


class Live2DCharacter(BaseModel):
    speaker_id: str
    default_path: str = ""
    triggers: list[Live2DTrigger] = Field(default_factory=list)


class SceneTrigger(BaseModel):
    scene: str  # current-scene key
    triggers: list[KeyValueEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------

class LoreEntry(BaseModel):
    """A knowledge snippet injected into the prompt when activated."""

    uuid: str
    id: int | str = 0
    content: str
    keys: list[str]
    constant: bool = False
    enabled: bool = True
    depth: int = 4
    order: int = 10
    position: LorePosition = LorePosition.ANCHORED
    exclude_recursion: bool = False
    prevent_recursion: bool = False
    role: Role = "system"
    source: str = ""


class CharacterCard(BaseModel):
    uuid: str
    id: int | str = 0
    name: str
    description: str
    source: str = ""


# ---------------------------------------------------------------------------
# Prompt / model call
# ---------------------------------------------------------------------------

class PromptMessage(BaseModel):
    role: Role
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model: str
    messages: list[PromptMessage]
    temperature: float = 0.7
    max_tokens: int = Field(10000, alias="maxTokens")


# ---------------------------------------------------------------------------
# Parsed feedback
# ---------------------------------------------------------------------------

class Live2DDirective(BaseModel):
    speaker_key: str
    live2d_key: str


class DirectiveBundle(BaseModel):
    """Everything extracted from one paragraph of model output."""

    speakers: list[str] = Field(default_factory=list)
    live2d: list[Live2DDirective] = Field(default_factory=list)
    bg: str = ""
    bgm: str = ""
    scene: str = ""
    content: str = ""  # text with every directive span removed
    raw_content: str = ""
    memory: str = ""


# ---------------------------------------------------------------------------
# Screen roster and outbound commands
# ---------------------------------------------------------------------------

class Point(BaseModel):
    x: float = 0
    y: float = 0


class ScreenEntity(BaseModel):
    id: int
    path: str
    position: Point = Field(default_factory=Point)
    last_position: Point = Field(default_factory=Point)


ArgValue = Union[bool, int, float, str]


class CommandArg(BaseModel):
    key: str
    value: ArgValue


class Command(BaseModel):
    """One presentation command handed to the scene runtime."""

    command: CommandType
    content: str = ""
    args: list[CommandArg] = Field(default_factory=list)

    def arg(self, key: str) -> ArgValue | None:
        for a in self.args:
            if a.key == key:
                return a.value
        return None


# ---------------------------------------------------------------------------
# Transcript and turns
# ---------------------------------------------------------------------------

class TranscriptEntry(BaseModel):
    """A line already shown to the player, as logged by the scene runtime."""

    speaker_name: str = ""
    shown_text: str = ""
    paragraph_id: str | None = None
    full_ai_text: str = ""


class TurnRequest(BaseModel):
    """One AI utterance and the command channels it is allowed to drive."""

    id: str = ""
    prompt: str
    model: str | None = None
    for_dialogue: bool = True
    for_figure: bool = True
    for_background: bool = True
    for_music: bool = True
    for_scene: bool = True
    show_after_point: bool = False


class TurnResult(BaseModel):
    request_id: str
    response: str
    commands: list[Command] = Field(default_factory=list)
    advance: bool = True
