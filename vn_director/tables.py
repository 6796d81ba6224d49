"""Lookup tables loaded from the controls card.

  bg_table      [{"key": ..., "value": ...}, ...]
  bgm_table     [{"key": ..., "value": ...}, ...]
  scene_table   [{"<current scene>": {"<trigger>": "<target scene>", ...}}, ...]
  figure_table  [{"speaker": ..., "default_live2d_path": ...,
                  "refer_table": {"<key>": [{"motion", "expression", "path"?}]}}]

Every lookup runs in one of two modes:
  strict: the stored key equals the target key
  fuzzy:  the stored key is a substring of the target key

Rows are tried in insertion order; rows whose value is empty never match.
A miss returns None and logs a warning.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from vn_director.models import (
    KeyValueEntry,
    Live2DCharacter,
    Live2DFeature,
    Live2DTrigger,
    SceneTrigger,
)

logger = logging.getLogger(__name__)


def key_matches(stored: str, target: str, strict: bool) -> bool:
    """Apply the strict/fuzzy policy to one stored key."""
    if strict:
        return stored == target
    return stored in target


class KeyValueTable:
    """A flat key → value table (backgrounds, music)."""

    def __init__(self, name: str, field: str) -> None:
        self.name = name
        self.field = field  # controls-card field holding the rows
        self.rows: list[KeyValueEntry] = []

    def load(self, raw: dict[str, Any]) -> None:
        rows = raw.get(self.field)
        if not isinstance(rows, list):
            logger.warning("Missing %s in controls card; %s lookups disabled", self.field, self.name)
            return
        for row in rows:
            if isinstance(row, dict):
                self.add(row.get("key") or "", row.get("value") or "")
            else:
                logger.warning("Skipping malformed %s row %r", self.field, row)

    def add(self, key: str, value: str) -> None:
        try:
            entry = KeyValueEntry(key=key, value=value)
        except ValidationError as e:
            logger.warning("Skipping malformed %s row %r → %r (%s)", self.name, key, value, e)
            return
        if not key or not value:
            logger.warning("Empty %s key or value: %r → %r", self.name, key, value)
        self.rows.append(entry)

    def get(self, target: str | None, strict: bool = False) -> str | None:
        if target is None:
            return None
        for row in self.rows:
            if row.value and key_matches(row.key, target, strict):
                return row.value
        logger.warning("No %s value for key %r", self.name, target)
        return None


class SceneTable:
    """Scene transitions, keyed first by the current scene, then by trigger."""

    def __init__(self) -> None:
        self.scenes: list[SceneTrigger] = []

    def load(self, raw: dict[str, Any]) -> None:
        rows = raw.get("scene_table")
        if not isinstance(rows, list):
            logger.warning("Missing scene_table in controls card; scene lookups disabled")
            return
        for row in rows:
            self.add(row)

    def add(self, row: Any) -> None:
        if not isinstance(row, dict) or not row:
            logger.warning("Empty current-scene entry in scene_table: %r", row)
            return
        scene, triggers = next(iter(row.items()))
        if not isinstance(triggers, dict):
            logger.warning("Scene %r has no trigger map; skipped", scene)
            return
        entries = []
        for k, v in triggers.items():
            try:
                entries.append(KeyValueEntry(key=k, value=v or ""))
            except ValidationError as e:
                logger.warning("Skipping malformed trigger %r → %r of scene %r (%s)", k, v, scene, e)
        self.scenes.append(SceneTrigger(scene=scene, triggers=entries))

    def get(self, current_scene: str, target: str | None, strict: bool = False) -> str | None:
        if target is None:
            return None
        for entry in self.scenes:
            if not key_matches(entry.scene, current_scene, strict):
                continue
            for trigger in entry.triggers:
                if trigger.value and key_matches(trigger.key, target, strict):
                    return trigger.value
            logger.warning("No scene transition for key %r in scene %r", target, current_scene)
            return None
        logger.warning("Current scene %r not found in scene_table", current_scene)
        return None


class CharacterTable:
    """Speakers and their Live2D pose triggers."""

    def __init__(self) -> None:
        self.characters: list[Live2DCharacter] = []

    def load(self, raw: dict[str, Any]) -> None:
        rows = raw.get("figure_table")
        if not isinstance(rows, list):
            logger.warning("Missing figure_table in controls card; figure lookups disabled")
            return
        for row in rows:
            if isinstance(row, dict):
                self.add(row)
            else:
                logger.warning("Skipping malformed figure_table row %r", row)

    def _features(self, speaker: Any, key: str, items: Any) -> list[Live2DFeature]:
        if not isinstance(items, list):
            logger.warning("Trigger %r of %r is not a list; skipped", key, speaker)
            return []
        features = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed feature %r of %r/%r", item, speaker, key)
                continue
            try:
                features.append(Live2DFeature(
                    motion=item.get("motion") or "",
                    expression=item.get("expression") or "",
                    path=item.get("path") or "",
                ))
            except ValidationError as e:
                logger.warning("Skipping malformed feature %r of %r/%r (%s)", item, speaker, key, e)
        return features

    def add(self, row: dict[str, Any]) -> Live2DCharacter | None:
        speaker = row.get("speaker")
        refer_table = row.get("refer_table") or {}
        if not isinstance(refer_table, dict):
            logger.warning("refer_table of %r is not an object; ignored", speaker)
            refer_table = {}

        triggers = []
        for key, items in refer_table.items():
            features = self._features(speaker, key, items)
            if not features:
                logger.warning("Trigger %r of %r has no features; skipped", key, speaker)
                continue
            triggers.append(Live2DTrigger(key=key, features=features))

        try:
            chara = Live2DCharacter(
                speaker_id=speaker or "",
                default_path=row.get("default_live2d_path") or "",
                triggers=triggers,
            )
        except ValidationError as e:
            logger.warning("Skipping malformed figure_table row for %r (%s)", speaker, e)
            return None
        if not triggers:
            logger.warning("Character %r added with no pose triggers", chara.speaker_id)
        self.characters.append(chara)
        logger.debug("Character added: %s (%s)", chara.speaker_id, ",".join(t.key for t in triggers))
        return chara

    def get_character(self, speaker: Any, strict: bool = False) -> Live2DCharacter | None:
        if not isinstance(speaker, str):
            logger.error("Invalid speaker type %s", type(speaker).__name__)
            return None
        for chara in self.characters:
            if key_matches(chara.speaker_id, speaker, strict):
                return chara
        logger.warning("No character for speaker %r", speaker)
        return None

    def get_features(
        self, speaker: Any, live2d_key: str, strict: bool = False
    ) -> list[Live2DFeature] | None:
        """Return the feature list for a speaker's pose key, or None."""
        chara = self.get_character(speaker, strict)
        if chara is None:
            return None
        for trigger in chara.triggers:
            if key_matches(trigger.key, live2d_key, strict):
                return trigger.features
        logger.warning("No pose %r for speaker %r", live2d_key, speaker)
        return None


class LookupTables:
    """The four tables of one session."""

    def __init__(self) -> None:
        self.backgrounds = KeyValueTable("background", "bg_table")
        self.music = KeyValueTable("bgm", "bgm_table")
        self.scenes = SceneTable()
        self.characters = CharacterTable()

    def load(self, raw: dict[str, Any]) -> None:
        self.characters.load(raw)
        self.backgrounds.load(raw)
        self.music.load(raw)
        self.scenes.load(raw)
