import os
import random
import shutil
from pathlib import Path

import pytest

TEST_DATA_DIR = Path("data-tests")

# vn_director.app builds a default app on import; keep it out of ./data
os.environ.setdefault("DATA_DIR", str(TEST_DATA_DIR.resolve()))

from vn_director.session import Session  # noqa: E402
from vn_director.storage import Storage  # noqa: E402


def sample_cards() -> dict:
    """A small but complete card set: global, controls, one world book, one character."""
    return {
        "global": {
            "front_prompt": "FRONT",
            "format_prompt": "FORMAT",
            "back_prompt": "BACK",
            "user_name": "Player",
            "context_item_length": 10,
            "lore_search_length": 2,
            "API_max_trying_limit": 1,
            "API_key": "test-key",
        },
        "controls": {
            "live2d_front_match": "<<<",
            "live2d_back_match": ">>>",
            "live2d_spliter": "|",
            "live2d_speaker_indicator": [":"],
            "live2d_use_strict": "false",
            "speaker_front_match": "{{{",
            "speaker_back_match": "}}}",
            "speaker_spliter": "|",
            "speaker_use_strict": "true",
            "bg_front_match": "((bg:",
            "bg_back_match": "))",
            "bgm_front_match": "((bgm:",
            "bgm_back_match": "))",
            "scene_front_match": "((scene:",
            "scene_back_match": "))",
            "memory_front_match": "[[[",
            "memory_back_match": "]]]",
            "paragraph_spliter": "\n\n",
            "screen_border_left": -1300,
            "screen_border_right": 1300,
            "standard_character_gap": 600,
            "position_change_factor": 1,
            "figure_table": [
                {
                    "speaker": "Alice",
                    "default_live2d_path": "alice/model.json",
                    "refer_table": {"smile": [{"motion": "tap", "expression": "happy"}]},
                },
                {
                    "speaker": "Bob",
                    "default_live2d_path": "bob/model.json",
                    "refer_table": {"angry": [{"motion": "shake", "expression": "mad"}]},
                },
            ],
            "bg_table": [{"key": "park", "value": "park.webp"}],
            "bgm_table": [{"key": "calm", "value": "calm.mp3"}],
            "scene_table": [{"start.txt": {"festival": "festival.txt"}}],
        },
        "town": {
            "entries": {
                "0": {"key": ["lighthouse"], "content": "The lighthouse is dark.", "depth": 1},
                "1": {"key": "harbor", "content": "Boats sleep in the harbor.", "position": 0},
            }
        },
        "alice": {
            "data": {
                "name": "Alice",
                "description": "{{char}} runs the café.",
            }
        },
    }


@pytest.fixture
def cards() -> dict:
    return sample_cards()


@pytest.fixture
def session(cards) -> Session:
    return Session.from_cards(cards, rng=random.Random(0))


@pytest.fixture
def storage(tmp_path) -> Storage:
    return Storage(tmp_path)


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    yield
