"""Create demo cards for development/testing."""

from vn_director.storage import Storage

DEMO_CARDS = {
    "global": {
        "front_prompt": "You are directing a visual novel set in a seaside town.",
        "format_prompt": (
            "Start every line with <<<speaker:pose>>>. Use [[[...]]] for anything "
            "the characters should remember."
        ),
        "back_prompt": "Continue the scene.",
        "user_name": "You",
        "context_item_length": 10,
        "lore_search_length": 2,
        "API_max_trying_limit": 2,
    },
    "controls": {
        "live2d_front_match": "<<<",
        "live2d_back_match": ">>>",
        "live2d_spliter": "|",
        "live2d_speaker_indicator": [":", "："],
        "live2d_use_strict": "false",
        "speaker_front_match": "{{{",
        "speaker_back_match": "}}}",
        "speaker_spliter": "|",
        "speaker_use_strict": "false",
        "bg_front_match": "((bg:",
        "bg_back_match": "))",
        "bg_use_strict": "false",
        "bg_allow_repeat": "false",
        "bgm_front_match": "((bgm:",
        "bgm_back_match": "))",
        "bgm_use_strict": "false",
        "bgm_allow_repeat": "false",
        "scene_front_match": "((scene:",
        "scene_back_match": "))",
        "scene_use_strict": "false",
        "scene_allow_repeat": "false",
        "memory_front_match": "[[[",
        "memory_back_match": "]]]",
        "paragraph_spliter": "\n\n",
        "screen_border_left": -1300,
        "screen_border_right": 1300,
        "standard_character_gap": 600,
        "position_change_factor": 1,
        "figure_table": [
            {
                "speaker": "Mio",
                "default_live2d_path": "mio/model.json",
                "refer_table": {
                    "smile": [{"motion": "tap_body", "expression": "f01"}],
                    "angry": [{"motion": "shake", "expression": "f03"}],
                },
            },
            {
                "speaker": "Ren",
                "default_live2d_path": "ren/model.json",
                "refer_table": {
                    "calm": [{"motion": "idle", "expression": "f00"}],
                    "surprised": [
                        {"motion": "flick_head", "expression": "f02"},
                        {"motion": "pinch_in", "expression": "f02"},
                    ],
                },
            },
        ],
        "bg_table": [
            {"key": "harbor", "value": "harbor_evening.webp"},
            {"key": "classroom", "value": "classroom_day.webp"},
        ],
        "bgm_table": [
            {"key": "calm", "value": "waves.mp3"},
            {"key": "tense", "value": "storm.mp3"},
        ],
        "scene_table": [
            {"start.txt": {"festival": "festival.txt"}},
        ],
    },
    "seaside_lore": {
        "entries": {
            "0": {
                "key": ["lighthouse"],
                "content": "The old lighthouse has been dark since the storm of last autumn.",
                "position": 4,
                "depth": 2,
                "order": 10,
            },
            "1": {
                "key": ["storm"],
                "content": "Ren's father was lost at sea during the storm.",
                "position": 1,
                "order": 20,
            },
        }
    },
    "mio": {
        "data": {
            "name": "Mio",
            "description": "{{char}} is a cheerful girl who runs the harbor café.",
            "character_book": {
                "entries": [
                    {
                        "keys": ["café"],
                        "content": "The café closes at sunset.",
                        "position": "before_char",
                        "enabled": True,
                    }
                ]
            },
        }
    },
}


def create_demo_cards(storage: Storage) -> None:
    """Overwrite the demo cards in storage and clear the transcript."""
    for name, content in DEMO_CARDS.items():
        storage.save_card(name, content)
    storage.clear_transcript()
