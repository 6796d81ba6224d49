"""Check the controls figure table against a Live2D model description.

Every motion and expression named in `figure_table[*].refer_table` should
exist in the model.json of the figure (`motions` keys, `expressions[*].name`).
Missing names are reported as "<speaker> - <pose key> - <name>".
"""

from __future__ import annotations

from typing import Any


def find_missing_features(controls: dict[str, Any], model: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Return (missing motions, missing expressions), each sorted."""
    motions = set((model.get("motions") or {}).keys())
    expressions = {e.get("name") for e in model.get("expressions") or [] if isinstance(e, dict)}

    missing_motions: set[str] = set()
    missing_expressions: set[str] = set()
    for figure in controls.get("figure_table") or []:
        speaker = figure.get("speaker", "")
        for key, items in (figure.get("refer_table") or {}).items():
            for item in items or []:
                motion = item.get("motion")
                if motion and motion not in motions:
                    missing_motions.add(f"{speaker} - {key} - {motion}")
                expression = item.get("expression")
                if expression and expression not in expressions:
                    missing_expressions.add(f"{speaker} - {key} - {expression}")

    return sorted(missing_motions), sorted(missing_expressions)


def format_report(missing_motions: list[str], missing_expressions: list[str]) -> str:
    lines = ["=== motions missing from model.json ==="]
    lines.extend(missing_motions or ["all motions found in model.json"])
    lines.append("")
    lines.append("=== expressions missing from model.json ===")
    lines.extend(missing_expressions or ["all expressions found in model.json"])
    return "\n".join(lines)
