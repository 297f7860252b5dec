from __future__ import annotations

from typing import Any

MAX_MENU_OPTIONS = 4
MAX_ACTION_LABEL_LENGTH = 20
MAX_BUTTONS_TEXT_LENGTH = 160


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text[:5000]}


def message_action(label: str, text: str) -> dict[str, Any]:
    return {
        "type": "message",
        "label": label[:MAX_ACTION_LABEL_LENGTH],
        "text": text[:300],
    }


def buttons_template(text: str, alt_text: str, actions: list[dict[str, Any]]) -> dict[str, Any]:
    # The buttons template accepts at most four actions; extras are dropped.
    return {
        "type": "template",
        "altText": alt_text[:400],
        "template": {
            "type": "buttons",
            "text": text[:MAX_BUTTONS_TEXT_LENGTH],
            "actions": actions[:MAX_MENU_OPTIONS],
        },
    }
