from __future__ import annotations

from dataclasses import dataclass, field

from core.enums import ConversationState
from core.models import utc_now_iso


@dataclass(slots=True)
class Session:
    line_user_id: str
    state: ConversationState = ConversationState.IDLE
    fields: dict[str, str] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def reset(self, state: ConversationState = ConversationState.AWAIT_DEPARTURE) -> None:
        self.fields = {}
        self.state = state
