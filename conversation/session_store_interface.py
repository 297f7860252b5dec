from __future__ import annotations

from typing import Protocol

from conversation.models import Session


class SessionStoreProtocol(Protocol):
    def get_session(self, line_user_id: str) -> Session | None: ...

    def save_session(self, session: Session) -> None: ...

    def delete_session(self, line_user_id: str) -> None: ...
