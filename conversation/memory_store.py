from __future__ import annotations

import threading
from copy import deepcopy

from conversation.models import Session
from conversation.session_store_interface import SessionStoreProtocol
from core.models import utc_now_iso


class InMemorySessionStore(SessionStoreProtocol):
    """Process-local sessions; everything is lost when the process exits."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def get_session(self, line_user_id: str) -> Session | None:
        with self._lock:
            session = self._sessions.get(line_user_id)
            return deepcopy(session) if session is not None else None

    def save_session(self, session: Session) -> None:
        session.updated_at = utc_now_iso()
        with self._lock:
            self._sessions[session.line_user_id] = deepcopy(session)

    def delete_session(self, line_user_id: str) -> None:
        with self._lock:
            self._sessions.pop(line_user_id, None)
