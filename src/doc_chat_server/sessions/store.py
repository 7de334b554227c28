"""
Conversation Store

In-memory conversation history, keyed by session id.

Histories are append-only: a failed turn keeps its user message, and a
history only disappears when the user clears it. Nothing here survives a
restart; documents are the only persisted state.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence
from threading import RLock

from .models import ConversationMessage


DEFAULT_SESSION_ID = "default"


class SessionStore:
    """
    Maps session ids to ordered message lists.

    Reads return copies, so callers can hold a history snapshot while new
    messages are appended.
    """

    def __init__(self, max_messages_per_session: Optional[int] = None) -> None:
        """
        Parameters
        ----------
        max_messages_per_session : Optional[int]
            Keep at most this many recent messages per session. None (the
            default) keeps the full history.
        """
        self._sessions: Dict[str, List[ConversationMessage]] = {}
        self._lock = RLock()
        self._max_messages = max_messages_per_session

    def get_history(self, session_id: str = DEFAULT_SESSION_ID) -> List[ConversationMessage]:
        with self._lock:
            return list(self._sessions.get(session_id, []))

    def add_messages(
        self,
        session_id: str,
        messages: Sequence[ConversationMessage],
    ) -> None:
        """Append messages in order, creating the session on first use."""
        if not messages:
            return

        with self._lock:
            history = self._sessions.setdefault(session_id, [])
            history.extend(messages)

            if self._max_messages and len(history) > self._max_messages:
                del history[: len(history) - self._max_messages]

    def clear(self, session_id: str = DEFAULT_SESSION_ID) -> int:
        """Drop a session's history; returns how many messages were removed."""
        with self._lock:
            return len(self._sessions.pop(session_id, []))

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
