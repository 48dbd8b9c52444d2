"""Session store abstractions."""

import threading
from dataclasses import dataclass, field
from typing import Protocol

from insurance_bot.domain.sessions import Session


class SessionStore(Protocol):
    """Keyed store holding one workflow session per conversation."""

    def get_or_create(self, conversation_id: int) -> Session:
        """Return the session for a conversation, creating it if needed."""

    def upsert(self, session: Session) -> None:
        """Insert or replace the session for its conversation."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Thread-safe in-memory session store.

    Sessions are never evicted and live until the process exits.
    """

    _sessions: dict[int, Session] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get_or_create(self, conversation_id: int) -> Session:
        """Return the stored session or atomically create a new one."""
        with self._lock:
            session = self._sessions.get(conversation_id)
            if session is None:
                session = Session(conversation_id=conversation_id)
                self._sessions[conversation_id] = session
            return session

    def upsert(self, session: Session) -> None:
        """Atomically replace the session for its conversation."""
        with self._lock:
            self._sessions[session.conversation_id] = session
