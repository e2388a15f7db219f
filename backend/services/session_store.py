"""
Session Store - session_id -> ChatSession lookup.

Sessions live in process memory for the lifetime of the server. The store
is shared by every request handler, so all access goes through a lock.

Usage:
    from services.session_store import get_session_store

    store = get_session_store()
    store.put(session)
    session = store.get(session_id)
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from routers.chat_orchestration.session import ChatSession

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Storage interface for chat sessions."""

    @abstractmethod
    def get(self, session_id: str) -> Optional["ChatSession"]:
        """Return the session, or None if the id is unknown."""

    @abstractmethod
    def put(self, session: "ChatSession") -> None:
        """Insert or replace a session under its own session_id."""

    @abstractmethod
    def remove(self, session_id: str) -> bool:
        """Remove a session. Returns True if it existed."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored sessions."""


class InMemorySessionStore(SessionStore):
    """Thread-safe in-process session store."""

    def __init__(self):
        self._sessions: Dict[str, "ChatSession"] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional["ChatSession"]:
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session: "ChatSession") -> None:
        with self._lock:
            replaced = session.session_id in self._sessions
            self._sessions[session.session_id] = session
        if replaced:
            logger.debug(f"Replaced session {session.session_id}")
        else:
            logger.debug(f"Stored session {session.session_id}")

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"Removed session {session_id}")
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)


# Singleton instance
_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    global _store
    if _store is None:
        _store = InMemorySessionStore()
    return _store
