"""
devagent Chat Service - client-facing session and turn API

Wraps the session store and the TurnOrchestrator:
- create_session(): new session seeded with the system prompt
- get_history(): visible (non-system) messages in order
- send_message(): one turn, streamed as ResponseChunks
- execute_tool(): direct tool run outside a turn (broadcast only)

Turns on the same session are serialized with one asyncio.Lock per
session id; different sessions run fully in parallel.
"""

import asyncio
import logging
import uuid
import weakref
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, Optional, Tuple, TYPE_CHECKING

from errors import SessionNotFoundError
from tools import ToolOutput

from ..chat_prompts import get_system_prompt
from .assembler import ToolCall
from .orchestrator import ResponseChunk, TurnOrchestrator, tool_output_event
from .session import ChatSession, Message

if TYPE_CHECKING:
    from services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ChatService:
    """Session lifecycle plus turn execution."""

    def __init__(self, store: "SessionStore", orchestrator: TurnOrchestrator):
        self.store = store
        self.orchestrator = orchestrator
        # Entries live only while a turn holds or awaits the lock
        self._turn_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._turn_locks.get(session_id)
        if lock is None:
            lock = self._turn_locks.setdefault(session_id, asyncio.Lock())
        return lock

    def get_session(self, session_id: str) -> ChatSession:
        """
        Raises:
            SessionNotFoundError: unknown session id
        """
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def create_session(self) -> Dict[str, Any]:
        session = ChatSession.create(str(uuid.uuid4()), get_system_prompt())
        self.store.put(session)
        logger.info(f"Created session {session.session_id}")
        return {"session_id": session.session_id, "created_at": session.created_at.isoformat()}

    def get_history(self, session_id: str) -> Tuple[Message, ...]:
        return self.get_session(session_id).get_history()

    def send_message(self, session_id: str, text: str) -> AsyncIterator[ResponseChunk]:
        """Start a turn and return its chunk stream.

        The session is resolved eagerly so an unknown id raises here, before
        any chunk is produced and before anything is appended.

        Raises:
            SessionNotFoundError: unknown session id
        """
        session = self.get_session(session_id)
        return self._stream_turn(session, text)

    async def _stream_turn(self, session: ChatSession, text: str) -> AsyncIterator[ResponseChunk]:
        lock = self._lock_for(session.session_id)
        if lock.locked():
            logger.info(f"Session {session.session_id} has a turn in flight, waiting")
        async with lock:
            async with aclosing(self.orchestrator.run_turn(session, text)) as chunks:
                async for chunk in chunks:
                    yield chunk

    def execute_tool(
        self, session_id: str, tool_name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[ToolOutput]:
        """Run a tool directly, yielding and broadcasting each output.

        Nothing is recorded in the session history. Session, tool and
        arguments are checked before the iterator is returned.

        Raises:
            SessionNotFoundError: unknown session id
            ToolNotFoundError: unknown tool
            ToolArgumentsError: arguments fail validation
            ToolExecutionError: the tool failed
        """
        session = self.get_session(session_id)
        arguments = arguments or {}
        registry = self.orchestrator.registry
        registry.validate_arguments(tool_name, arguments)

        call = ToolCall(id=f"direct-{uuid.uuid4().hex[:12]}", name=tool_name, arguments=arguments)
        logger.info(f"Direct tool execution: {tool_name} ({call.id}) for session {session_id}")
        return self._stream_tool(session, call)

    async def _stream_tool(self, session: ChatSession, call: ToolCall) -> AsyncIterator[ToolOutput]:
        registry = self.orchestrator.registry
        async with aclosing(registry.execute(call.name, call.arguments)) as outputs:
            async for output in outputs:
                await self.orchestrator.broadcaster.broadcast(tool_output_event(session.session_id, call, output))
                yield output


# Singleton instance
_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get the process-wide chat service wired to the shared store, registry and broadcaster."""
    global _service
    if _service is None:
        from services.broadcast import get_broadcaster
        from services.session_store import get_session_store
        from tools import get_tool_registry

        orchestrator = TurnOrchestrator(get_tool_registry(), get_broadcaster())
        _service = ChatService(get_session_store(), orchestrator)
    return _service
