"""
devagent Chat Session - Conversation state management

Ordered, append-only message log for one conversation. The first message
is the system message; at most one assistant message is open (still
receiving text deltas) at any time.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from errors import ToolCallNotFoundError

if TYPE_CHECKING:
    from .assembler import ToolCall

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRef:
    """Tool call recorded on an assistant message. arguments is serialized JSON."""

    id: str
    name: str
    arguments: str

    def arguments_dict(self) -> Dict[str, Any]:
        return json.loads(self.arguments) if self.arguments else {}


@dataclass
class Message:
    """One conversational unit.

    Attributes:
        role: system, user, assistant or tool
        content: Text (grows while an assistant turn streams)
        tool_call: Set on assistant tool-call messages
        tool_call_id: Call id on tool-call and tool-result messages
        timestamp: Creation time (UTC)
    """

    role: MessageRole
    content: str = ""
    tool_call: Optional[ToolCallRef] = None
    tool_call_id: Optional[str] = None
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "text": self.content,
            "content": self.content,
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_call.name if self.tool_call else None,
            "arguments": self.tool_call.arguments_dict() if self.tool_call else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ChatSession:
    """Holds conversation state for a single session.

    Attributes:
        session_id: Opaque unique identifier for this session
        messages: Message log in conversational order (never reordered)
        created_at: Session creation time
    """

    session_id: str
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)

    # Index of the open assistant message, if any
    _open_index: Optional[int] = field(default=None, repr=False)

    @classmethod
    def create(cls, session_id: str, system_prompt: str) -> "ChatSession":
        """Create a session seeded with its system message."""
        session = cls(session_id=session_id)
        session.messages.append(Message(role=MessageRole.SYSTEM, content=system_prompt))
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_history(self) -> Tuple[Message, ...]:
        """Non-system messages in order, as detached copies."""
        return tuple(replace(m) for m in self.messages if m.role != MessageRole.SYSTEM)

    def snapshot(self) -> Tuple[Message, ...]:
        """Immutable copy of the whole log for handing to the model transport.

        Appends made after the snapshot (or to the open assistant message)
        are not visible through it.
        """
        return tuple(replace(m) for m in self.messages)

    def has_system_message(self) -> bool:
        return any(m.role == MessageRole.SYSTEM for m in self.messages)

    @property
    def has_open_assistant_message(self) -> bool:
        return self._open_index is not None

    def find_tool_call(self, call_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.role == MessageRole.ASSISTANT and message.tool_call and message.tool_call.id == call_id:
                return message
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def ensure_system_message(self, system_prompt: str) -> bool:
        """Insert a system message at the head if none exists. Returns True if one was added."""
        if self.has_system_message():
            return False
        logger.info(f"Session {self.session_id} has no system message, injecting default")
        self.messages.insert(0, Message(role=MessageRole.SYSTEM, content=system_prompt))
        if self._open_index is not None:
            self._open_index += 1
        return True

    def append_user_message(self, text: str) -> Message:
        self.close_assistant_message()
        message = Message(role=MessageRole.USER, content=text)
        self.messages.append(message)
        return message

    def begin_assistant_message(self) -> Message:
        """Open an assistant message, or return the one already open."""
        if self._open_index is not None:
            return self.messages[self._open_index]
        message = Message(role=MessageRole.ASSISTANT)
        self.messages.append(message)
        self._open_index = len(self.messages) - 1
        return message

    def append_assistant_delta(self, text: str) -> Message:
        """Extend the open assistant message, opening one if needed."""
        message = self.begin_assistant_message()
        message.content += text
        return message

    def close_assistant_message(self) -> Optional[Message]:
        """Close the open assistant message (no-op if none is open)."""
        if self._open_index is None:
            return None
        message = self.messages[self._open_index]
        self._open_index = None
        return message

    def record_tool_call(self, call: "ToolCall") -> Message:
        """Append an assistant tool-call message."""
        self.close_assistant_message()
        ref = ToolCallRef(id=call.id, name=call.name, arguments=json.dumps(call.arguments))
        message = Message(role=MessageRole.ASSISTANT, tool_call=ref, tool_call_id=call.id)
        self.messages.append(message)
        return message

    def record_tool_result(self, call_id: str, text: str) -> Message:
        """Append a tool-result message for a previously recorded tool call.

        Raises:
            ToolCallNotFoundError: no prior tool-call message carries call_id
        """
        if self.find_tool_call(call_id) is None:
            raise ToolCallNotFoundError(call_id, session_id=self.session_id)
        message = Message(role=MessageRole.TOOL, content=text, tool_call_id=call_id)
        self.messages.append(message)
        return message
