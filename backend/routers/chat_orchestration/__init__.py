"""
devagent Chat Orchestration - streaming tool-call turn engine

Components:
- ChatSession: Conversation state (append-only message log)
- ToolCallAssembler: Reassembles streamed tool invocations
- TurnOrchestrator: Drives one user turn end to end
- ChatService: Session lifecycle, per-session turn serialization

Turn data flow:
    user message -> ChatSession -> TurnOrchestrator -> StreamDecoder(model stream)
        -> TextDelta -> assistant message + response chunk
        -> Tool* -> ToolCallAssembler -> ToolRegistry.execute
           -> tool-call / tool-result records + tool-completion chunk
"""

from .session import ChatSession, Message, MessageRole, ToolCallRef
from .assembler import AssemblerState, PendingToolCall, ToolCall, ToolCallAssembler
from .orchestrator import ResponseChunk, TurnOrchestrator, TurnState
from .service import ChatService, get_chat_service

__all__ = [
    "ChatSession",
    "Message",
    "MessageRole",
    "ToolCallRef",
    "AssemblerState",
    "PendingToolCall",
    "ToolCall",
    "ToolCallAssembler",
    "ResponseChunk",
    "TurnOrchestrator",
    "TurnState",
    "ChatService",
    "get_chat_service",
]
