"""
devagent Turn Orchestrator - drives one user turn end to end

Per-turn pipeline:
1. Append the user message, ensure a system message, snapshot the log
2. Stream the snapshot (plus the registry's tool schema) to the model
3. Fold decoded events through the ToolCallAssembler:
   - TextDelta  -> open assistant message + response chunk
   - ToolCall   -> record call, execute, broadcast outputs, record result,
                   tool-completion chunk
   - TurnEnd    -> close the turn (a still-pending call is a ProtocolError)

The model is not re-invoked after a tool result; the tool-completion chunk
ends that segment and the user's next message carries the conversation on.

Failures end the turn's stream with exactly one error chunk. History
written before the failure is kept.
"""

import logging
import time
from contextlib import aclosing
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, Field

from errors import DevAgentError, format_error_for_client, log_error
from errors.codes import ErrorCode
from logging_config import log_message_in, log_message_out, log_stream
from services.broadcast import ToolOutputBroadcaster
from services.stream_decoder import StreamDecoder, TextDelta, TurnEnd
from tools import ToolOutput, ToolRegistry

from ..chat_prompts import DEFAULT_SYSTEM_PROMPT
from .assembler import ToolCall, ToolCallAssembler
from .session import ChatSession

if TYPE_CHECKING:
    from services.llm_client import LLMClient

logger = logging.getLogger(__name__)

TOOL_COMPLETED_TEXT = "[Tool execution completed: {name}]"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def tool_output_event(session_id: str, call: ToolCall, output: ToolOutput) -> Dict[str, Any]:
    """Broadcast event for one tool output."""
    return {
        "sessionId": session_id,
        "toolName": call.name,
        "toolCallId": call.id,
        "args": call.arguments,
        "output": output.to_dict(),
        "timestamp": _now().isoformat(),
    }


class ResponseChunk(BaseModel):
    """One incremental unit of a turn's client-facing stream."""

    session_id: str
    role: str = "assistant"
    text: Optional[str] = None
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_result: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)

    @property
    def is_error(self) -> bool:
        return self.error_code is not None

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"


class TurnState(str, Enum):
    SENT = "sent"
    STREAMING = "streaming"
    TOOL_PENDING = "tool_pending"
    TOOL_EXECUTING = "tool_executing"
    COMPLETED = "completed"
    FAILED = "failed"


class TurnOrchestrator:
    """Runs turns against a session using the model transport and tool registry."""

    def __init__(
        self,
        registry: ToolRegistry,
        broadcaster: ToolOutputBroadcaster,
        llm_client: Optional["LLMClient"] = None,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        """
        Args:
            registry: Tool capabilities offered to the model
            broadcaster: Receives every ToolOutput produced during a turn
            llm_client: Model transport (defaults to the process singleton)
            default_system_prompt: Injected when a session has no system message
        """
        self.registry = registry
        self.broadcaster = broadcaster
        self._llm_client = llm_client
        self.default_system_prompt = default_system_prompt

    @property
    def client(self) -> "LLMClient":
        if self._llm_client is None:
            from services.llm_client import get_llm_client
            self._llm_client = get_llm_client()
        return self._llm_client

    async def run_turn(self, session: ChatSession, text: str) -> AsyncIterator[ResponseChunk]:
        """Run one turn, yielding response chunks in decode order.

        The caller must hold the session's turn lock for the whole iteration.
        Closing the iterator early cancels the model stream and any running
        tool; partial history stays in the session.
        """
        state = TurnState.SENT
        chunks = 0
        tools_used: List[str] = []
        start = time.time()

        log_message_in(logger, text, session=session.session_id, history=len(session.messages))
        session.append_user_message(text)
        session.ensure_system_message(self.default_system_prompt)

        decoder = StreamDecoder()
        assembler = ToolCallAssembler()

        try:
            request = self.client.build_request(session.snapshot(), tools=self.registry.get_tools_schema())

            state = TurnState.STREAMING
            log_stream(logger, "start", session=session.session_id)
            async with aclosing(self.client.stream_lines(request)) as lines, \
                    aclosing(decoder.decode(lines)) as events:
                async for event in events:
                    if isinstance(event, TextDelta):
                        session.append_assistant_delta(event.text)
                        chunks += 1
                        yield ResponseChunk(session_id=session.session_id, text=event.text)
                        continue

                    if isinstance(event, TurnEnd):
                        assembler.finish()
                        break

                    call = assembler.feed(event)
                    if call is None:
                        if assembler.pending is not None:
                            state = TurnState.TOOL_PENDING
                        continue

                    state = TurnState.TOOL_EXECUTING
                    chunk = await self._run_tool(session, call)
                    tools_used.append(call.name)
                    chunks += 1
                    yield chunk
                    state = TurnState.STREAMING

            state = TurnState.COMPLETED
        except DevAgentError as e:
            log_error(logger, e, context=f"turn {session.session_id} ({state.value})", include_traceback=False)
            state = TurnState.FAILED
            chunks += 1
            yield self._error_chunk(session, e)
        except Exception as e:
            log_error(logger, e, context=f"turn {session.session_id} ({state.value})")
            state = TurnState.FAILED
            chunks += 1
            yield self._error_chunk(session, e)
        finally:
            session.close_assistant_message()
            log_stream(
                logger, "end",
                session=session.session_id,
                turn_state=state.value,
                records=decoder.records,
                dropped=decoder.dropped,
                duration=f"{time.time() - start:.2f}s",
            )

        log_message_out(logger, tools_used=tools_used, chunks=chunks)

    async def _run_tool(self, session: ChatSession, call: ToolCall) -> ResponseChunk:
        """Execute a completed call and record it. Returns the tool-completion chunk.

        Unknown tools and invalid arguments fail before anything is recorded.
        Once the call is recorded, an execution failure leaves it in history
        with no result.
        """
        self.registry.validate_arguments(call.name, call.arguments)
        session.record_tool_call(call)

        result_parts: List[str] = []
        async with aclosing(self.registry.execute(call.name, call.arguments)) as outputs:
            async for output in outputs:
                result_parts.append(f"{output.content}\n")
                await self.broadcaster.broadcast(tool_output_event(session.session_id, call, output))

        result = "".join(result_parts)
        session.record_tool_result(call.id, result)

        return ResponseChunk(
            session_id=session.session_id,
            text=TOOL_COMPLETED_TEXT.format(name=call.name),
            tool_name=call.name,
            tool_call_id=call.id,
            tool_result=result,
        )

    @staticmethod
    def _error_chunk(session: ChatSession, error: Exception) -> ResponseChunk:
        code = error.code if isinstance(error, DevAgentError) else ErrorCode.INTERNAL_UNEXPECTED
        return ResponseChunk(
            session_id=session.session_id,
            text=format_error_for_client(error),
            error_code=code.value,
        )
