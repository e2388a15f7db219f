"""
devagent Tool-Call Assembler - reassembles streamed tool invocations

Per-turn state machine with two states:

    IDLE --ToolStart--> ACCUMULATING --ToolEnd(matching id)--> IDLE (+ ToolCall)

ToolArgDelta fragments for the pending call are merged into its arguments;
fragments for other ids, or arriving while idle, are ignored. A ToolStart
while already accumulating replaces the pending call (logged). A ToolEnd
with no matching pending call is logged and ignored. If the turn
ends while accumulating, the pending call is discarded and finish() raises
ProtocolError.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from errors import ProtocolError
from services.stream_decoder import StreamEvent, ToolArgDelta, ToolEnd, ToolStart

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    """A completed, well-formed tool invocation."""

    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class PendingToolCall:
    """Working state between ToolStart and ToolEnd for one call id."""

    call_id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    raw_fragments: List[str] = field(default_factory=list)


class AssemblerState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


def deep_merge(target: Dict[str, Any], fragment: Dict[str, Any]) -> Dict[str, Any]:
    """Merge fragment into target in place. Nested mappings merge; other values overwrite."""
    for key, value in fragment.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        elif isinstance(value, dict):
            target[key] = deep_merge({}, value)
        else:
            target[key] = value
    return target


class ToolCallAssembler:
    """Accumulates ToolStart/ToolArgDelta/ToolEnd events into ToolCalls."""

    def __init__(self):
        self._pending: Optional[PendingToolCall] = None

    @property
    def state(self) -> AssemblerState:
        return AssemblerState.ACCUMULATING if self._pending is not None else AssemblerState.IDLE

    @property
    def pending(self) -> Optional[PendingToolCall]:
        return self._pending

    def feed(self, event: StreamEvent) -> Optional[ToolCall]:
        """Advance the state machine. Returns a ToolCall when one completes.

        TextDelta and TurnEnd pass through untouched (return None).

        Raises:
            ProtocolError: the completed call's raw JSON arguments do not
                parse to an object
        """
        if isinstance(event, ToolStart):
            if self._pending is not None:
                logger.warning(
                    f"ToolStart {event.call_id} ({event.name}) while {self._pending.call_id} "
                    f"({self._pending.name}) is pending, replacing it"
                )
            self._pending = PendingToolCall(call_id=event.call_id, name=event.name)
            return None

        if isinstance(event, ToolArgDelta):
            if self._pending is None or event.call_id != self._pending.call_id:
                logger.debug(f"Ignoring argument fragment for inactive call {event.call_id}")
                return None
            if isinstance(event.fragment, dict):
                deep_merge(self._pending.arguments, event.fragment)
            else:
                self._pending.raw_fragments.append(event.fragment)
            return None

        if isinstance(event, ToolEnd):
            if self._pending is None or event.call_id != self._pending.call_id:
                logger.warning(f"Ignoring ToolEnd {event.call_id!r} with no matching pending call")
                return None
            pending, self._pending = self._pending, None
            return self._complete(pending)

        return None

    def finish(self) -> None:
        """Close the turn.

        Raises:
            ProtocolError: a tool call was still pending (it is discarded and
                never invoked)
        """
        if self._pending is None:
            return
        pending, self._pending = self._pending, None
        logger.warning(f"Turn ended with pending tool call {pending.call_id} ({pending.name}), discarding")
        raise ProtocolError(
            f"Tool call {pending.name} was never completed",
            details="the model stream ended before the tool invocation closed",
            kind="truncated_call",
            call_id=pending.call_id,
            tool_name=pending.name,
        )

    @staticmethod
    def _complete(pending: PendingToolCall) -> ToolCall:
        arguments = pending.arguments
        if pending.raw_fragments:
            raw = "".join(pending.raw_fragments)
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ProtocolError(
                    f"Malformed arguments for tool {pending.name}",
                    details=e.msg,
                    kind="bad_arguments",
                    call_id=pending.call_id,
                ) from e
            if not isinstance(parsed, dict):
                raise ProtocolError(
                    f"Malformed arguments for tool {pending.name}",
                    details="arguments must be a JSON object",
                    kind="bad_arguments",
                    call_id=pending.call_id,
                )
            arguments = deep_merge(arguments, parsed)

        logger.info(f"Assembled tool call {pending.name} ({pending.call_id}) with {len(arguments)} argument(s)")
        return ToolCall(id=pending.call_id, name=pending.name, arguments=arguments)
