"""
Stream Decoder - model SSE lines -> typed stream events.

The provider streams newline-delimited records, each either a
``data: {json envelope}`` line or the ``[DONE]`` sentinel. Envelopes map to
events by their ``type`` plus the nested ``content_block.type`` and
``delta.type`` discriminators:

    content_block_start / tool_use            -> ToolStart(call_id, name)
    content_block_delta / tool_use_delta      -> ToolArgDelta(call_id, {input})
    content_block_delta / input_json_delta    -> ToolArgDelta(call_id, "partial json")
    content_block_delta / text_delta          -> TextDelta(text)
    message_delta with stop_reason=tool_use   -> ToolEnd(call_id)
    message_stop                              -> TurnEnd()

Anything else maps to no event. A record that is not valid JSON is logged
and dropped; it never aborts the stream.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional, Union

from errors import TransportError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# SSE framing lines that carry no payload
_FRAMING_PREFIXES = ("event:", "id:", "retry:", ":")


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolStart:
    call_id: str
    name: str


@dataclass(frozen=True)
class ToolArgDelta:
    """Partial tool arguments.

    fragment is either a mapping merged key-by-key into the pending
    arguments, or a raw JSON text fragment concatenated and parsed when the
    call ends.
    """

    call_id: str
    fragment: Union[Dict[str, Any], str]


@dataclass(frozen=True)
class ToolEnd:
    call_id: str


@dataclass(frozen=True)
class TurnEnd:
    pass


StreamEvent = Union[TextDelta, ToolStart, ToolArgDelta, ToolEnd, TurnEnd]


class StreamDecoder:
    """Decodes one model response stream.

    Stateful: remembers which call id each content block index belongs to,
    so a decoder instance must not be shared between streams.
    """

    def __init__(self):
        self._block_ids: Dict[Any, str] = {}
        self._last_tool_id: Optional[str] = None
        self.records = 0
        self.dropped = 0

    def decode_line(self, line: Union[str, bytes]) -> Optional[StreamEvent]:
        """Decode one raw line. Returns None for lines that produce no event.

        Raises:
            TransportError: the provider reported an error inside the stream
        """
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line:
            return None

        if line.startswith(DATA_PREFIX):
            line = line[len(DATA_PREFIX):].strip()
        elif line.startswith(_FRAMING_PREFIXES):
            return None

        if line == DONE_SENTINEL:
            return None

        self.records += 1
        logger.debug(f"Raw stream record: {line}")
        try:
            envelope = json.loads(line)
        except json.JSONDecodeError as e:
            self.dropped += 1
            logger.warning(f"Dropping malformed stream record ({e.msg}): {line[:120]}")
            return None

        if not isinstance(envelope, dict):
            self.dropped += 1
            logger.warning(f"Dropping non-object stream record: {line[:120]}")
            return None

        return self.map_envelope(envelope)

    def map_envelope(self, envelope: Dict[str, Any]) -> Optional[StreamEvent]:
        """Map a parsed envelope onto a stream event."""
        etype = envelope.get("type")

        if etype == "content_block_start":
            block = envelope.get("content_block") or {}
            if block.get("type") != "tool_use":
                return None
            call_id = str(block.get("id") or "")
            name = str(block.get("name") or "")
            self._block_ids[envelope.get("index")] = call_id
            self._last_tool_id = call_id
            logger.info(f"Detected tool use block start: {name} ({call_id})")
            return ToolStart(call_id=call_id, name=name)

        if etype == "content_block_delta":
            delta = envelope.get("delta") or {}
            dtype = delta.get("type")

            if dtype == "tool_use_delta":
                fragment = delta.get("input")
                if isinstance(fragment, dict):
                    return ToolArgDelta(call_id=self._call_id_for(envelope), fragment=fragment)
                return None

            if dtype == "input_json_delta":
                partial = delta.get("partial_json")
                if isinstance(partial, str) and partial:
                    return ToolArgDelta(call_id=self._call_id_for(envelope), fragment=partial)
                return None

            if dtype in (None, "text_delta"):
                text = delta.get("text")
                if isinstance(text, str) and text:
                    return TextDelta(text=text)
            return None

        if etype == "message_delta":
            delta = envelope.get("delta") or {}
            if delta.get("stop_reason") == "tool_use":
                logger.info(f"Detected tool use block end: {self._last_tool_id}")
                return ToolEnd(call_id=self._last_tool_id or "")
            return None

        if etype == "message_stop":
            return TurnEnd()

        if etype == "error":
            error = envelope.get("error") or {}
            raise TransportError(
                f"Model stream error: {error.get('type', 'error')}",
                details=error.get("message"),
                kind="stream",
            )

        return None

    def _call_id_for(self, envelope: Dict[str, Any]) -> str:
        return self._block_ids.get(envelope.get("index"), self._last_tool_id or "")

    async def decode(self, lines: AsyncIterable[Union[str, bytes]]) -> AsyncIterator[StreamEvent]:
        """Lazily decode a line stream into events.

        Exactly one TurnEnd is yielded, last. If the stream ends without a
        message_stop record a TurnEnd is synthesized; lines after a
        message_stop are not read.
        """
        async for line in lines:
            event = self.decode_line(line)
            if event is None:
                continue
            yield event
            if isinstance(event, TurnEnd):
                return

        logger.debug("Stream exhausted without message_stop, closing turn")
        yield TurnEnd()
