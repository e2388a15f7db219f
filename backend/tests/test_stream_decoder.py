"""
Tests for the provider stream decoder.
"""

import pytest

from errors import ErrorCode, TransportError
from services.stream_decoder import (
    StreamDecoder,
    TextDelta,
    ToolArgDelta,
    ToolEnd,
    ToolStart,
    TurnEnd,
)

from conftest import (
    collect,
    lines_from,
    message_stop,
    sse,
    text_delta,
    tool_input,
    tool_json,
    tool_start,
    tool_stop,
)


class TestDecodeLine:
    """Single-line decoding."""

    def setup_method(self):
        self.decoder = StreamDecoder()

    def test_text_delta(self):
        assert self.decoder.decode_line(text_delta("Hello")) == TextDelta(text="Hello")

    def test_legacy_untyped_text_delta(self):
        line = sse({"type": "content_block_delta", "delta": {"text": "Hi"}})
        assert self.decoder.decode_line(line) == TextDelta(text="Hi")

    def test_bytes_line(self):
        assert self.decoder.decode_line(text_delta("x").encode("utf-8")) == TextDelta(text="x")

    def test_tool_start(self):
        assert self.decoder.decode_line(tool_start("call_1", "file_system")) == ToolStart(
            call_id="call_1", name="file_system"
        )

    def test_tool_use_delta_uses_block_call_id(self):
        self.decoder.decode_line(tool_start("call_1", "file_system", index=2))
        event = self.decoder.decode_line(tool_input({"path": "/tmp"}, index=2))
        assert event == ToolArgDelta(call_id="call_1", fragment={"path": "/tmp"})

    def test_input_json_delta_is_raw_fragment(self):
        self.decoder.decode_line(tool_start("call_1", "file_system"))
        event = self.decoder.decode_line(tool_json('{"path": "/t'))
        assert event == ToolArgDelta(call_id="call_1", fragment='{"path": "/t')

    def test_tool_end_for_last_started_call(self):
        self.decoder.decode_line(tool_start("call_7", "execute_command"))
        assert self.decoder.decode_line(tool_stop()) == ToolEnd(call_id="call_7")

    def test_tool_end_without_start_has_empty_id(self):
        assert self.decoder.decode_line(tool_stop()) == ToolEnd(call_id="")

    def test_other_stop_reason_is_ignored(self):
        line = sse({"type": "message_delta", "delta": {"stop_reason": "end_turn"}})
        assert self.decoder.decode_line(line) is None

    def test_message_stop(self):
        assert self.decoder.decode_line(message_stop()) == TurnEnd()

    def test_done_sentinel(self):
        assert self.decoder.decode_line("data: [DONE]") is None
        assert self.decoder.dropped == 0

    @pytest.mark.parametrize("line", ["", "   ", "event: content_block_delta", ": ping", "id: 4"])
    def test_framing_lines_skipped(self, line):
        assert self.decoder.decode_line(line) is None
        assert self.decoder.dropped == 0

    def test_text_block_start_ignored(self):
        line = sse({"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}})
        assert self.decoder.decode_line(line) is None

    def test_unknown_envelope_ignored(self):
        assert self.decoder.decode_line(sse({"type": "ping"})) is None

    def test_malformed_json_dropped(self):
        assert self.decoder.decode_line("data: {malformed json") is None
        assert self.decoder.dropped == 1

    def test_non_object_record_dropped(self):
        assert self.decoder.decode_line("data: [1, 2]") is None
        assert self.decoder.dropped == 1

    def test_stream_error_envelope_raises(self):
        line = sse({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})
        with pytest.raises(TransportError) as exc_info:
            self.decoder.decode_line(line)
        assert exc_info.value.code == ErrorCode.TRANSPORT_STREAM_ERROR
        assert exc_info.value.details == "Overloaded"


class TestDecodeStream:
    """Whole-stream decoding."""

    def test_malformed_chunk_between_text_deltas(self):
        lines = [text_delta("Hello"), "data: {malformed json", text_delta(" world"), message_stop()]
        events = collect(StreamDecoder().decode(lines_from(lines)))
        assert events == [TextDelta("Hello"), TextDelta(" world"), TurnEnd()]

    def test_tool_call_sequence(self):
        lines = [
            tool_start("1", "file_system"),
            tool_input({"operation": "list", "path": "/tmp"}),
            tool_stop(),
            message_stop(),
        ]
        events = collect(StreamDecoder().decode(lines_from(lines)))
        assert events == [
            ToolStart("1", "file_system"),
            ToolArgDelta("1", {"operation": "list", "path": "/tmp"}),
            ToolEnd("1"),
            TurnEnd(),
        ]

    def test_synthesizes_turn_end(self):
        events = collect(StreamDecoder().decode(lines_from([text_delta("partial")])))
        assert events == [TextDelta("partial"), TurnEnd()]

    def test_stops_after_message_stop(self):
        lines = [message_stop(), text_delta("late"), message_stop()]
        events = collect(StreamDecoder().decode(lines_from(lines)))
        assert events == [TurnEnd()]

    def test_counts_records(self):
        decoder = StreamDecoder()
        collect(decoder.decode(lines_from([text_delta("a"), "data: nope", "", message_stop()])))
        assert decoder.records == 3
        assert decoder.dropped == 1
