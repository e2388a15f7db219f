"""
Tests for the tool-call assembler state machine.
"""

import pytest

from errors import ErrorCode, ProtocolError
from routers.chat_orchestration.assembler import (
    AssemblerState,
    ToolCall,
    ToolCallAssembler,
    deep_merge,
)
from services.stream_decoder import TextDelta, ToolArgDelta, ToolEnd, ToolStart, TurnEnd


def feed_all(assembler, events):
    return [call for call in (assembler.feed(e) for e in events) if call is not None]


class TestDeepMerge:

    def test_flat_keys_last_write_wins(self):
        assert deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_mappings_merge(self):
        target = {"opts": {"x": 1}}
        deep_merge(target, {"opts": {"y": 2}})
        assert target == {"opts": {"x": 1, "y": 2}}

    def test_non_mapping_replaces_mapping(self):
        assert deep_merge({"opts": {"x": 1}}, {"opts": "plain"}) == {"opts": "plain"}

    def test_nested_fragment_is_copied(self):
        fragment = {"opts": {"x": 1}}
        target = deep_merge({}, fragment)
        target["opts"]["x"] = 2
        assert fragment["opts"]["x"] == 1


class TestToolCallAssembler:

    def test_starts_idle(self):
        assembler = ToolCallAssembler()
        assert assembler.state == AssemblerState.IDLE
        assert assembler.pending is None

    def test_single_call_merges_deltas_in_order(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [
            ToolStart("1", "file_system"),
            ToolArgDelta("1", {"operation": "read"}),
            ToolArgDelta("1", {"path": "/tmp/a"}),
            ToolArgDelta("1", {"operation": "list"}),
            ToolEnd("1"),
        ])
        assert calls == [ToolCall(id="1", name="file_system", arguments={"operation": "list", "path": "/tmp/a"})]
        assert assembler.state == AssemblerState.IDLE

    def test_accumulating_state(self):
        assembler = ToolCallAssembler()
        assembler.feed(ToolStart("1", "file_system"))
        assert assembler.state == AssemblerState.ACCUMULATING
        assert assembler.pending.name == "file_system"

    def test_raw_json_fragments_parsed_on_end(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [
            ToolStart("2", "execute_command"),
            ToolArgDelta("2", '{"command": "l'),
            ToolArgDelta("2", 's -la"}'),
            ToolEnd("2"),
        ])
        assert calls[0].arguments == {"command": "ls -la"}

    def test_call_without_arguments(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [ToolStart("3", "noop"), ToolEnd("3")])
        assert calls == [ToolCall(id="3", name="noop", arguments={})]

    def test_text_deltas_pass_through(self):
        assembler = ToolCallAssembler()
        assert assembler.feed(TextDelta("hello")) is None
        assert assembler.state == AssemblerState.IDLE

    def test_end_without_start_is_ignored(self):
        assembler = ToolCallAssembler()
        assert assembler.feed(ToolEnd("9")) is None
        assert assembler.state == AssemblerState.IDLE

    def test_end_with_other_id_keeps_pending(self):
        assembler = ToolCallAssembler()
        assembler.feed(ToolStart("1", "file_system"))
        assert assembler.feed(ToolEnd("2")) is None
        assert assembler.state == AssemblerState.ACCUMULATING

    def test_delta_for_other_call_ignored(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [
            ToolStart("1", "file_system"),
            ToolArgDelta("other", {"path": "/etc"}),
            ToolArgDelta("1", {"path": "/tmp"}),
            ToolEnd("1"),
        ])
        assert calls[0].arguments == {"path": "/tmp"}

    def test_delta_while_idle_ignored(self):
        assembler = ToolCallAssembler()
        assert assembler.feed(ToolArgDelta("1", {"path": "/tmp"})) is None
        assert assembler.state == AssemblerState.IDLE

    def test_duplicate_start_replaces_pending(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [
            ToolStart("1", "file_system"),
            ToolArgDelta("1", {"path": "/tmp"}),
            ToolStart("2", "execute_command"),
            ToolArgDelta("2", {"command": "pwd"}),
            ToolEnd("2"),
        ])
        assert calls == [ToolCall(id="2", name="execute_command", arguments={"command": "pwd"})]

    def test_finish_idle_is_noop(self):
        ToolCallAssembler().finish()

    def test_finish_while_accumulating_raises(self):
        assembler = ToolCallAssembler()
        assembler.feed(ToolStart("1", "file_system"))
        assembler.feed(TurnEnd())
        with pytest.raises(ProtocolError) as exc_info:
            assembler.finish()
        assert exc_info.value.code == ErrorCode.PROTOCOL_TRUNCATED_CALL
        assert assembler.state == AssemblerState.IDLE

    def test_malformed_json_arguments(self):
        assembler = ToolCallAssembler()
        assembler.feed(ToolStart("1", "file_system"))
        assembler.feed(ToolArgDelta("1", '{"path": '))
        with pytest.raises(ProtocolError) as exc_info:
            assembler.feed(ToolEnd("1"))
        assert exc_info.value.code == ErrorCode.PROTOCOL_BAD_ARGUMENTS
        assert assembler.state == AssemblerState.IDLE

    def test_non_object_json_arguments(self):
        assembler = ToolCallAssembler()
        assembler.feed(ToolStart("1", "file_system"))
        assembler.feed(ToolArgDelta("1", "[1, 2]"))
        with pytest.raises(ProtocolError):
            assembler.feed(ToolEnd("1"))

    def test_two_sequential_calls(self):
        assembler = ToolCallAssembler()
        calls = feed_all(assembler, [
            ToolStart("1", "a"), ToolArgDelta("1", {"x": 1}), ToolEnd("1"),
            ToolStart("2", "b"), ToolArgDelta("2", {"y": 2}), ToolEnd("2"),
        ])
        assert [c.id for c in calls] == ["1", "2"]
        assert calls[1].arguments == {"y": 2}
