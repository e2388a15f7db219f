"""
Shared pytest fixtures and helpers for devagent tests.

The model transport is replaced by FakeLLMClient, which records each
request and replays canned SSE lines, so turns run without a network.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from routers.chat_orchestration import ChatService, ChatSession, TurnOrchestrator
from routers.chat_prompts import get_system_prompt
from services.broadcast import ToolOutputBroadcaster
from services.llm_client import LLMClient
from services.session_store import InMemorySessionStore
from tools import ParameterSpec, ToolCategory, ToolDefinition, ToolOutput, ToolRegistry


# ---------------------------------------------------------------------------
# Stream builders
# ---------------------------------------------------------------------------

def sse(envelope: Dict[str, Any]) -> str:
    """One provider stream line."""
    return f"data: {json.dumps(envelope)}"


def text_delta(text: str, index: int = 0) -> str:
    return sse({"type": "content_block_delta", "index": index, "delta": {"type": "text_delta", "text": text}})


def tool_start(call_id: str, name: str, index: int = 1) -> str:
    return sse({
        "type": "content_block_start",
        "index": index,
        "content_block": {"type": "tool_use", "id": call_id, "name": name, "input": {}},
    })


def tool_input(fragment: Dict[str, Any], index: int = 1) -> str:
    return sse({"type": "content_block_delta", "index": index, "delta": {"type": "tool_use_delta", "input": fragment}})


def tool_json(partial: str, index: int = 1) -> str:
    return sse({"type": "content_block_delta", "index": index, "delta": {"type": "input_json_delta", "partial_json": partial}})


def tool_stop() -> str:
    return sse({"type": "message_delta", "delta": {"stop_reason": "tool_use"}})


def message_stop() -> str:
    return sse({"type": "message_stop"})


def collect(aiterator) -> list:
    """Drain an async iterator from synchronous test code."""

    async def _drain():
        return [item async for item in aiterator]

    return asyncio.run(_drain())


async def lines_from(items: List[str]):
    for item in items:
        yield item


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeLLMClient:
    """Stands in for LLMClient: real request building, canned stream lines."""

    def __init__(self, lines: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.lines = list(lines or [])
        self.error = error
        self.requests: List[Dict[str, Any]] = []
        self.snapshots: list = []
        self.closed = False
        self._builder = LLMClient("http://model.test/v1/messages", api_key="test-key")

    def build_request(self, snapshot, tools=None, stream=True):
        self.snapshots.append(snapshot)
        return self._builder.build_request(snapshot, tools=tools, stream=stream)

    async def stream_lines(self, request):
        self.requests.append(request)
        try:
            if self.error is not None:
                raise self.error
            for line in self.lines:
                yield line
        finally:
            self.closed = True


def make_tool(
    name: str = "echo",
    outputs: Optional[List[ToolOutput]] = None,
    error: Optional[Exception] = None,
    parameters: Optional[Dict[str, ParameterSpec]] = None,
) -> ToolDefinition:
    """Tool that yields fixed outputs, then optionally raises."""
    calls: List[Dict[str, Any]] = []

    async def executor(arguments):
        calls.append(arguments)
        for output in outputs or []:
            yield output
        if error is not None:
            raise error

    tool = ToolDefinition(
        name=name,
        description=f"Test tool {name}",
        parameters=parameters if parameters is not None else {
            "text": ParameterSpec(type="string", description="Text to echo", required=True),
        },
        executor=executor,
        category=ToolCategory.OTHER,
    )
    tool.calls = calls
    return tool


def make_file_system_tool(listing: str = "a.txt\nb.txt") -> ToolDefinition:
    """file_system stand-in returning a fixed directory listing."""
    return make_tool(
        name="file_system",
        outputs=[ToolOutput(type="directory_listing", content=listing, metadata={"path": "/tmp"})],
        parameters={
            "operation": ParameterSpec(
                type="string", description="Operation", required=True,
                enum=["read", "write", "append", "list", "delete"],
            ),
            "path": ParameterSpec(type="string", description="Path", required=True),
            "content": ParameterSpec(type="string", description="Content"),
        },
    )


class RecordingObserver:
    """Broadcast observer that keeps every event."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def __call__(self, event):
        self.events.append(event)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.register(make_file_system_tool())
    return reg


@pytest.fixture
def broadcaster():
    return ToolOutputBroadcaster()


@pytest.fixture
def observer(broadcaster):
    obs = RecordingObserver()
    broadcaster.subscribe(obs)
    return obs


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def orchestrator(registry, broadcaster, fake_llm):
    return TurnOrchestrator(registry, broadcaster, llm_client=fake_llm)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def service(store, orchestrator):
    return ChatService(store, orchestrator)


@pytest.fixture
def session():
    return ChatSession.create("sess-1", get_system_prompt())
