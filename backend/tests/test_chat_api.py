"""
HTTP and WebSocket surface tests.

The application's service, registry and broadcaster dependencies are
overridden with per-test instances wired to FakeLLMClient.
"""

import json

import pytest
from starlette.testclient import TestClient

from main import app
from routers.chat import MAX_MESSAGE_CHARS
from routers.chat_orchestration import get_chat_service
from services.broadcast import get_broadcaster
from tools import get_tool_registry

from conftest import message_stop, text_delta, tool_input, tool_start, tool_stop


def parse_sse(body: str) -> list:
    events = []
    for block in body.split("\n\n"):
        block = block.strip()
        if block.startswith("data: "):
            events.append(json.loads(block[len("data: "):]))
    return events


@pytest.fixture
def client(service, registry, broadcaster):
    app.dependency_overrides[get_chat_service] = lambda: service
    app.dependency_overrides[get_tool_registry] = lambda: registry
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create_session(client) -> str:
    response = client.post("/api/sessions")
    assert response.status_code == 200
    return response.json()["session_id"]


class TestSessionsApi:

    def test_create_session(self, client):
        data = client.post("/api/sessions").json()
        assert data["session_id"]
        assert data["created_at"]

    def test_new_session_has_empty_history(self, client):
        session_id = create_session(client)
        response = client.get(f"/api/sessions/{session_id}/history")
        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_session_history(self, client):
        response = client.get("/api/sessions/missing/history")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "SESSION_NOT_FOUND"


class TestChatApi:

    def test_post_chat_streams_chunks(self, client, fake_llm):
        fake_llm.lines = [text_delta("Hello"), text_delta(" there"), message_stop()]
        session_id = create_session(client)

        response = client.post("/api/chat", json={"session_id": session_id, "message": "hi"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        chunks = parse_sse(response.text)
        assert [c["text"] for c in chunks] == ["Hello", " there"]
        assert all(c["session_id"] == session_id for c in chunks)

        history = client.get(f"/api/sessions/{session_id}/history").json()
        assert [(m["role"], m["text"]) for m in history] == [("user", "hi"), ("assistant", "Hello there")]
        assert all(m["timestamp"] for m in history)

    def test_get_chat(self, client, fake_llm):
        fake_llm.lines = [text_delta("Hi"), message_stop()]
        session_id = create_session(client)

        response = client.get("/api/chat", params={"session_id": session_id, "message": "hello"})

        assert response.status_code == 200
        assert [c["text"] for c in parse_sse(response.text)] == ["Hi"]

    def test_tool_turn(self, client, fake_llm):
        fake_llm.lines = [
            tool_start("1", "file_system"),
            tool_input({"operation": "list", "path": "/tmp"}),
            tool_stop(),
            message_stop(),
        ]
        session_id = create_session(client)

        response = client.post("/api/chat", json={"session_id": session_id, "message": "list files in /tmp"})

        (chunk,) = parse_sse(response.text)
        assert chunk["tool_name"] == "file_system"
        assert chunk["tool_call_id"] == "1"
        history = client.get(f"/api/sessions/{session_id}/history").json()
        assert [m["role"] for m in history] == ["user", "assistant", "tool"]
        assert history[1]["tool_name"] == "file_system"
        assert history[1]["arguments"] == {"operation": "list", "path": "/tmp"}
        assert history[2]["tool_call_id"] == "1"

    def test_unknown_session_is_404_before_streaming(self, client, fake_llm):
        response = client.post("/api/chat", json={"session_id": "missing", "message": "hi"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"
        assert fake_llm.requests == []

    def test_empty_message_rejected(self, client):
        session_id = create_session(client)
        response = client.post("/api/chat", json={"session_id": session_id, "message": ""})
        assert response.status_code == 422

    def test_overlong_message_rejected(self, client):
        session_id = create_session(client)
        response = client.post("/api/chat", json={"session_id": session_id, "message": "x" * (MAX_MESSAGE_CHARS + 1)})
        assert response.status_code == 422

    def test_error_chunk_ends_stream(self, client, fake_llm):
        fake_llm.lines = [tool_start("1", "nope"), tool_stop(), message_stop()]
        session_id = create_session(client)

        response = client.post("/api/chat", json={"session_id": session_id, "message": "hi"})

        assert response.status_code == 200
        (chunk,) = parse_sse(response.text)
        assert chunk["error_code"] == "TOOL_NOT_FOUND"
        assert chunk["text"].startswith("[Error: Tool not found: nope")


class TestToolsApi:

    def test_list_tools(self, client):
        tools = client.get("/api/tools").json()
        assert [t["name"] for t in tools] == ["file_system"]

    def test_execute_tool_streams_outputs(self, client, service, observer):
        session_id = create_session(client)

        response = client.post(
            "/api/tools/file_system",
            params={"session_id": session_id},
            json={"operation": "list", "path": "/tmp"},
        )

        assert response.status_code == 200
        (output,) = parse_sse(response.text)
        assert output["type"] == "directory_listing"
        assert output["content"] == "a.txt\nb.txt"
        assert observer.events[0]["toolName"] == "file_system"
        assert observer.events[0]["toolCallId"].startswith("direct-")
        assert service.get_history(session_id) == ()

    def test_execute_unknown_tool(self, client):
        session_id = create_session(client)
        response = client.post("/api/tools/nope", params={"session_id": session_id}, json={})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TOOL_NOT_FOUND"

    def test_execute_tool_bad_arguments(self, client):
        session_id = create_session(client)
        response = client.post("/api/tools/file_system", params={"session_id": session_id}, json={"operation": "list"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_MISSING_PARAM"

    def test_execute_tool_unknown_session(self, client):
        response = client.post("/api/tools/file_system", params={"session_id": "missing"}, json={})
        assert response.status_code == 404


class TestToolOutputSocket:

    def test_socket_receives_broadcast_events(self, client, broadcaster):
        session_id = create_session(client)

        with client.websocket_connect("/ws/tool-output") as ws:
            client.post(
                "/api/tools/file_system",
                params={"session_id": session_id},
                json={"operation": "list", "path": "/tmp"},
            )
            event = ws.receive_json()

        assert event["sessionId"] == session_id
        assert event["toolName"] == "file_system"
        assert event["args"] == {"operation": "list", "path": "/tmp"}
        assert event["output"]["type"] == "directory_listing"


class TestHealth:

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert "execute_command" in data["tools"]
