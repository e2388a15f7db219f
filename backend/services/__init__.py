"""
devagent Services - Shared infrastructure services.

- llm_client: Streaming HTTP transport to the model provider
- stream_decoder: Provider SSE lines -> typed stream events
- session_store: In-memory session lookup
- broadcast: Tool output fan-out to live observers
"""

from .broadcast import ToolOutputBroadcaster, get_broadcaster
from .session_store import InMemorySessionStore, SessionStore, get_session_store

__all__ = [
    "ToolOutputBroadcaster",
    "get_broadcaster",
    "InMemorySessionStore",
    "SessionStore",
    "get_session_store",
]
