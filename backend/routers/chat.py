"""
devagent Chat Router - Server-Sent Events turn endpoint

One request runs one turn. The response is a text/event-stream of
``data: <ResponseChunk JSON>`` events in the order the model produced them;
the stream ends when the turn completes or after its single error chunk.

Unknown sessions are rejected with 404 before the stream starts.
Disconnecting mid-stream cancels the model stream and any running tool.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from routers.chat_orchestration import ChatService, ResponseChunk, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_MESSAGE_CHARS = 32000

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class ChatRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)


async def _sse(chunks: AsyncIterator[ResponseChunk]) -> AsyncIterator[str]:
    async with aclosing(chunks) as stream:
        async for chunk in stream:
            yield chunk.to_sse()


def _stream_turn(service: ChatService, session_id: str, message: str) -> StreamingResponse:
    # send_message resolves the session before returning, so 404s happen here
    chunks = service.send_message(session_id, message)
    return StreamingResponse(_sse(chunks), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/chat")
async def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """Send a message and stream the turn."""
    return _stream_turn(service, request.session_id, request.message)


@router.get("/chat")
async def chat_get(
    session_id: str = Query(..., min_length=1),
    message: str = Query(..., min_length=1, max_length=MAX_MESSAGE_CHARS),
    service: ChatService = Depends(get_chat_service),
):
    """EventSource-friendly variant of POST /chat."""
    return _stream_turn(service, session_id, message)
