"""
devagent Tool Output Router - WebSocket feed of tool outputs

Every connected socket receives each broadcast tool output event as JSON:

    {"sessionId", "toolName", "toolCallId", "args", "output", "timestamp"}

Messages sent by the client are ignored. The socket's observer is removed
when it disconnects.
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from services.broadcast import ToolOutputBroadcaster, get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/tool-output")
async def tool_output_websocket(
    websocket: WebSocket,
    broadcaster: ToolOutputBroadcaster = Depends(get_broadcaster),
):
    """WebSocket endpoint for tool output events."""
    await websocket.accept()

    async def forward(event):
        await websocket.send_json(event)

    broadcaster.subscribe(forward)
    client = websocket.client.host if websocket.client else "unknown"
    logger.info(f"Tool output socket connected from {client}")

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Tool output socket from {client} disconnected")
    finally:
        broadcaster.unsubscribe(forward)
