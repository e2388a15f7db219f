"""
devagent Tools Router
Tool discovery and direct tool execution

Direct execution streams each ToolOutput as an SSE ``data:`` event and
broadcasts it to tool-output observers, but records nothing in the
session history. A failure after the stream has started is reported as a
final output of type "error".
"""

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import StreamingResponse

from errors import DevAgentError, format_error_for_client
from routers.chat_orchestration import ChatService, get_chat_service
from tools import ToolOutput, ToolRegistry, get_tool_registry

from .chat import SSE_HEADERS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tools")
async def list_tools(registry: ToolRegistry = Depends(get_tool_registry)) -> List[Dict[str, Any]]:
    return registry.get_tools_info()


async def _sse_outputs(tool_name: str, outputs: AsyncIterator[ToolOutput]) -> AsyncIterator[str]:
    try:
        async with aclosing(outputs) as stream:
            async for output in stream:
                yield f"data: {json.dumps(output.to_dict())}\n\n"
    except DevAgentError as e:
        logger.warning(f"Direct execution of {tool_name} failed: {e}")
        error = ToolOutput(type="error", content=format_error_for_client(e), metadata={"code": e.code.value})
        yield f"data: {json.dumps(error.to_dict())}\n\n"


@router.post("/tools/{tool_name}")
async def execute_tool(
    tool_name: str,
    session_id: str = Query(..., min_length=1),
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    service: ChatService = Depends(get_chat_service),
):
    """Run one tool outside a turn (404 unknown session or tool, 422 bad arguments)."""
    outputs = service.execute_tool(session_id, tool_name, arguments or {})
    return StreamingResponse(_sse_outputs(tool_name, outputs), media_type="text/event-stream", headers=SSE_HEADERS)
