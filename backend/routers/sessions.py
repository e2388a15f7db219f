"""
devagent Sessions Router
Session creation and history lookup

Sessions live in the in-memory session store for the lifetime of the
process; history excludes the system message.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from routers.chat_orchestration import ChatService, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sessions")
async def create_session(service: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    """Start a new conversation."""
    return service.create_session()


@router.get("/sessions/{session_id}/history")
async def get_history(session_id: str, service: ChatService = Depends(get_chat_service)) -> List[Dict[str, Any]]:
    """Visible messages of a session, oldest first (404 if unknown)."""
    return [message.to_dict() for message in service.get_history(session_id)]
