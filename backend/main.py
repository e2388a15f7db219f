"""
devagent - AI developer agent backend
FastAPI service streaming model turns with tool execution
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routers import chat, sessions, tool_output, tools_api
from errors import register_exception_handlers
from logging_config import setup_logging
from config import parse_cors_origins, runtime_config
from services import get_session_store
from services.llm_client import close_llm_client
from tools import get_tool_registry

setup_logging(runtime_config.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    registry = get_tool_registry()
    logger.info(
        f"devagent starting: model={runtime_config.model_chat} "
        f"endpoint={runtime_config.llm_endpoint} tools={len(registry)}"
    )
    if not runtime_config.llm_api_key:
        logger.warning("No model API key configured (set LLM_API_KEY or ANTHROPIC_API_KEY)")
    logger.info(f"Tool workspace: {runtime_config.workspace_dir}")

    yield

    # Shutdown
    await close_llm_client()
    logger.info(f"devagent signing off ({get_session_store().count()} sessions in memory)")


app = FastAPI(
    title="devagent",
    description="Streaming tool-call orchestration for an AI developer agent",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(parse_cors_origins(runtime_config.cors_origins)),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API Routers
# Tool output router is mounted WITHOUT /api prefix so WebSocket is at /ws/tool-output
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(tools_api.router, prefix="/api", tags=["tools"])
app.include_router(tool_output.router, tags=["tool-output"])


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "service": "devagent",
        "model": runtime_config.model_chat,
        "api_key_configured": bool(runtime_config.llm_api_key),
        "sessions": get_session_store().count(),
        "tools": [tool.name for tool in get_tool_registry().list_tools()],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
