"""
Error handling utilities for devagent.

Provides consistent error logging and the FastAPI exception handlers that
turn DevAgentError into JSON HTTP responses.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .codes import ErrorCode
from .exceptions import DevAgentError
from .response import error_response

logger = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.TOOL_NOT_FOUND: 404,
    ErrorCode.SESSION_TOOL_CALL_NOT_FOUND: 409,
    ErrorCode.VALIDATION_MISSING_PARAM: 422,
    ErrorCode.VALIDATION_INVALID_TYPE: 422,
    ErrorCode.VALIDATION_INVALID_VALUE: 422,
    ErrorCode.TRANSPORT_HTTP_STATUS: 502,
    ErrorCode.TRANSPORT_CONNECTION: 502,
    ErrorCode.TRANSPORT_STREAM_ERROR: 502,
    ErrorCode.TRANSPORT_TIMEOUT: 504,
    ErrorCode.TOOL_TIMEOUT: 504,
}


def status_for_error(error: DevAgentError) -> int:
    """Map an error code onto an HTTP status."""
    return _STATUS_BY_CODE.get(error.code, 500)


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="turn")
        # Logs: "[turn] SESSION_NOT_FOUND: Session not found: abc"
    """
    if isinstance(error, DevAgentError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)


async def _devagent_error_handler(request: Request, exc: DevAgentError) -> JSONResponse:
    status = status_for_error(exc)
    log_error(logger, exc, context=f"{request.method} {request.url.path}", include_traceback=status >= 500)
    return JSONResponse(status_code=status, content=error_response(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the DevAgentError handler on an application."""
    app.add_exception_handler(DevAgentError, _devagent_error_handler)
