"""
Standard error response builders for devagent.

Provides consistent response formats for HTTP error bodies and for the
terminal error chunk of a streamed turn.
"""

from typing import Any, Optional

from .codes import ErrorCode
from .exceptions import DevAgentError


def error_response(error: DevAgentError | Exception, tool: Optional[str] = None, include_context: bool = True) -> dict:
    """Build a standard error response dictionary.

    Args:
        error: The exception to convert to a response
        tool: Optional tool name for context
        include_context: Whether to include the context dict (disable for privacy)

    Returns:
        Standard error response dict with success=False

    Example:
        >>> from errors import SessionNotFoundError, error_response
        >>> error_response(SessionNotFoundError("abc"))
        {
            "success": False,
            "error": {
                "code": "SESSION_NOT_FOUND",
                "message": "Session not found: abc",
                "details": None,
                "tool": None,
                "recoverable": True,
                "context": {"session_id": "abc"}
            }
        }
    """
    if isinstance(error, DevAgentError):
        return {
            "success": False,
            "error": {
                "code": error.code.value,
                "message": error.message,
                "details": error.details,
                "tool": tool,
                "recoverable": error.recoverable,
                "context": error.context if include_context else None,
            },
        }

    # Fallback for foreign exceptions
    return {
        "success": False,
        "error": {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "tool": tool,
            "recoverable": False,
            "context": None,
        },
    }


def success_response(data: Optional[dict] = None, **kwargs: Any) -> dict:
    """Build a standard success response dictionary.

    Example:
        >>> success_response(session_id="abc")
        {"success": True, "session_id": "abc"}
    """
    response = {"success": True}

    if data:
        response.update(data)
    if kwargs:
        response.update(kwargs)

    return response


def format_error_for_client(error: DevAgentError | Exception) -> str:
    """Format an error as the text of a terminal stream chunk.

    The streamed response of a failed turn ends with exactly one chunk
    carrying this text.
    """
    if isinstance(error, DevAgentError):
        text = f"[Error: {error.message}"
        if error.details:
            text += f" - {error.details}"
        return text + "]"

    return f"[Error: {error}]"
