"""
devagent Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        DevAgentError,
        SessionNotFoundError,
        ToolNotFoundError,
        ToolCallNotFoundError,
        ToolArgumentsError,
        ProtocolError,
        TransportError,
        ToolExecutionError,

        # Response builders
        error_response,
        success_response,
        format_error_for_client,

        # Handlers
        log_error,
        register_exception_handlers,
    )

Example:
    from errors import ToolArgumentsError

    if "path" not in arguments:
        raise ToolArgumentsError(
            "Missing required parameter: path",
            tool_name="file_system",
            parameter="path",
        )
"""

from .codes import ErrorCode
from .exceptions import (
    DevAgentError,
    SessionNotFoundError,
    ToolNotFoundError,
    ToolCallNotFoundError,
    ToolArgumentsError,
    ProtocolError,
    TransportError,
    ToolExecutionError,
)
from .response import (
    error_response,
    success_response,
    format_error_for_client,
)
from .handlers import (
    log_error,
    register_exception_handlers,
    status_for_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "DevAgentError",
    "SessionNotFoundError",
    "ToolNotFoundError",
    "ToolCallNotFoundError",
    "ToolArgumentsError",
    "ProtocolError",
    "TransportError",
    "ToolExecutionError",
    # Response builders
    "error_response",
    "success_response",
    "format_error_for_client",
    # Handlers
    "log_error",
    "register_exception_handlers",
    "status_for_error",
]
