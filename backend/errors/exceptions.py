"""
Custom exception hierarchy for devagent.

All exceptions inherit from DevAgentError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging

Every failure is scoped to a single turn; none of these is fatal to the
process.
"""

from typing import Any, Optional

from .codes import ErrorCode


class DevAgentError(Exception):
    """Base exception for all devagent errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class SessionNotFoundError(DevAgentError):
    """The session id is unknown to the session store."""

    code = ErrorCode.SESSION_NOT_FOUND
    recoverable = True

    def __init__(self, session_id: str, details: Optional[str] = None, **context: Any):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}", details, session_id=session_id, **context)


class ToolCallNotFoundError(DevAgentError):
    """A tool result references a call id with no prior tool-call message."""

    code = ErrorCode.SESSION_TOOL_CALL_NOT_FOUND
    recoverable = False

    def __init__(self, call_id: str, details: Optional[str] = None, **context: Any):
        self.call_id = call_id
        super().__init__(f"Tool call not found: {call_id}", details, call_id=call_id, **context)


class ToolNotFoundError(DevAgentError):
    """The model (or a client) asked for a tool that is not registered."""

    code = ErrorCode.TOOL_NOT_FOUND
    recoverable = True

    def __init__(self, tool_name: str, details: Optional[str] = None, **context: Any):
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}", details, tool_name=tool_name, **context)


class ToolArgumentsError(DevAgentError):
    """Tool arguments do not satisfy the tool's parameter schema."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        tool_name: Optional[str] = None,
        parameter: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        # Set appropriate code based on error type
        if error_type == "type":
            code = ErrorCode.VALIDATION_INVALID_TYPE
        elif error_type == "value":
            code = ErrorCode.VALIDATION_INVALID_VALUE
        else:
            code = ErrorCode.VALIDATION_MISSING_PARAM

        ctx = {**context}
        if tool_name:
            ctx["tool_name"] = tool_name
        if parameter:
            ctx["parameter"] = parameter
        super().__init__(message, details, code=code, **ctx)


class ProtocolError(DevAgentError):
    """The model stream violated the tool-invocation grammar."""

    code = ErrorCode.PROTOCOL_TRUNCATED_CALL
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        kind: Optional[str] = None,
        call_id: Optional[str] = None,
        **context: Any,
    ):
        if kind == "bad_arguments":
            code = ErrorCode.PROTOCOL_BAD_ARGUMENTS
        else:
            code = ErrorCode.PROTOCOL_TRUNCATED_CALL

        ctx = {**context}
        if call_id:
            ctx["call_id"] = call_id
        super().__init__(message, details, code=code, **ctx)


class TransportError(DevAgentError):
    """Non-2xx response or connection failure from the model provider."""

    code = ErrorCode.TRANSPORT_HTTP_STATUS
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        kind: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **context: Any,
    ):
        if kind == "connection":
            code = ErrorCode.TRANSPORT_CONNECTION
        elif kind == "timeout":
            code = ErrorCode.TRANSPORT_TIMEOUT
        elif kind == "stream":
            code = ErrorCode.TRANSPORT_STREAM_ERROR
        else:
            code = ErrorCode.TRANSPORT_HTTP_STATUS

        self.status_code = status_code
        self.body = body

        ctx = {**context}
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class ToolExecutionError(DevAgentError):
    """The tool itself failed while producing its output sequence."""

    code = ErrorCode.TOOL_EXECUTION_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        tool_name: Optional[str] = None,
        kind: Optional[str] = None,
        **context: Any,
    ):
        code = ErrorCode.TOOL_TIMEOUT if kind == "timeout" else ErrorCode.TOOL_EXECUTION_FAILED

        ctx = {**context}
        if tool_name:
            ctx["tool_name"] = tool_name
        super().__init__(message, details, code=code, **ctx)
