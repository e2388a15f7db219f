"""
Error codes for devagent.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses and error chunks.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for devagent.

    Categories:
    - SESSION_*: Conversation session errors
    - TOOL_*: Tool lookup and execution errors
    - PROTOCOL_*: Model stream grammar violations
    - TRANSPORT_*: Model provider transport errors
    - VALIDATION_*: Input validation errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Session errors
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_TOOL_CALL_NOT_FOUND = "SESSION_TOOL_CALL_NOT_FOUND"

    # Tool errors
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"

    # Stream protocol errors
    PROTOCOL_TRUNCATED_CALL = "PROTOCOL_TRUNCATED_CALL"
    PROTOCOL_BAD_ARGUMENTS = "PROTOCOL_BAD_ARGUMENTS"

    # Model transport errors
    TRANSPORT_HTTP_STATUS = "TRANSPORT_HTTP_STATUS"
    TRANSPORT_CONNECTION = "TRANSPORT_CONNECTION"
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    TRANSPORT_STREAM_ERROR = "TRANSPORT_STREAM_ERROR"

    # Validation errors (input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_INVALID_TYPE = "VALIDATION_INVALID_TYPE"
    VALIDATION_INVALID_VALUE = "VALIDATION_INVALID_VALUE"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_STATE_ERROR = "INTERNAL_STATE_ERROR"
