"""
devagent Logging Configuration - Color-Coded Console Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_message_in, log_message_out, log_tool, log_llm, log_stream
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_message_in, log_tool
    setup_logging()
    logger = logging.getLogger(__name__)
    log_message_in(logger, "list files in /tmp", session="abc")
"""

import logging
import sys
from typing import Union

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming message
    "MSG_OUT": "\033[92m",  # Green - outgoing response
    "STREAM": "\033[95m",  # Magenta - stream lifecycle
    "TOOL": "\033[93m",  # Yellow - tool calls
    "LLM": "\033[94m",  # Blue - LLM operations
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}

PREVIEW_CHARS = 80


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure colored logging for the application."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """Truncate text for log lines."""
    if text is None:
        return ""
    return text[:limit] + "..." if len(text) > limit else text


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """Log incoming user message.

    Args:
        logger: Logger instance
        message: User message text
        **context: Additional context (session, history size, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> MESSAGE{COLORS['RESET']} {preview(message)} [{ctx}]")


def log_message_out(
    logger: logging.Logger,
    tools_used: list = None,
    chunks: int = 0,
) -> None:
    """Log a completed response stream.

    Args:
        logger: Logger instance
        tools_used: List of tool names used
        chunks: Number of chunks streamed to the client
    """
    tools = ", ".join(tools_used) if tools_used else "none"
    logger.info(f"{COLORS['MSG_OUT']}<<< RESPONSE{COLORS['RESET']} tools=[{tools}] chunks={chunks}")


def log_stream(logger: logging.Logger, state: str, **context) -> None:
    """Log model stream start/end.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        **context: Additional context (session, events, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    if state == "start":
        logger.info(f"{COLORS['STREAM']}... STREAM{COLORS['RESET']} started {ctx}")
    else:
        logger.info(f"{COLORS['STREAM']}... STREAM{COLORS['RESET']} done {ctx}")


def log_tool(
    logger: logging.Logger,
    tool_name: str,
    state: str,
    **context,
) -> None:
    """Log tool execution.

    Args:
        logger: Logger instance
        tool_name: Name of the tool
        state: 'start' or 'end'
        **context: Additional context (call id, outputs, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    if state == "start":
        logger.info(f"{COLORS['TOOL']}>>> TOOL{COLORS['RESET']} {tool_name} {ctx}")
    else:
        logger.info(f"{COLORS['TOOL']}<<< TOOL{COLORS['RESET']} {tool_name} {ctx}")


def log_llm(
    logger: logging.Logger,
    state: str,
    model: str = "",
    duration: float = 0,
) -> None:
    """Log LLM call.

    Args:
        logger: Logger instance
        state: 'start' or 'end'
        model: Model name
        duration: Call duration in seconds (for end state)
    """
    if state == "start":
        logger.info(f"{COLORS['LLM']}>>> LLM{COLORS['RESET']} calling {model}")
    else:
        logger.info(f"{COLORS['LLM']}<<< LLM{COLORS['RESET']} {model} completed in {duration:.1f}s")
