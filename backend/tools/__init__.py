"""devagent tool capabilities."""

from .registry import (
    ParameterSpec,
    ToolCategory,
    ToolDefinition,
    ToolOutput,
    ToolRegistry,
    get_tool_registry,
    register_builtin_tools,
)

__all__ = [
    "ParameterSpec",
    "ToolCategory",
    "ToolDefinition",
    "ToolOutput",
    "ToolRegistry",
    "get_tool_registry",
    "register_builtin_tools",
]
