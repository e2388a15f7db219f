"""
Tool Registry - Unified tool dispatch pattern for devagent.

Each tool is a self-contained definition (name, description, typed
parameter schema, executor) registered by name. The turn orchestrator
resolves tools through the registry, exports their schema to the model
provider once per turn, and consumes each execution as an async sequence
of ToolOutput values.

Built-in tools (file_system, execute_command) are registered by
register_builtin_tools().
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from errors import DevAgentError, ToolArgumentsError, ToolExecutionError, ToolNotFoundError
from logging_config import log_tool

logger = logging.getLogger(__name__)


class ToolCategory(Enum):
    """Tool categories for grouping and display."""

    FILESYSTEM = "filesystem"
    TERMINAL = "terminal"
    VCS = "vcs"
    BROWSER = "browser"
    ANALYSIS = "analysis"
    OTHER = "other"


# JSON schema type -> accepted Python types (bool is excluded from numbers below)
_JSON_TYPES = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
}


@dataclass
class ParameterSpec:
    """One entry of a tool's parameter schema."""

    type: str
    description: str
    required: bool = False
    enum: Optional[List[str]] = None

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


@dataclass
class ToolOutput:
    """One unit of output from a tool execution.

    type is a kind tag such as stdout, file_content, directory_listing or
    exit; content is the primary text; metadata is free-form.
    """

    type: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "content": self.content, "metadata": self.metadata}


ToolExecutor = Callable[[Dict[str, Any]], AsyncIterator[ToolOutput]]


@dataclass
class ToolDefinition:
    """Definition of a tool for the registry.

    parameters is ordered; its order is preserved in the exported schema.
    """

    name: str
    description: str
    parameters: Dict[str, ParameterSpec]
    executor: ToolExecutor
    category: ToolCategory = ToolCategory.OTHER
    friendly_name: str = ""

    @property
    def required_params(self) -> List[str]:
        return [name for name, spec in self.parameters.items() if spec.required]

    def to_schema(self) -> Dict[str, Any]:
        """Provider tool declaration."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": {
                "type": "object",
                "properties": {name: spec.to_schema() for name, spec in self.parameters.items()},
                "required": self.required_params,
            },
        }

    def to_info(self) -> Dict[str, Any]:
        """Client-facing description of the tool."""
        return {
            "name": self.name,
            "friendly_name": self.friendly_name or self.name,
            "description": self.description,
            "category": self.category.value,
            "parameters": {
                name: {
                    "type": spec.type,
                    "description": spec.description,
                    "required": spec.required,
                    "enum": spec.enum,
                }
                for name, spec in self.parameters.items()
            },
        }


class ToolRegistry:
    """
    Name -> ToolDefinition map, populated at startup.

    Usage:
        registry = ToolRegistry()
        registry.register(ToolDefinition(...))

        # Provider schema, once per turn
        tools_schema = registry.get_tools_schema()

        # Execute a tool
        async for output in registry.execute("file_system", {"operation": "list", "path": "/tmp"}):
            ...
    """

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool definition (replaces any tool with the same name)."""
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_tool(self, name: str) -> ToolDefinition:
        """Get a tool definition by name.

        Raises:
            ToolNotFoundError: if no tool is registered under name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def get_tools_schema(self) -> List[Dict[str, Any]]:
        """Generate provider tool declarations in registration order."""
        return [tool.to_schema() for tool in self._tools.values()]

    def get_tools_info(self) -> List[Dict[str, Any]]:
        return [tool.to_info() for tool in self._tools.values()]

    def validate_arguments(self, name: str, arguments: Any) -> None:
        """Check arguments against the tool's parameter schema.

        Raises:
            ToolNotFoundError: unknown tool
            ToolArgumentsError: arguments are not an object, a required
                parameter is missing, a value has the wrong JSON type, or a
                value is outside the declared enum
        """
        tool = self.get_tool(name)

        if not isinstance(arguments, dict):
            raise ToolArgumentsError(
                "Tool arguments must be an object",
                details=f"got {type(arguments).__name__}",
                tool_name=name,
                error_type="type",
            )

        for param in tool.required_params:
            if arguments.get(param) is None:
                raise ToolArgumentsError(
                    f"Missing required parameter: {param}",
                    tool_name=name,
                    parameter=param,
                )

        for param, value in arguments.items():
            spec = tool.parameters.get(param)
            if spec is None or value is None:
                # Unknown keys pass through to the executor untouched
                continue

            accepted = _JSON_TYPES.get(spec.type)
            if accepted is not None:
                is_bool = isinstance(value, bool)
                if not isinstance(value, accepted) or (is_bool and spec.type != "boolean"):
                    raise ToolArgumentsError(
                        f"Invalid type for parameter: {param}",
                        details=f"expected {spec.type}, got {type(value).__name__}",
                        tool_name=name,
                        parameter=param,
                        error_type="type",
                    )

            if spec.enum and value not in spec.enum:
                raise ToolArgumentsError(
                    f"Invalid value for parameter: {param}",
                    details=f"expected one of {', '.join(spec.enum)}",
                    tool_name=name,
                    parameter=param,
                    error_type="value",
                )

    async def execute(self, name: str, arguments: Dict[str, Any]) -> AsyncIterator[ToolOutput]:
        """
        Execute a tool by name, yielding its outputs in production order.

        Raises:
            ToolNotFoundError: unknown tool
            ToolArgumentsError: arguments fail validation
            ToolExecutionError: the executor failed
        """
        tool = self.get_tool(name)
        self.validate_arguments(name, arguments)

        log_tool(logger, name, "start", args=arguments)
        count = 0
        try:
            async for output in tool.executor(dict(arguments)):
                count += 1
                yield output
        except DevAgentError:
            raise
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            raise ToolExecutionError(f"Tool {name} failed", details=str(e), tool_name=name) from e

        log_tool(logger, name, "end", outputs=count)

    def clear(self) -> None:
        """Clear all registered tools (for testing)."""
        self._tools.clear()

    def __len__(self) -> int:
        return len(self._tools)


def register_builtin_tools(registry: "ToolRegistry") -> None:
    """Register the built-in file system and terminal tools."""
    from .filesystem import FILE_SYSTEM_TOOL
    from .terminal import EXECUTE_COMMAND_TOOL

    registry.register(FILE_SYSTEM_TOOL)
    registry.register(EXECUTE_COMMAND_TOOL)
    logger.info(f"Registered {len(registry)} built-in tools")


# Singleton instance
_registry: Optional[ToolRegistry] = None


def get_tool_registry() -> ToolRegistry:
    """Get the tool registry singleton, populated with built-in tools."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
        register_builtin_tools(_registry)
    return _registry
