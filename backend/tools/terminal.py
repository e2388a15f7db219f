"""
execute_command tool - bounded command execution.

The command is split with shell quoting rules and run without a shell.
Output lines (stdout and stderr merged) are yielded as they are produced,
followed by one exit output. A command that outlives
runtime_config.command_timeout is killed and reported as a timeout.
"""

import asyncio
import logging
import shlex
from typing import Any, AsyncIterator, Dict

from config import runtime_config
from errors import ToolArgumentsError, ToolExecutionError

from .registry import ParameterSpec, ToolCategory, ToolDefinition, ToolOutput

logger = logging.getLogger(__name__)


async def execute_command(arguments: Dict[str, Any]) -> AsyncIterator[ToolOutput]:
    """Run a command, streaming its output line by line."""
    command = arguments["command"]
    working_dir = arguments.get("workingDirectory") or runtime_config.workspace_dir
    timeout = runtime_config.command_timeout

    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise ToolArgumentsError(
            "Malformed command", details=str(e), tool_name="execute_command", parameter="command", error_type="value"
        ) from e
    if not argv:
        raise ToolArgumentsError("Empty command", tool_name="execute_command", parameter="command", error_type="value")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=working_dir,
        )
    except OSError as e:
        raise ToolExecutionError(
            "Could not start command", details=str(e), tool_name="execute_command", command=command
        ) from e

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError()
            line = await asyncio.wait_for(process.stdout.readline(), timeout=remaining)
            if not line:
                break
            yield ToolOutput(
                type="stdout",
                content=line.decode("utf-8", errors="replace").rstrip("\r\n"),
                metadata={"command": command},
            )

        exit_code = await asyncio.wait_for(process.wait(), timeout=max(deadline - loop.time(), 0.1))
    except asyncio.TimeoutError:
        logger.warning(f"Command timed out after {timeout:g}s: {command}")
        raise ToolExecutionError(
            f"Command timed out after {timeout:g} seconds",
            tool_name="execute_command",
            kind="timeout",
            command=command,
        )
    finally:
        if process.returncode is None:
            process.kill()
            await process.wait()

    yield ToolOutput(
        type="exit",
        content=str(exit_code),
        metadata={"command": command, "exitCode": exit_code},
    )


EXECUTE_COMMAND_TOOL = ToolDefinition(
    name="execute_command",
    friendly_name="Terminal",
    description="Execute shell commands in the terminal",
    parameters={
        "command": ParameterSpec(type="string", description="The command to execute", required=True),
        "workingDirectory": ParameterSpec(type="string", description="Working directory for command execution"),
    },
    executor=execute_command,
    category=ToolCategory.TERMINAL,
)
