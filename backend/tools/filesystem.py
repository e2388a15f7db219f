"""
file_system tool - read, write, append, list and delete files.

Each operation yields exactly one ToolOutput. Blocking file I/O runs in a
worker thread so the event loop keeps serving other sessions.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict

from errors import ToolArgumentsError, ToolExecutionError

from .registry import ParameterSpec, ToolCategory, ToolDefinition, ToolOutput

logger = logging.getLogger(__name__)

OPERATIONS = ["read", "write", "append", "list", "delete"]


def _read(path: Path) -> ToolOutput:
    content = path.read_text(encoding="utf-8")
    return ToolOutput(
        type="file_content",
        content=content,
        metadata={"path": str(path), "size": len(content)},
    )


def _write(path: Path, content: str) -> ToolOutput:
    path.write_text(content, encoding="utf-8")
    return ToolOutput(
        type="file_written",
        content="File written successfully",
        metadata={"path": str(path), "size": len(content)},
    )


def _append(path: Path, content: str) -> ToolOutput:
    with open(path, "a", encoding="utf-8") as f:
        f.write(content)
    return ToolOutput(
        type="file_appended",
        content="Content appended successfully",
        metadata={"path": str(path), "appended_size": len(content)},
    )


def _list(path: Path) -> ToolOutput:
    entries = []
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        stat = entry.stat()
        is_dir = entry.is_dir()
        entries.append({
            "name": entry.name,
            "path": str(entry),
            "isDirectory": is_dir,
            "size": 0 if is_dir else stat.st_size,
            "lastModified": int(stat.st_mtime * 1000),
        })

    lines = [f"{e['name']}/" if e["isDirectory"] else e["name"] for e in entries]
    return ToolOutput(
        type="directory_listing",
        content="\n".join(lines) if lines else "(empty directory)",
        metadata={"path": str(path), "entries": entries},
    )


def _delete(path: Path) -> ToolOutput:
    existed = path.exists()
    if existed:
        path.unlink()
    return ToolOutput(
        type="file_deleted",
        content="File deleted successfully" if existed else "File does not exist",
        metadata={"path": str(path), "deleted": existed},
    )


async def execute_file_system(arguments: Dict[str, Any]) -> AsyncIterator[ToolOutput]:
    """Run one file system operation."""
    operation = str(arguments["operation"]).lower()
    path = Path(arguments["path"]).expanduser()

    if operation in ("write", "append") and arguments.get("content") is None:
        raise ToolArgumentsError(
            "Missing required parameter: content",
            details=f"'{operation}' needs content",
            tool_name="file_system",
            parameter="content",
        )

    if operation == "read":
        call = (_read, path)
    elif operation == "write":
        call = (_write, path, arguments["content"])
    elif operation == "append":
        call = (_append, path, arguments["content"])
    elif operation == "list":
        call = (_list, path)
    elif operation == "delete":
        call = (_delete, path)
    else:
        raise ToolArgumentsError(
            f"Unknown operation: {operation}",
            tool_name="file_system",
            parameter="operation",
            error_type="value",
        )

    try:
        output = await asyncio.to_thread(*call)
    except OSError as e:
        logger.error(f"file_system {operation} failed on {path}: {e}")
        raise ToolExecutionError(
            f"Error during {operation}",
            details=str(e),
            tool_name="file_system",
            path=str(path),
        ) from e

    yield output


FILE_SYSTEM_TOOL = ToolDefinition(
    name="file_system",
    friendly_name="File System",
    description="Perform file system operations like read, write, append, list, and delete",
    parameters={
        "operation": ParameterSpec(
            type="string",
            description="Operation: read, write, append, list, delete",
            required=True,
            enum=OPERATIONS,
        ),
        "path": ParameterSpec(type="string", description="File or directory path", required=True),
        "content": ParameterSpec(type="string", description="Content to write (for write/append operations)"),
    },
    executor=execute_file_system,
    category=ToolCategory.FILESYSTEM,
)
