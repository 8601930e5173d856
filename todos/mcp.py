"""
MCP stdio server for todos.

Exposes the todo store as MCP tools so local AI agents can list, read,
create and edit todos in the project's todos directory.

Usage:
    todos mcp                              # stdio server (via CLI)
    claude --mcp-server todos="todos mcp"  # Claude Code integration

All store calls are serialized through a single asyncio.Lock. Cross-process
safety is handled by the per-todo lock files. The server has no human to
ask, so stale locks are reported rather than stolen.
"""

import asyncio
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .cli import format_summary_line, format_todo_detail, format_todo_list
from .config import session_from_env, todos_dir_for
from .errors import TodoError
from .lock import NonInteractiveHost
from .logging_config import configure_ops_log
from .store import TodoResult, TodoStore
from .types import TodoPatch

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "todos",
    instructions=(
        "File-based todos for the current project. "
        "List and search todos, read one, create new ones, "
        "update fields, and append notes to the body."
    ),
)

_store: Optional[TodoStore] = None
_lock = asyncio.Lock()


def _get_store() -> TodoStore:
    """Lazy-init the store (respects TODOS_DIR and TODOS_SESSION).

    Must be called inside ``async with _lock``.
    """
    global _store
    if _store is None:
        _store = TodoStore(todos_dir_for(), host=NonInteractiveHost(session_from_env()))
    return _store


def _render(result: TodoResult, label: str) -> str:
    if result.error is not None:
        return f"Error: {result.error}"
    return f"{label} {format_summary_line(result.todo)}"


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_ADDITIVE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "List todos, open first. "
        "With a query, only todos where every word fuzzy-matches id, title, "
        "tags or status are returned, best match first."
    ),
    annotations=_READ_ONLY,
)
async def todo_list(
    query: Annotated[Optional[str], Field(
        description="Optional fuzzy filter, e.g. 'auth bug'.",
    )] = None,
) -> str:
    """List or search todos."""
    async with _lock:
        store = _get_store()
        todos = store.search(query) if query else store.list()
    return format_todo_list(todos)


@mcp.tool(
    description="Read one todo including its Markdown body.",
    annotations=_READ_ONLY,
)
async def todo_get(
    id: Annotated[str, Field(description="Todo id (filename without .md).")],
) -> str:
    """Get a todo by id."""
    if not id:
        return "Error: id required"
    async with _lock:
        store = _get_store()
        try:
            todo = store.get(id)
        except TodoError as e:
            return f"Error: {e}"
    if todo is None:
        return f"Todo {id} not found"
    return format_todo_detail(todo)


@mcp.tool(
    description="Create a todo. Returns the new todo's id.",
    annotations=_ADDITIVE,
)
async def todo_create(
    title: Annotated[str, Field(description="Todo title.")],
    tags: Annotated[Optional[list[str]], Field(
        description='Tags, e.g. ["auth", "urgent"].',
    )] = None,
    status: Annotated[Optional[str], Field(
        description="Initial status (default: open).",
    )] = None,
    body: Annotated[Optional[str], Field(
        description="Markdown body.",
    )] = None,
) -> str:
    """Create a todo."""
    if not title:
        return "Error: title required"
    async with _lock:
        result = _get_store().create(title, tags=tags, status=status, body=body)
    return _render(result, "Created")


@mcp.tool(
    description=(
        "Update fields of a todo. Only the fields given are changed. "
        "Use status 'closed' or 'done' to close a todo."
    ),
    annotations=_DESTRUCTIVE,
)
async def todo_update(
    id: Annotated[str, Field(description="Todo id.")],
    title: Annotated[Optional[str], Field(description="New title.")] = None,
    status: Annotated[Optional[str], Field(description="New status.")] = None,
    tags: Annotated[Optional[list[str]], Field(description="Replacement tag list.")] = None,
    body: Annotated[Optional[str], Field(description="Replacement body.")] = None,
) -> str:
    """Update a todo."""
    if not id:
        return "Error: id required"
    patch = TodoPatch(title=title, status=status, tags=tags, body=body)
    async with _lock:
        result = _get_store().update(id, patch)
    return _render(result, "Updated")


@mcp.tool(
    description="Append a note to a todo's body, separated by a blank line.",
    annotations=_ADDITIVE,
)
async def todo_append(
    id: Annotated[str, Field(description="Todo id.")],
    body: Annotated[str, Field(description="Text to append.")],
) -> str:
    """Append to a todo."""
    if not id:
        return "Error: id required"
    if not body:
        return "Error: body required"
    async with _lock:
        result = _get_store().append(id, body)
    return _render(result, "Appended to")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP stdio server."""
    import os
    import signal
    # The stdio reader shields the blocking readline from cancellation,
    # so the first Ctrl+C would be swallowed without our own handler.
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))

    todos_dir = todos_dir_for()
    if todos_dir.is_dir():
        configure_ops_log(todos_dir)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
