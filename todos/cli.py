"""
CLI interface for file-backed todos.

Usage:
    todos list "auth bug"
    todos create "Fix login" --tag auth
    todos append 1a2b3c4d "done via PR #42"
    todos close 1a2b3c4d
"""

import json
import os
import select
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import session_from_env, todos_dir_for
from .errors import TodoError
from .logging_config import configure_quiet_mode, enable_debug_mode
from .search import split_by_status
from .store import TodoResult, TodoStore
from .types import DEFAULT_STATUS, TodoPatch, TodoRecord, TodoSummary


def _has_stdin_data() -> bool:
    """Check if stdin has data available without blocking.

    Returns True only when stdin is a pipe with data ready to read.
    """
    if sys.stdin.isatty():
        return False
    try:
        ready, _, _ = select.select([sys.stdin], [], [], 0)
        return bool(ready)
    except (ValueError, OSError):
        return False


# Set TODOS_VERBOSE=1 to enable debug mode via environment
if os.environ.get("TODOS_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


class TerminalHost:
    """Host for a CLI session: confirms on the terminal when attached to one."""

    def __init__(self, session: Optional[str] = None):
        self._session = session

    @property
    def has_ui(self) -> bool:
        return sys.stdin.isatty()

    def confirm(self, title: str, message: str) -> bool:
        return typer.confirm(f"{title}: {message}", default=False)

    def session_id(self) -> Optional[str]:
        return self._session


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"todos {version('todos-store')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_dir_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _dir_callback(value: Optional[Path]):
    global _dir_override
    _dir_override = value


def _todos_dir() -> Path:
    """The todos directory: --dir, then TODOS_DIR, then ./.todos."""
    return _dir_override.expanduser().resolve() if _dir_override else todos_dir_for()


def _get_store() -> TodoStore:
    """Open the store for the current directory (or --dir / TODOS_DIR)."""
    root = _todos_dir()
    try:
        return TodoStore(root, host=TerminalHost(session_from_env()))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


app = typer.Typer(
    name="todos",
    help="File-backed todos with locking and fuzzy search.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def todo_title(todo: TodoSummary) -> str:
    return todo.title or "(untitled)"


def todo_status(todo: TodoSummary) -> str:
    return todo.status or DEFAULT_STATUS


def format_summary_line(todo: TodoSummary) -> str:
    """One-line summary: #id (status) title [tags]."""
    tag_text = f" [{', '.join(todo.tags)}]" if todo.tags else ""
    return f"#{todo.id} ({todo_status(todo)}) {todo_title(todo)}{tag_text}"


def format_todo_list(todos: list[TodoSummary]) -> str:
    """Open and closed sections, each with a count."""
    if not todos:
        return "No todos."

    open_todos, closed_todos = split_by_status(todos)
    lines: list[str] = []

    def push_section(label: str, section: list[TodoSummary]):
        lines.append(f"{label} ({len(section)}):")
        if not section:
            lines.append("  none")
            return
        for todo in section:
            lines.append(f"  {format_summary_line(todo)}")

    push_section("Open todos", open_todos)
    lines.append("")
    push_section("Closed todos", closed_todos)
    return "\n".join(lines)


def format_todo_detail(todo: TodoRecord) -> str:
    """Summary line followed by tags, creation time and body."""
    tags = ", ".join(todo.tags) if todo.tags else "none"
    body = todo.body.strip() or "No details yet."
    lines = [
        format_summary_line(todo),
        f"Tags: {tags}",
        f"Created: {todo.created_at or 'unknown'}",
        "",
        body,
    ]
    return "\n".join(lines)


def _echo_todo(todo: TodoRecord, label: Optional[str] = None) -> None:
    if _get_json_output():
        typer.echo(json.dumps(todo.to_dict(), ensure_ascii=False))
    elif label:
        typer.echo(f"{label} {format_summary_line(todo)}")
    else:
        typer.echo(format_todo_detail(todo))


def _finish(result: TodoResult, label: str) -> None:
    """Print a mutation result, or the error and exit 1."""
    if result.error is not None:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)
    _echo_todo(result.todo, label)


def _complete_id(incomplete: str) -> list[tuple[str, str]]:
    """Shell completion for todo ids, ranked by fuzzy match."""
    store = TodoStore(_todos_dir())
    return [(t.id, todo_title(t)) for t in store.complete(incomplete)]


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

IdArgument = Annotated[
    str,
    typer.Argument(help="Todo id", autocompletion=_complete_id),
]

TagOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--tag", "-t",
        help="Tag (repeatable)"
    )
]


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    todos_dir: Annotated[Optional[Path], typer.Option(
        "--dir", "-d",
        envvar="TODOS_DIR",
        help="Path to the todos directory (default: ./.todos)",
        callback=_dir_callback,
        is_eager=True,
    )] = None,
):
    """File-backed todos with locking and fuzzy search."""
    # If no subcommand provided, list todos
    if ctx.invoked_subcommand is None:
        list_todos(query=None)


@app.command("list")
def list_todos(
    query: Annotated[Optional[str], typer.Argument(
        help="Fuzzy filter; every word must match id, title, tags or status"
    )] = None,
):
    """
    List todos, open first.

    \b
    Examples:
        todos list                 # Everything, open then closed, oldest first
        todos list auth            # Fuzzy match, best first
        todos list "bug urgent"    # Both words must match
    """
    store = _get_store()
    todos = store.search(query) if query else store.list()
    if _get_json_output():
        typer.echo(json.dumps([t.to_dict() for t in todos], ensure_ascii=False))
    else:
        typer.echo(format_todo_list(todos))


@app.command()
def get(id: IdArgument):
    """Show one todo with its body."""
    store = _get_store()
    try:
        todo = store.get(id)
    except TodoError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if todo is None:
        typer.echo(f"Todo {id} not found", err=True)
        raise typer.Exit(1)
    _echo_todo(todo)


@app.command()
def create(
    title: Annotated[str, typer.Argument(help="Todo title")],
    tag: TagOption = None,
    status: Annotated[Optional[str], typer.Option(
        "--status", help="Initial status (default: open)"
    )] = None,
    body: Annotated[Optional[str], typer.Option(
        "--body", "-b", help="Body text (Markdown)"
    )] = None,
):
    """Create a todo."""
    store = _get_store()
    _finish(store.create(title, tags=tag, status=status, body=body), "Created")


@app.command()
def update(
    id: IdArgument,
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    status: Annotated[Optional[str], typer.Option("--status", help="New status")] = None,
    tag: TagOption = None,
    clear_tags: Annotated[bool, typer.Option(
        "--clear-tags", help="Remove all tags"
    )] = False,
    body: Annotated[Optional[str], typer.Option(
        "--body", "-b", help="Replace the body"
    )] = None,
):
    """Change fields of a todo. Options not given are left alone."""
    tags = [] if clear_tags else tag
    patch = TodoPatch(title=title, status=status, tags=tags, body=body)
    if patch.is_empty():
        typer.echo("Error: nothing to update", err=True)
        raise typer.Exit(1)
    store = _get_store()
    _finish(store.update(id, patch), "Updated")


@app.command()
def append(
    id: IdArgument,
    text: Annotated[Optional[str], typer.Argument(
        help="Text to append (read from stdin if omitted)"
    )] = None,
):
    """Append text to a todo's body."""
    if text is None and _has_stdin_data():
        text = sys.stdin.read()
    store = _get_store()
    _finish(store.append(id, text or ""), "Appended to")


@app.command()
def close(id: IdArgument):
    """Mark a todo closed."""
    store = _get_store()
    _finish(store.close(id), "Closed")


@app.command()
def reopen(id: IdArgument):
    """Mark a todo open again."""
    store = _get_store()
    _finish(store.reopen(id), "Reopened")


@app.command()
def mcp(
    todos_dir: Annotated[Optional[Path], typer.Option(
        "--dir", "-d", help="Path to the todos directory"
    )] = None,
):
    """Start MCP stdio server for AI agent integration."""
    if todos_dir is not None:
        os.environ["TODOS_DIR"] = str(todos_dir)
    elif _dir_override is not None:
        os.environ["TODOS_DIR"] = str(_dir_override)
    from .mcp import main as mcp_main
    mcp_main()


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(
            e, context="todos CLI",
            todos_dir=_todos_dir() if _dir_override else None,
        )
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
