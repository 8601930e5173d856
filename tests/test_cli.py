"""Tests for the todos CLI."""

import json
import os

import pytest
from typer.testing import CliRunner

from todos.cli import app, format_summary_line, format_todo_detail, format_todo_list
from todos.types import TodoRecord, TodoSummary


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, todos_dir):
    """Run the CLI against the test todos directory."""
    def _invoke(*args, input=None):
        return runner.invoke(app, ["--dir", str(todos_dir), *args], input=input)
    return _invoke


def _created_id(output: str) -> str:
    # "Created #1a2b3c4d (open) Title"
    return output.split("#", 1)[1].split(" ", 1)[0]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_summary_line(self):
        todo = TodoSummary(id="ab", title="Fix", tags=["a", "b"], status="wip")
        assert format_summary_line(todo) == "#ab (wip) Fix [a, b]"

    def test_summary_line_defaults(self):
        todo = TodoSummary(id="ab", title="", status="")
        assert format_summary_line(todo) == "#ab (open) (untitled)"

    def test_empty_list(self):
        assert format_todo_list([]) == "No todos."

    def test_sections(self):
        todos = [TodoSummary(id="a", title="one"), TodoSummary(id="b", title="two", status="done")]
        assert format_todo_list(todos) == (
            "Open todos (1):\n"
            "  #a (open) one\n"
            "\n"
            "Closed todos (1):\n"
            "  #b (done) two"
        )

    def test_empty_section_says_none(self):
        out = format_todo_list([TodoSummary(id="a", title="one")])
        assert out.endswith("Closed todos (0):\n  none")

    def test_detail(self):
        todo = TodoRecord(id="a", title="T", body="")
        out = format_todo_detail(todo)
        assert "Tags: none" in out
        assert "Created: unknown" in out
        assert out.endswith("No details yet.")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestCommands:
    def test_list_empty(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "No todos." in result.output

    def test_no_subcommand_lists(self, invoke):
        result = invoke()
        assert result.exit_code == 0
        assert "No todos." in result.output

    def test_create_get_append_close(self, invoke):
        result = invoke("create", "Fix login", "--tag", "auth", "--tag", "web")
        assert result.exit_code == 0, result.output
        assert "Created #" in result.output
        assert "Fix login [auth, web]" in result.output
        id = _created_id(result.output)

        result = invoke("append", id, "done via PR #42")
        assert result.exit_code == 0, result.output
        assert result.output.startswith("Appended to #")

        result = invoke("get", id)
        assert result.exit_code == 0
        assert result.output.rstrip().endswith("done via PR #42")

        result = invoke("close", id)
        assert result.exit_code == 0
        assert "(closed)" in result.output

        result = invoke("list")
        assert "Open todos (0):" in result.output
        assert "Closed todos (1):" in result.output

        result = invoke("reopen", id)
        assert "(open)" in result.output

    def test_list_with_query(self, invoke):
        invoke("create", "Fix auth bug", "--tag", "urgent")
        invoke("create", "Write docs")
        result = invoke("list", "bug auth")
        assert "Fix auth bug" in result.output
        assert "Write docs" not in result.output

    def test_json_output(self, runner, todos_dir):
        result = runner.invoke(app, ["--dir", str(todos_dir), "--json", "create", "T"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["title"] == "T"
        assert data["status"] == "open"

        result = runner.invoke(app, ["--dir", str(todos_dir), "--json", "list"])
        assert [t["id"] for t in json.loads(result.output)] == [data["id"]]

    def test_update_fields(self, invoke):
        id = _created_id(invoke("create", "Old", "--tag", "x").output)
        result = invoke("update", id, "--title", "New", "--clear-tags")
        assert result.exit_code == 0, result.output
        assert result.output.strip() == f"Updated #{id} (open) New"

    def test_update_nothing(self, invoke):
        result = invoke("update", "abc")
        assert result.exit_code == 1
        assert "nothing to update" in result.output

    def test_get_missing(self, invoke):
        result = invoke("get", "missing")
        assert result.exit_code == 1
        assert "Todo missing not found" in result.output

    def test_get_invalid_id(self, invoke):
        result = invoke("get", "../x")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_get_undecodable_file(self, invoke, todos_dir):
        todos_dir.mkdir()
        (todos_dir / "bad.md").write_bytes(b"\xff body")
        result = invoke("get", "bad")
        assert result.exit_code == 1
        assert "Error: Todo bad is unreadable" in result.output

    def test_append_requires_text(self, invoke):
        id = _created_id(invoke("create", "T").output)
        result = invoke("append", id)
        assert result.exit_code == 1
        assert "body required" in result.output

    def test_stale_lock_non_interactive(self, invoke, todos_dir):
        id = _created_id(invoke("create", "T").output)
        marker = todos_dir / f"{id}.lock"
        marker.write_text("{}")
        os.utime(marker, (1_000_000, 1_000_000))
        result = invoke("close", id)
        assert result.exit_code == 1
        assert "rerun in interactive mode" in result.output
        assert marker.exists()

    def test_fresh_lock_conflict(self, invoke, todos_dir):
        id = _created_id(invoke("create", "T").output)
        (todos_dir / f"{id}.lock").write_text(json.dumps({"session": "s-9"}))
        result = invoke("append", id, "more")
        assert result.exit_code == 1
        assert f"Todo {id} is locked (session s-9)" in result.output


def test_id_completion(invoke, todos_dir, monkeypatch):
    from todos.cli import _complete_id
    id = _created_id(invoke("create", "Fix auth bug").output)
    invoke("create", "Write docs")
    monkeypatch.setenv("TODOS_DIR", str(todos_dir))
    assert _complete_id("auth") == [(id, "Fix auth bug")]


def test_id_completion_uses_dir_option(tmp_path, monkeypatch):
    import todos.cli as cli
    from todos.store import TodoStore
    elsewhere = tmp_path / "elsewhere"
    id = TodoStore(elsewhere).create("Fix auth bug").todo.id
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "_dir_override", elsewhere)
    assert cli._complete_id("auth") == [(id, "Fix auth bug")]


def test_crash_is_logged_in_dir_option(tmp_path, monkeypatch, capsys):
    import sys
    import todos.cli as cli

    def broken_store():
        raise RuntimeError("kaboom")

    todos_dir = tmp_path / "todos"
    todos_dir.mkdir()
    monkeypatch.setattr(cli, "_dir_override", None)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setattr(cli, "_get_store", broken_store)
    monkeypatch.setattr(sys, "argv", ["todos", "--dir", str(todos_dir), "list"])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 1
    assert "RuntimeError: kaboom" in (todos_dir / "todos-errors.log").read_text()
    assert not (tmp_path / "home" / ".todos").exists()
    assert "Error: kaboom" in capsys.readouterr().err
