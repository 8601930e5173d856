"""Tests for todo data types and helpers."""

import pytest

from todos.types import (
    LockInfo,
    TodoPatch,
    TodoRecord,
    format_timestamp,
    is_closed,
    validate_id,
)


@pytest.mark.parametrize("status,closed", [
    ("closed", True),
    ("done", True),
    ("DONE", True),
    ("Closed", True),
    ("open", False),
    ("", False),
    ("wip", False),
    ("closed-ish", False),
])
def test_is_closed(status, closed):
    assert is_closed(status) is closed


def test_format_timestamp():
    assert format_timestamp(0) == "1970-01-01T00:00:00.000Z"
    assert format_timestamp(1.5) == "1970-01-01T00:00:01.500Z"


def test_summary_projection():
    record = TodoRecord(id="a", title="T", tags=["x"], status="done", created_at="c", body="b")
    summary = record.summary()
    assert summary.to_dict() == {
        "id": "a", "title": "T", "tags": ["x"], "status": "done", "created_at": "c",
    }
    assert summary.closed


def test_patch_is_empty():
    assert TodoPatch().is_empty()
    assert not TodoPatch(tags=[]).is_empty()
    assert not TodoPatch(body="").is_empty()


def test_lock_info_from_dict():
    info = LockInfo.from_dict({"id": "a", "pid": "12", "created_at": "t"})
    assert info == LockInfo(id="a", pid=12, session=None, created_at="t")


@pytest.mark.parametrize("id", ["abc123", "my-todo_1", "ünï"])
def test_validate_id_ok(id):
    validate_id(id)


@pytest.mark.parametrize("id", ["", ".x", "a/b", "a\\b", "a\x00b", "x" * 256])
def test_validate_id_rejects(id):
    with pytest.raises(ValueError):
        validate_id(id)
