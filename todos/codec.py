"""
Front matter codec for todo files.

A todo file is a small block of ``key: value`` lines between ``---``
delimiters, followed by the Markdown body verbatim::

    ---
    id: "1a2b3c4d"
    title: "Fix login"
    tags:
      - "auth"
    status: "open"
    created_at: "2026-10-18T09:30:00.123Z"
    ---
    Body text...

Only the five known keys are read; anything else is ignored. This is a
deliberately tiny, self-consistent subset of YAML, not a YAML parser.
"""

import re
from typing import Optional

from .types import DEFAULT_STATUS, TodoRecord, TodoSummary

# Leading front matter block; body starts after the closing delimiter line
_FRONT_MATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---(?:\r?\n)?", re.DOTALL)
_KEY_RE = re.compile(r"^(?P<key>[a-zA-Z0-9_]+):\s*(?P<value>.*)$")
_LIST_ITEM_RE = re.compile(r"^-\s*(.+)$")
_ESCAPE_RE = re.compile(r'\\(["\\])')
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_LEADING_NEWLINES_RE = re.compile(r"\A\n+")


def escape_value(value: str) -> str:
    """Escape a scalar for a double-quoted value: backslashes, then quotes."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def unquote(value: str) -> str:
    """Strip surrounding quotes from a scalar.

    Double-quoted values are unescaped (inverse of escape_value); single
    quoted values are taken literally.
    """
    trimmed = value.strip()
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in ('"', "'"):
        inner = trimmed[1:-1]
        if trimmed[0] == '"':
            return _ESCAPE_RE.sub(r"\1", inner)
        return inner
    return trimmed


def _parse_inline_tags(value: str) -> list[str]:
    inner = value.strip()[1:-1]
    if not inner.strip():
        return []
    tags = []
    for item in inner.split(","):
        tag = unquote(item).strip()
        if tag:
            tags.append(tag)
    return tags


def split_front_matter(content: str) -> tuple[str, str]:
    """
    Split file content into (front_matter, body).

    If there is no leading delimiter block, front matter is empty and the
    whole input is the body.
    """
    match = _FRONT_MATTER_RE.match(content)
    if not match:
        return "", content
    return match.group(1), content[match.end():]


def parse_front_matter(text: str, id_fallback: str) -> TodoSummary:
    """
    Parse the lines between the delimiters into a TodoSummary.

    Unknown keys are skipped. ``tags`` may be an inline ``[a, b]`` list, a
    block of ``- value`` lines, or a single scalar.
    """
    data = TodoSummary(id=id_fallback)
    current_key: Optional[str] = None

    for raw_line in _LINE_SPLIT_RE.split(text):
        line = raw_line.strip()
        if not line:
            continue

        if current_key == "tags":
            item = _LIST_ITEM_RE.match(line)
            if item:
                data.tags.append(unquote(item.group(1)))
                continue

        match = _KEY_RE.match(line)
        if not match:
            continue

        key = match.group("key")
        value = match.group("value")
        current_key = None

        if key == "tags":
            if not value:
                current_key = "tags"
                data.tags = []
            elif value.startswith("[") and value.endswith("]"):
                data.tags = _parse_inline_tags(value)
            else:
                tag = unquote(value)
                data.tags = [tag] if tag else []
        elif key == "id":
            data.id = unquote(value) or data.id
        elif key == "title":
            data.title = unquote(value)
        elif key == "status":
            data.status = unquote(value) or data.status
        elif key == "created_at":
            data.created_at = unquote(value)

    return data


def parse_summary(content: str, id: str) -> TodoSummary:
    """Parse only the front matter of a file; the filename stem is the id."""
    front_matter, _ = split_front_matter(content)
    summary = parse_front_matter(front_matter, id)
    summary.id = id
    return summary


def parse_todo(content: str, id_fallback: str) -> TodoRecord:
    """
    Parse a whole todo file.

    The returned id is always ``id_fallback`` (the filename stem), so a
    file copied under a new name takes the new id.
    """
    front_matter, body = split_front_matter(content)
    parsed = parse_front_matter(front_matter, id_fallback)
    return TodoRecord(
        id=id_fallback,
        title=parsed.title,
        tags=parsed.tags,
        status=parsed.status or DEFAULT_STATUS,
        created_at=parsed.created_at,
        body=body,
    )


def normalize_body(body: str) -> str:
    """Drop leading blank lines and trailing whitespace."""
    return _LEADING_NEWLINES_RE.sub("", body or "").rstrip()


def serialize_todo(todo: TodoRecord) -> str:
    """
    Serialize a todo to file content.

    Fields are always written in the order id, title, tags, status,
    created_at; the body follows the closing delimiter, trimmed, with a
    trailing newline only when non-empty.
    """
    lines = [
        "---",
        f'id: "{escape_value(todo.id)}"',
        f'title: "{escape_value(todo.title)}"',
        "tags:",
        *(f'  - "{escape_value(tag)}"' for tag in todo.tags or []),
        f'status: "{escape_value(todo.status)}"',
        f'created_at: "{escape_value(todo.created_at)}"',
        "---",
        "",
    ]
    body = normalize_body(todo.body)
    return "\n".join(lines) + (f"{body}\n" if body else "")
