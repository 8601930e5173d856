"""
Fuzzy search and ordering over todo summaries.

Two orderings are used:
- default (listings): open before closed, then created_at ascending
- filtered (search): open before closed, then total match score ascending
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .types import TodoSummary

# Characters after which a match counts as a word start
_WORD_BOUNDARY_RE = re.compile(r"[\s\-_./:]")


@dataclass(frozen=True)
class FuzzyMatch:
    """Result of matching one needle against one haystack."""
    matches: bool
    score: float = 0.0


def fuzzy_match(needle: str, haystack: str) -> FuzzyMatch:
    """
    Case-insensitive subsequence match with a closeness score.

    Lower scores are better. Runs of consecutive characters and matches at
    word starts pull the score down; gaps between matched characters and
    matches far into the haystack push it up.
    """
    query = needle.lower()
    text = haystack.lower()

    if not query:
        return FuzzyMatch(True, 0.0)
    if len(query) > len(text):
        return FuzzyMatch(False)

    query_index = 0
    score = 0.0
    last_match = -1
    consecutive = 0

    for i, ch in enumerate(text):
        if query_index >= len(query):
            break
        if ch != query[query_index]:
            continue

        if last_match == i - 1:
            consecutive += 1
            score -= consecutive * 5
        else:
            consecutive = 0
            if last_match >= 0:
                score += (i - last_match - 1) * 2

        if i == 0 or _WORD_BOUNDARY_RE.match(text[i - 1]):
            score -= 10

        score += i * 0.1
        last_match = i
        query_index += 1

    if query_index < len(query):
        return FuzzyMatch(False)
    return FuzzyMatch(True, score)


def search_text(todo: TodoSummary) -> str:
    """Text a query is matched against: id, title, tags, status."""
    tags = " ".join(todo.tags)
    return f"{todo.id} {todo.title} {tags} {todo.status}".strip()


def sort_default(todos: Iterable[TodoSummary]) -> list[TodoSummary]:
    """Open todos first, each partition by created_at (empty sorts first)."""
    return sorted(todos, key=lambda t: (t.closed, t.created_at or ""))


def split_by_status(
    todos: Iterable[TodoSummary],
) -> tuple[list[TodoSummary], list[TodoSummary]]:
    """Partition into (open, closed), keeping order."""
    open_todos: list[TodoSummary] = []
    closed_todos: list[TodoSummary] = []
    for todo in todos:
        (closed_todos if todo.closed else open_todos).append(todo)
    return open_todos, closed_todos


def tokenize(query: str) -> list[str]:
    return query.split()


def filter_todos(
    todos: Sequence[TodoSummary],
    query: str,
    matcher: Callable[[str, str], FuzzyMatch] = fuzzy_match,
) -> list[TodoSummary]:
    """
    Keep todos where every query token matches, ranked by relevance.

    A todo's score is the sum of its token scores. Results put open todos
    before closed ones, then ascending score. A blank query returns the
    input untouched (no re-sort).
    """
    tokens = tokenize(query)
    if not tokens:
        return list(todos)

    scored: list[tuple[TodoSummary, float]] = []
    for todo in todos:
        text = search_text(todo)
        total = 0.0
        for token in tokens:
            result = matcher(token, text)
            if not result.matches:
                break
            total += result.score
        else:
            scored.append((todo, total))

    scored.sort(key=lambda pair: (pair[0].closed, pair[1]))
    return [todo for todo, _ in scored]
