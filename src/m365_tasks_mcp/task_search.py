"""Title search across Microsoft To-Do lists.

Graph has no cross-list task search, so lists are queried one at a time with a
server-side ``contains(title, ...)`` filter built from a single keyword.
Lists are visited in a fixed priority order by display name and the scan
stops at the first task whose title equals the requested title exactly.
"""

import logging
import os
import re
from typing import Any, Sequence

from . import graph
from .exceptions import GraphAPIError
from .models import FoundTask, TodoTaskList

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PRIORITY: tuple[str, ...] = ("ROI", "Goal Phase", "Ad-Hoc", "Tasks")

LIGHTWEIGHT_FIELDS = ("id", "title", "status", "importance", "dueDateTime")

KEYWORD_MIN_LENGTH = 4
KEYWORD_FALLBACK_LENGTH = 20

_HASHTAG_RE = re.compile(r"#(\w+)", re.ASCII)
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)


def search_priority() -> tuple[str, ...]:
    """Display-name substrings that rank lists, from the environment if set."""
    configured = os.getenv("M365_TASKS_SEARCH_PRIORITY")
    if not configured:
        return DEFAULT_SEARCH_PRIORITY
    parts = tuple(part.strip() for part in configured.split(",") if part.strip())
    return parts or DEFAULT_SEARCH_PRIORITY


def prioritize_lists(
    lists: Sequence[TodoTaskList], priority: Sequence[str]
) -> list[TodoTaskList]:
    """Stable-sort lists by the first priority substring in their name."""

    def rank(todo_list: TodoTaskList) -> int:
        for index, needle in enumerate(priority):
            if needle in todo_list.display_name:
                return index
        return len(priority)

    return sorted(lists, key=rank)


def extract_search_keyword(title: str) -> str:
    """Pick one keyword from a task title for the server-side filter.

    Hashtag markers and punctuation are dropped and the first remaining word
    longer than three characters is used, so ``"#ENG #BuildPart - Tapped
    Hole"`` gives ``"BuildPart"``. Titles without such a word fall back to
    their first twenty characters. Word characters are ASCII only, so accented
    letters split words (``"Überprüfung Planung"`` gives ``"berpr"``). This is
    a heuristic; short or punctuation-heavy titles can give a poor keyword.
    """
    cleaned = _NON_WORD_RE.sub(" ", _HASHTAG_RE.sub(r"\1", title)).strip()
    for word in cleaned.split():
        if len(word) >= KEYWORD_MIN_LENGTH:
            return word
    return title[:KEYWORD_FALLBACK_LENGTH]


def build_title_filter(keyword: str, include_completed: bool) -> str:
    """Build the OData ``$filter`` expression for a keyword search."""
    escaped = keyword.replace("'", "''")
    status_clause = "" if include_completed else "status ne 'completed' and "
    return f"{status_clause}contains(title, '{escaped}')"


def _lists_to_search(
    list_id: str | None, account_id: str | None
) -> list[tuple[str, str | None]]:
    if list_id:
        return [(list_id, None)]

    lists = [
        TodoTaskList.from_graph(payload)
        for payload in graph.request_paginated("/me/todo/lists", account_id)
    ]
    ordered = prioritize_lists(lists, search_priority())
    return [(todo_list.id, todo_list.display_name) for todo_list in ordered]


def _lightweight(found: FoundTask) -> dict[str, Any]:
    light: dict[str, Any] = {"listId": found.list_id}
    for field in LIGHTWEIGHT_FIELDS:
        if field in found.task:
            light[field] = found.task[field]
    return light


def find_todo_task(
    title: str,
    todo_task_list_id: str | None = None,
    include_completed: bool = False,
    account_id: str | None = None,
) -> dict[str, Any]:
    """Find a To-Do task by title.

    Returns a dict whose ``matchType`` is ``"exact"`` (full task and its list
    id), ``"partial"`` (lightweight projection of every candidate seen) or
    ``"none"`` (with the keyword that was searched).

    Raises:
        GraphAPIError: Enumerating the To-Do lists failed.
    """
    logger.info(f"Finding task with title: {title}")

    lists = _lists_to_search(todo_task_list_id, account_id)
    keyword = extract_search_keyword(title)
    params = {"$filter": build_title_filter(keyword, include_completed)}

    matches: list[FoundTask] = []
    exact: FoundTask | None = None

    for list_id, list_name in lists:
        try:
            result = graph.request(
                "GET", f"/me/todo/lists/{list_id}/tasks", account_id, params=params
            )
        except GraphAPIError as e:
            logger.warning(
                f"Error searching list {list_id}: {e}", extra={"list_id": list_id}
            )
            continue

        tasks = (result or {}).get("value")
        if not isinstance(tasks, list):
            continue

        for task in tasks:
            found = FoundTask(task=task, list_id=list_id, list_name=list_name)
            matches.append(found)
            if task.get("title") == title:
                exact = found
                break

        if exact is not None:
            break

    if exact is not None:
        response: dict[str, Any] = {
            "success": True,
            "matchType": "exact",
            "task": exact.task,
            "listId": exact.list_id,
        }
        if exact.list_name is not None:
            response["listName"] = exact.list_name
        return response

    if matches:
        return {
            "success": True,
            "matchType": "partial",
            "message": (
                f'No exact match for "{title}". '
                f"Found {len(matches)} partial match(es):"
            ),
            "matches": [_lightweight(found) for found in matches],
        }

    return {
        "success": False,
        "matchType": "none",
        "message": f'No tasks found matching "{title}"',
        "searchKeyword": keyword,
    }
