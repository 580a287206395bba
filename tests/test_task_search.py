"""Tests for To-Do title search."""

from __future__ import annotations

import pytest

from src.m365_tasks_mcp.exceptions import GraphAPIError, PermissionDeniedError
from src.m365_tasks_mcp.models import TodoTaskList
from src.m365_tasks_mcp.task_search import (
    DEFAULT_SEARCH_PRIORITY,
    build_title_filter,
    extract_search_keyword,
    find_todo_task,
    prioritize_lists,
    search_priority,
)

TITLE = "#ENG #BuildPart - Tapped Hole"


def _tasks_path(list_id: str) -> str:
    return f"/me/todo/lists/{list_id}/tasks"


class TestKeywordExtraction:
    def test_hashtag_marker_dropped_and_word_kept(self):
        assert extract_search_keyword(TITLE) == "BuildPart"

    def test_first_long_word_wins(self):
        assert extract_search_keyword("Fix the printer today") == "printer"

    def test_four_letter_word_qualifies(self):
        assert extract_search_keyword("a to-do: wash car") == "wash"

    def test_falls_back_to_title_prefix(self):
        assert extract_search_keyword("a b c") == "a b c"
        assert extract_search_keyword("x y " * 10) == ("x y " * 10)[:20]

    def test_accented_letters_split_words(self):
        assert extract_search_keyword("Überprüfung Planung") == "berpr"
        assert extract_search_keyword("#Café Noël") == "#Café Noël"

    def test_punctuation_only_title_falls_back(self):
        assert extract_search_keyword("!!!") == "!!!"


class TestTitleFilter:
    def test_excludes_completed_by_default(self):
        assert (
            build_title_filter("BuildPart", False)
            == "status ne 'completed' and contains(title, 'BuildPart')"
        )

    def test_include_completed_drops_status_clause(self):
        assert build_title_filter("BuildPart", True) == "contains(title, 'BuildPart')"

    def test_single_quotes_are_doubled(self):
        assert build_title_filter("O'Neil's", True) == "contains(title, 'O''Neil''s')"


class TestPriority:
    def test_priority_order_is_stable(self):
        lists = [
            TodoTaskList("1", "Shopping"),
            TodoTaskList("2", "Tasks"),
            TodoTaskList("3", "Goal Phase 2"),
            TodoTaskList("4", "Errands"),
            TodoTaskList("5", "ROI"),
            TodoTaskList("6", "Goal Phase 1"),
        ]

        ordered = prioritize_lists(lists, DEFAULT_SEARCH_PRIORITY)

        assert [lst.id for lst in ordered] == ["5", "3", "6", "2", "1", "4"]

    def test_priority_from_environment(self, monkeypatch):
        monkeypatch.setenv("M365_TASKS_SEARCH_PRIORITY", "Work, Home ,")
        assert search_priority() == ("Work", "Home")

    def test_blank_environment_uses_default(self, monkeypatch):
        monkeypatch.setenv("M365_TASKS_SEARCH_PRIORITY", " , ")
        assert search_priority() == DEFAULT_SEARCH_PRIORITY


class TestFindTodoTask:
    def test_exact_match_stops_scanning(self, fake_graph, todo_lists, monkeypatch):
        monkeypatch.delenv("M365_TASKS_SEARCH_PRIORITY", raising=False)
        fake_graph.register_pages("/me/todo/lists", todo_lists)
        exact = {"id": "t1", "title": TITLE, "status": "notStarted"}
        fake_graph.register("GET", _tasks_path("list-roi"), {"value": [exact]})

        result = find_todo_task(TITLE)

        assert result == {
            "success": True,
            "matchType": "exact",
            "task": exact,
            "listId": "list-roi",
            "listName": "ROI Tasks",
        }
        assert _tasks_path("list-tasks") not in fake_graph.paths()
        assert _tasks_path("list-flagged") not in fake_graph.paths()

    def test_filter_sent_to_each_list(self, fake_graph, todo_lists, monkeypatch):
        monkeypatch.delenv("M365_TASKS_SEARCH_PRIORITY", raising=False)
        fake_graph.register_pages("/me/todo/lists", todo_lists)
        for list_id in ("list-roi", "list-tasks", "list-flagged"):
            fake_graph.register("GET", _tasks_path(list_id), {"value": []})

        find_todo_task(TITLE, include_completed=True)

        searched = [c for c in fake_graph.calls if c.path.endswith("/tasks")]
        assert [c.path for c in searched] == [
            _tasks_path("list-roi"),
            _tasks_path("list-tasks"),
            _tasks_path("list-flagged"),
        ]
        assert all(
            c.params == {"$filter": "contains(title, 'BuildPart')"} for c in searched
        )

    def test_partial_matches_are_projected(self, fake_graph, todo_lists, monkeypatch):
        monkeypatch.delenv("M365_TASKS_SEARCH_PRIORITY", raising=False)
        fake_graph.register_pages("/me/todo/lists", todo_lists)
        near = {
            "id": "t2",
            "title": "#BuildPart - Tapped Hole v2",
            "status": "notStarted",
            "importance": "normal",
            "body": {"content": "long", "contentType": "text"},
        }
        fake_graph.register("GET", _tasks_path("list-roi"), {"value": []})
        fake_graph.register("GET", _tasks_path("list-tasks"), {"value": [near]})
        fake_graph.register("GET", _tasks_path("list-flagged"), {"value": []})

        result = find_todo_task(TITLE)

        assert result["success"] is True
        assert result["matchType"] == "partial"
        assert result["message"] == (
            f'No exact match for "{TITLE}". Found 1 partial match(es):'
        )
        assert result["matches"] == [
            {
                "listId": "list-tasks",
                "id": "t2",
                "title": "#BuildPart - Tapped Hole v2",
                "status": "notStarted",
                "importance": "normal",
            }
        ]

    def test_no_match_reports_keyword(self, fake_graph, todo_lists, monkeypatch):
        monkeypatch.delenv("M365_TASKS_SEARCH_PRIORITY", raising=False)
        fake_graph.register_pages("/me/todo/lists", todo_lists)
        for list_id in ("list-roi", "list-tasks", "list-flagged"):
            fake_graph.register("GET", _tasks_path(list_id), {"value": []})

        result = find_todo_task(TITLE)

        assert result == {
            "success": False,
            "matchType": "none",
            "message": f'No tasks found matching "{TITLE}"',
            "searchKeyword": "BuildPart",
        }

    def test_failing_list_is_skipped(self, fake_graph, todo_lists, monkeypatch):
        monkeypatch.delenv("M365_TASKS_SEARCH_PRIORITY", raising=False)
        fake_graph.register_pages("/me/todo/lists", todo_lists)
        exact = {"id": "t1", "title": TITLE}
        fake_graph.register(
            "GET", _tasks_path("list-roi"), PermissionDeniedError("Access denied")
        )
        fake_graph.register("GET", _tasks_path("list-tasks"), {"value": [exact]})

        result = find_todo_task(TITLE)

        assert result["matchType"] == "exact"
        assert result["listId"] == "list-tasks"

    def test_explicit_list_is_only_list_searched(self, fake_graph):
        exact = {"id": "t1", "title": TITLE}
        fake_graph.register("GET", _tasks_path("list-x"), {"value": [exact]})

        result = find_todo_task(TITLE, todo_task_list_id="list-x")

        assert result == {
            "success": True,
            "matchType": "exact",
            "task": exact,
            "listId": "list-x",
        }
        assert fake_graph.paths() == [_tasks_path("list-x")]

    def test_list_enumeration_failure_propagates(self, fake_graph):
        fake_graph.register_pages("/me/todo/lists", GraphAPIError("Graph API error (500)"))

        with pytest.raises(GraphAPIError):
            find_todo_task(TITLE)
