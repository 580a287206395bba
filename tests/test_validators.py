from __future__ import annotations

import pytest

from src.m365_tasks_mcp import validators


def test_graph_id_accepts_planner_style_identifier() -> None:
    task_id = "pbT5K2OVkkO1M7r5bfsJ6JgAGD5m"
    assert validators.validate_microsoft_graph_id(task_id, "planner_task_id") == task_id


def test_graph_id_accepts_base64_todo_list_identifier() -> None:
    list_id = "AAMkADIyAAAuAAAAAAAiQ8W967B7TKBjgx9rVEURAQAiIsqMbYjsT5e-T7KzowPTAAABA+/q=="
    assert validators.validate_microsoft_graph_id(list_id) == list_id


def test_graph_id_is_trimmed() -> None:
    assert validators.validate_microsoft_graph_id("  abc-123  ") == "abc-123"


@pytest.mark.parametrize("value", ["", "   ", None, 42, "bad id", "a/b?c", "x" * 513])
def test_graph_id_rejects_invalid_values(value) -> None:
    with pytest.raises(validators.ValidationError):
        validators.validate_microsoft_graph_id(value, "planner_task_id")


def test_optional_graph_id_maps_blank_to_none() -> None:
    assert validators.validate_optional_graph_id(None) is None
    assert validators.validate_optional_graph_id("  ") is None
    assert validators.validate_optional_graph_id(" list-1 ") == "list-1"


def test_optional_graph_id_still_validates_content() -> None:
    with pytest.raises(validators.ValidationError):
        validators.validate_optional_graph_id("has space", "todo_task_list_id")


def test_non_empty_string_returns_value_unchanged() -> None:
    title = "  #ENG #BuildPart - Tapped Hole "
    assert validators.validate_non_empty_string(title, "title") == title


@pytest.mark.parametrize("value", ["", "   ", None, 5])
def test_non_empty_string_rejects_blank_or_non_string(value) -> None:
    with pytest.raises(validators.ValidationError):
        validators.validate_non_empty_string(value, "title")


def test_non_empty_string_enforces_max_length() -> None:
    with pytest.raises(validators.ValidationError, match="exceeds 10 characters"):
        validators.validate_non_empty_string("x" * 11, "title", max_length=10)


def test_error_message_format_masks_long_values() -> None:
    message = validators.format_validation_error(
        "title", "a" * 100, "cannot be empty", "non-empty string"
    )
    assert message.startswith("Invalid title 'aaaa")
    assert "…" in message
    assert message.endswith("cannot be empty. Expected: non-empty string")


def test_validation_error_is_value_error() -> None:
    assert issubclass(validators.ValidationError, ValueError)
