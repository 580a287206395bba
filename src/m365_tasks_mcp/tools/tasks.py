import json
import logging
from typing import Any

from fastmcp.exceptions import ToolError

from ..mcp_instance import mcp
from ..exceptions import AuthenticationError, ConfigurationError, GraphAPIError
from ..task_conversion import convert_planner_task
from ..task_search import find_todo_task
from ..validators import (
    ValidationError,
    validate_microsoft_graph_id,
    validate_non_empty_string,
    validate_optional_graph_id,
)

logger = logging.getLogger(__name__)


def _tool_error(prefix: str, error: Exception) -> ToolError:
    """Build the ToolError whose text payload is the JSON failure envelope."""
    return ToolError(
        json.dumps({"success": False, "error": f"{prefix}: {error}"})
    )


# convert-planner-task-to-todo
@mcp.tool(
    name="convert-planner-task-to-todo",
    annotations={
        "title": "Convert Planner Task to To-Do",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
    meta={"category": "tasks", "safety_level": "moderate"},
)
def todo_convert_planner_task(
    planner_task_id: str,
    todo_task_list_id: str | None = None,
    mark_planner_complete: bool = True,
    add_planner_prefix: bool = True,
    account_id: str | None = None,
) -> dict[str, Any]:
    """✏️ Convert a Planner task to a To-Do task (requires user confirmation recommended)

    Useful for moving tasks from "Assigned to me" into your Tasks list for ROI
    tracking. By default, marks the Planner task complete and adds a [Planner]
    prefix to the title. Keywords: move Planner to To-Do, convert Planner,
    migrate Planner task, transfer Planner.

    Checklist items are copied in Planner order. A checklist item that cannot
    be created, or a Planner task that cannot be marked complete, does not
    fail the conversion; the result reports those outcomes.

    Args:
        planner_task_id: The ID of the Planner task to convert
        todo_task_list_id: Target To-Do list ID (default: Tasks/defaultList)
        mark_planner_complete: Mark the Planner task as complete after conversion (default: True)
        add_planner_prefix: Add [Planner] prefix to the task title (default: True)
        account_id: Microsoft account ID (default: first signed-in account)

    Returns:
        Dictionary with success, message, todoTask (id, title, listId,
        checklistItems as "created/total" or "none") and plannerTask
        (id, title, status: completed, failed_to_complete or unchanged)
    """
    try:
        task_id = validate_microsoft_graph_id(planner_task_id, "planner_task_id")
        list_id = validate_optional_graph_id(todo_task_list_id, "todo_task_list_id")
        result = convert_planner_task(
            task_id,
            todo_task_list_id=list_id,
            mark_planner_complete=bool(mark_planner_complete),
            add_planner_prefix=bool(add_planner_prefix),
            account_id=account_id,
        )
    except (
        ValidationError,
        AuthenticationError,
        GraphAPIError,
        ConfigurationError,
    ) as e:
        logger.error(
            f"Error converting Planner task: {e}",
            extra={"tool_name": "convert-planner-task-to-todo"},
        )
        raise _tool_error("Conversion failed", e) from e

    return result.to_dict()


# find-todo-task
@mcp.tool(
    name="find-todo-task",
    annotations={
        "title": "Find To-Do Task",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
    meta={"category": "tasks", "safety_level": "safe"},
)
def todo_find_task(
    title: str,
    todo_task_list_id: str | None = None,
    include_completed: bool = False,
    account_id: str | None = None,
) -> dict[str, Any]:
    """📖 Find a To-Do task by title (read-only, safe for unsupervised use)

    If an exact match is found, returns full task details. If not, returns a
    lightweight list of partial matches for disambiguation. Searches ROI
    Tasks first, then other common lists.

    Args:
        title: Task title or search keywords (e.g., "#ENG #BuildPart - Tapped Hole")
        todo_task_list_id: List ID to search (default: searches ROI Tasks, then other common lists)
        include_completed: Include completed tasks in search (default: False)
        account_id: Microsoft account ID (default: first signed-in account)

    Returns:
        Dictionary with matchType "exact" (task, listId), "partial"
        (message, matches with id, title, status, importance, dueDateTime,
        listId) or "none" (message, searchKeyword)
    """
    try:
        title = validate_non_empty_string(title, "title")
        list_id = validate_optional_graph_id(todo_task_list_id, "todo_task_list_id")
        return find_todo_task(
            title,
            todo_task_list_id=list_id,
            include_completed=bool(include_completed),
            account_id=account_id,
        )
    except (ValidationError, AuthenticationError, GraphAPIError) as e:
        logger.error(
            f"Error finding task: {e}", extra={"tool_name": "find-todo-task"}
        )
        raise _tool_error("Find failed", e) from e
