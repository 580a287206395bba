"""Field mapping from Planner tasks to To-Do tasks.

Planner encodes priority as an integer (1 urgent, 5 medium, 9 low) and
progress as a percentage; To-Do uses an importance enum and a status enum.
"""

from typing import Any, Iterable

from .models import PlannerChecklistItem, PlannerTask, PlannerTaskDetails

PLANNER_PREFIX = "[Planner] "

PRIORITY_TO_IMPORTANCE = {1: "high", 5: "normal", 9: "low"}
DEFAULT_IMPORTANCE = "normal"

CONVERSION_HEADER = "--- Converted from Planner ---"


def importance_for_priority(priority: int) -> str:
    return PRIORITY_TO_IMPORTANCE.get(priority, DEFAULT_IMPORTANCE)


def status_for_percent_complete(percent_complete: int) -> str:
    return "completed" if percent_complete == 100 else "notStarted"


def build_task_body(task: PlannerTask, details: PlannerTaskDetails | None) -> str:
    """Build the To-Do body: the Planner description, then a conversion footer.

    The footer is always present, so the Planner plan, task id and creation
    time stay traceable from the To-Do task.
    """
    lines: list[str] = []

    if details is not None and details.description:
        lines.append(details.description)
        lines.append("")

    lines.append(CONVERSION_HEADER)
    lines.append(f"Plan ID: {task.plan_id}")
    lines.append(f"Original Task ID: {task.id}")
    lines.append(f"Created: {task.created_date_time}")

    return "\n".join(lines)


def map_planner_to_todo(
    task: PlannerTask,
    details: PlannerTaskDetails | None,
    add_prefix: bool,
) -> dict[str, Any]:
    """Return the JSON body for creating a To-Do task from a Planner task."""
    title = f"{PLANNER_PREFIX}{task.title}" if add_prefix else task.title

    todo_task: dict[str, Any] = {
        "title": title,
        "body": {
            "content": build_task_body(task, details),
            "contentType": "text",
        },
        "importance": importance_for_priority(task.priority),
        "status": status_for_percent_complete(task.percent_complete),
    }

    # Planner due dates are UTC timestamps
    if task.due_date_time:
        todo_task["dueDateTime"] = {
            "dateTime": task.due_date_time,
            "timeZone": "UTC",
        }

    return todo_task


def sort_checklist_items(
    items: Iterable[PlannerChecklistItem],
) -> list[PlannerChecklistItem]:
    """Order checklist items by Planner order hint, lowest first.

    Hints are compared as plain strings; items without a hint sort first and
    ties keep their original order.
    """
    return sorted(items, key=lambda item: item.order_hint or "")
