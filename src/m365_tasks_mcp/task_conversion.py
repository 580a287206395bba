"""Convert Planner tasks into Microsoft To-Do tasks.

The conversion is a fixed sequence of Graph calls:

1. Fetch the Planner task (required)
2. Fetch the Planner task details (best effort)
3. Resolve the To-Do list (given id, or the default "Tasks" list)
4. Create the To-Do task from the mapped fields (required)
5. Copy checklist items one by one (best effort per item)
6. Optionally mark the Planner task complete (best effort)

Required steps raise; best-effort steps log and record their outcome so the
result shows partial failures. Nothing is retried or rolled back.
"""

import logging
from typing import Any, NamedTuple

from . import graph
from .exceptions import DefaultListNotFoundError, GraphAPIError
from .models import (
    ChecklistItemResult,
    PlannerTask,
    PlannerTaskDetails,
    TodoTask,
    TodoTaskList,
)
from .task_mapping import map_planner_to_todo, sort_checklist_items

logger = logging.getLogger(__name__)

DEFAULT_LIST_WELLKNOWN_NAME = "defaultList"

PLANNER_STATUS_UNCHANGED = "unchanged"
PLANNER_STATUS_COMPLETED = "completed"
PLANNER_STATUS_FAILED = "failed_to_complete"


class ConversionResult(NamedTuple):
    planner_task: PlannerTask
    todo_task: TodoTask
    list_id: str
    checklist_results: list[ChecklistItemResult]
    planner_status: str

    @property
    def checklist_created(self) -> int:
        return sum(1 for r in self.checklist_results if r.success)

    def checklist_summary(self) -> str:
        total = len(self.checklist_results)
        if total == 0:
            return "none"
        return f"{self.checklist_created}/{total} created"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": "Converted Planner task to To-Do task",
            "todoTask": {
                "id": self.todo_task.id,
                "title": self.todo_task.title,
                "listId": self.list_id,
                "checklistItems": self.checklist_summary(),
            },
            "plannerTask": {
                "id": self.planner_task.id,
                "title": self.planner_task.title,
                "status": self.planner_status,
            },
        }


def get_planner_task(task_id: str, account_id: str | None = None) -> PlannerTask:
    result = graph.request("GET", f"/planner/tasks/{task_id}", account_id)
    if not result:
        raise GraphAPIError(f"Empty response for Planner task {task_id}")
    return PlannerTask.from_graph(result)


def get_planner_task_details(
    task_id: str, account_id: str | None = None
) -> PlannerTaskDetails | None:
    """Fetch task details, returning None when they cannot be read."""
    try:
        result = graph.request("GET", f"/planner/tasks/{task_id}/details", account_id)
    except GraphAPIError as e:
        logger.warning(f"Could not fetch task details: {e}")
        return None
    return PlannerTaskDetails.from_graph(result) if result else None


def resolve_todo_list_id(
    list_id: str | None, account_id: str | None = None
) -> str:
    """Return ``list_id`` unchanged, or the id of the default To-Do list.

    A caller-supplied id is not checked here; a bad id fails on task creation.
    """
    if list_id:
        return list_id

    for payload in graph.request_paginated("/me/todo/lists", account_id):
        todo_list = TodoTaskList.from_graph(payload)
        if todo_list.wellknown_list_name == DEFAULT_LIST_WELLKNOWN_NAME:
            return todo_list.id

    raise DefaultListNotFoundError("Could not find default Tasks list")


def create_checklist_items(
    details: PlannerTaskDetails | None,
    list_id: str,
    todo_task_id: str,
    account_id: str | None = None,
) -> list[ChecklistItemResult]:
    """Copy Planner checklist items onto a To-Do task in order-hint order.

    Every item is attempted; a failure is logged and recorded, never raised.
    """
    if details is None or not details.checklist:
        return []

    items = sort_checklist_items(details.checklist)
    path = f"/me/todo/lists/{list_id}/tasks/{todo_task_id}/checklistItems"
    results: list[ChecklistItemResult] = []

    for item in items:
        try:
            graph.request(
                "POST",
                path,
                account_id,
                json={"displayName": item.title, "isChecked": item.is_checked},
            )
            success = True
        except GraphAPIError as e:
            logger.warning(f"Failed to create checklist item: {item.title} - {e}")
            success = False
        results.append(
            ChecklistItemResult(
                display_name=item.title,
                is_checked=item.is_checked,
                success=success,
            )
        )

    created = sum(1 for r in results if r.success)
    logger.info(f"Created {created}/{len(items)} checklist items")
    return results


def mark_planner_task_complete(task_id: str, account_id: str | None = None) -> str:
    """Set a Planner task to 100% and return the resulting disposition.

    Planner updates require the task's current etag in ``If-Match``; the task
    is re-read for it and ``*`` is used when none is returned.
    """
    path = f"/planner/tasks/{task_id}"
    try:
        current = graph.request("GET", path, account_id) or {}
        etag = current.get("@odata.etag") or "*"
        graph.request(
            "PATCH",
            path,
            account_id,
            json={"percentComplete": 100},
            headers={"If-Match": etag},
        )
    except GraphAPIError as e:
        logger.error(f"Failed to mark Planner task complete: {e}")
        return PLANNER_STATUS_FAILED
    return PLANNER_STATUS_COMPLETED


def convert_planner_task(
    planner_task_id: str,
    todo_task_list_id: str | None = None,
    mark_planner_complete: bool = True,
    add_planner_prefix: bool = True,
    account_id: str | None = None,
) -> ConversionResult:
    """Convert one Planner task into a To-Do task.

    Raises:
        ResourceNotFoundError: The Planner task does not exist.
        DefaultListNotFoundError: No list id given and no default list exists.
        GraphAPIError: Reading the Planner task or creating the To-Do task failed.
    """
    logger.info(
        f"Converting Planner task {planner_task_id} to To-Do",
        extra={"planner_task_id": planner_task_id},
    )

    planner_task = get_planner_task(planner_task_id, account_id)
    details = get_planner_task_details(planner_task_id, account_id)
    list_id = resolve_todo_list_id(todo_task_list_id, account_id)

    body = map_planner_to_todo(planner_task, details, add_planner_prefix)
    created = graph.request(
        "POST", f"/me/todo/lists/{list_id}/tasks", account_id, json=body
    )
    if not created:
        raise GraphAPIError(f"Empty response creating To-Do task in list {list_id}")
    todo_task = TodoTask.from_graph(created)

    checklist_results = create_checklist_items(
        details, list_id, todo_task.id, account_id
    )

    planner_status = PLANNER_STATUS_UNCHANGED
    if mark_planner_complete:
        planner_status = mark_planner_task_complete(planner_task_id, account_id)

    return ConversionResult(
        planner_task=planner_task,
        todo_task=todo_task,
        list_id=list_id,
        checklist_results=checklist_results,
        planner_status=planner_status,
    )
