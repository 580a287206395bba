from typing import Any, NamedTuple


def _extra(payload: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in known}


class PlannerTask(NamedTuple):
    id: str
    title: str
    plan_id: str
    created_date_time: str
    priority: int = 5
    percent_complete: int = 0
    bucket_id: str | None = None
    due_date_time: str | None = None
    assignments: dict[str, Any] = {}
    etag: str | None = None
    extra: dict[str, Any] = {}

    KNOWN_KEYS = (
        "id",
        "title",
        "planId",
        "bucketId",
        "priority",
        "percentComplete",
        "dueDateTime",
        "createdDateTime",
        "assignments",
        "@odata.etag",
    )

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "PlannerTask":
        priority = payload.get("priority")
        percent = payload.get("percentComplete")
        return cls(
            id=payload["id"],
            title=payload.get("title") or "",
            plan_id=payload.get("planId") or "",
            created_date_time=payload.get("createdDateTime") or "",
            priority=priority if isinstance(priority, int) else 5,
            percent_complete=percent if isinstance(percent, int) else 0,
            bucket_id=payload.get("bucketId"),
            due_date_time=payload.get("dueDateTime"),
            assignments=payload.get("assignments") or {},
            etag=payload.get("@odata.etag"),
            extra=_extra(payload, cls.KNOWN_KEYS),
        )


class PlannerChecklistItem(NamedTuple):
    item_id: str
    title: str
    is_checked: bool = False
    order_hint: str | None = None


class PlannerTaskDetails(NamedTuple):
    description: str | None = None
    checklist: list[PlannerChecklistItem] = []
    extra: dict[str, Any] = {}

    KNOWN_KEYS = ("description", "checklist")

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "PlannerTaskDetails":
        # Graph returns the checklist as a map keyed by item id
        checklist = [
            PlannerChecklistItem(
                item_id=item_id,
                title=item.get("title") or "",
                is_checked=bool(item.get("isChecked", False)),
                order_hint=item.get("orderHint"),
            )
            for item_id, item in (payload.get("checklist") or {}).items()
            if isinstance(item, dict)
        ]
        return cls(
            description=payload.get("description"),
            checklist=checklist,
            extra=_extra(payload, cls.KNOWN_KEYS),
        )


class TodoTask(NamedTuple):
    id: str
    title: str
    importance: str = "normal"
    status: str = "notStarted"
    body: dict[str, str] | None = None
    due_date_time: dict[str, str] | None = None
    extra: dict[str, Any] = {}

    KNOWN_KEYS = ("id", "title", "importance", "status", "body", "dueDateTime")

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "TodoTask":
        return cls(
            id=payload["id"],
            title=payload.get("title") or "",
            importance=payload.get("importance") or "normal",
            status=payload.get("status") or "notStarted",
            body=payload.get("body"),
            due_date_time=payload.get("dueDateTime"),
            extra=_extra(payload, cls.KNOWN_KEYS),
        )


class TodoTaskList(NamedTuple):
    id: str
    display_name: str
    wellknown_list_name: str = "none"
    extra: dict[str, Any] = {}

    KNOWN_KEYS = ("id", "displayName", "wellknownListName")

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "TodoTaskList":
        return cls(
            id=payload["id"],
            display_name=payload.get("displayName") or "",
            wellknown_list_name=payload.get("wellknownListName") or "none",
            extra=_extra(payload, cls.KNOWN_KEYS),
        )


class ChecklistItemResult(NamedTuple):
    display_name: str
    is_checked: bool
    success: bool


class FoundTask(NamedTuple):
    task: dict[str, Any]
    list_id: str
    list_name: str | None = None
