from __future__ import annotations

from typing import Any, Callable, Iterator, NamedTuple

import pytest

from src.m365_tasks_mcp import graph


class GraphCall(NamedTuple):
    method: str
    path: str
    params: dict[str, Any] | None
    json: dict[str, Any] | None
    headers: dict[str, str] | None


class FakeGraph:
    """Stand-in for graph.request / graph.request_paginated.

    Responses are registered per (method, path). A registered value may be a
    payload, an exception instance (raised), or a callable receiving the
    request's ``json`` body and returning a payload or raising.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, str], Any] = {}
        self.pages: dict[str, Any] = {}
        self.calls: list[GraphCall] = []

    def register(self, method: str, path: str, response: Any) -> None:
        self.responses[(method, path)] = response

    def register_pages(self, path: str, items: Any) -> None:
        self.pages[path] = items

    def request(
        self,
        method: str,
        path: str,
        account_id: str | None = None,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        self.calls.append(GraphCall(method, path, params, json, headers))
        key = (method, path)
        if key not in self.responses:
            raise AssertionError(f"Unexpected Graph request: {method} {path}")
        value = self.responses[key]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(json)
        return value

    def request_paginated(
        self,
        path: str,
        account_id: str | None = None,
        params: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        self.calls.append(GraphCall("GET", path, params, None, None))
        if path not in self.pages:
            raise AssertionError(f"Unexpected paginated Graph request: {path}")
        items = self.pages[path]
        if isinstance(items, Exception):
            raise items
        return iter(items)

    def paths(self, method: str | None = None) -> list[str]:
        return [c.path for c in self.calls if method is None or c.method == method]


@pytest.fixture
def fake_graph(monkeypatch: pytest.MonkeyPatch) -> FakeGraph:
    """Patch the graph module so no request leaves the process."""
    fake = FakeGraph()
    monkeypatch.setattr(graph, "request", fake.request)
    monkeypatch.setattr(graph, "request_paginated", fake.request_paginated)
    return fake


@pytest.fixture
def mock_account_id() -> str:
    return "test-account"


@pytest.fixture
def planner_task_payload() -> Callable[..., dict[str, Any]]:
    """Factory for Planner task JSON as returned by Graph."""

    def _builder(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@odata.etag": 'W/"JzEtVGFzayAgQEBAQEBAQEBAQEBAQEBARCc="',
            "id": "planner-task-1",
            "title": "Tapped Hole",
            "planId": "plan-1",
            "bucketId": "bucket-1",
            "priority": 5,
            "percentComplete": 0,
            "dueDateTime": None,
            "createdDateTime": "2024-03-01T09:00:00Z",
            "assignments": {},
        }
        payload.update(overrides)
        return payload

    return _builder


@pytest.fixture
def todo_lists() -> list[dict[str, Any]]:
    return [
        {"id": "list-flagged", "displayName": "Flagged email", "wellknownListName": "flaggedEmails"},
        {"id": "list-tasks", "displayName": "Tasks", "wellknownListName": "defaultList"},
        {"id": "list-roi", "displayName": "ROI Tasks", "wellknownListName": "none"},
    ]
