"""Tests for the Graph HTTP layer using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from src.m365_tasks_mcp import graph
from src.m365_tasks_mcp.exceptions import (
    GraphAPIError,
    GraphResponseParseError,
    PermissionDeniedError,
    RateLimitError,
    ResourceNotFoundError,
)


@pytest.fixture
def transport(monkeypatch):
    """Route graph.request through a handler installed by each test."""
    state: dict = {"handler": None, "requests": []}
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["handler"](request)

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(graph, "get_token", lambda account_id=None: "token-123")
    monkeypatch.setattr(graph.httpx, "Client", client_factory)
    return state


def test_request_sends_bearer_token_and_merges_headers(transport):
    transport["handler"] = lambda request: httpx.Response(200, json={"id": "t1"})

    result = graph.request(
        "PATCH",
        "/planner/tasks/t1",
        json={"percentComplete": 100},
        headers={"If-Match": "W/\"etag\""},
    )

    sent = transport["requests"][0]
    assert result == {"id": "t1"}
    assert str(sent.url) == "https://graph.microsoft.com/v1.0/planner/tasks/t1"
    assert sent.headers["Authorization"] == "Bearer token-123"
    assert sent.headers["If-Match"] == 'W/"etag"'
    assert json.loads(sent.content) == {"percentComplete": 100}


def test_query_params_are_encoded(transport):
    transport["handler"] = lambda request: httpx.Response(200, json={"value": []})

    graph.request(
        "GET",
        "/me/todo/lists/l1/tasks",
        params={"$filter": "contains(title, 'O''Neil')"},
    )

    sent = transport["requests"][0]
    assert sent.url.params["$filter"] == "contains(title, 'O''Neil')"


def test_no_content_returns_none(transport):
    transport["handler"] = lambda request: httpx.Response(204)
    assert graph.request("PATCH", "/planner/tasks/t1", json={}) is None


def test_invalid_json_raises_parse_error(transport):
    transport["handler"] = lambda request: httpx.Response(200, text="<html>")

    with pytest.raises(GraphResponseParseError):
        graph.request("GET", "/planner/tasks/t1")


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (404, ResourceNotFoundError),
        (401, PermissionDeniedError),
        (403, PermissionDeniedError),
        (429, RateLimitError),
        (500, GraphAPIError),
        (412, GraphAPIError),
    ],
)
def test_error_status_mapping(transport, status, error):
    transport["handler"] = lambda request: httpx.Response(
        status, json={"error": {"code": "x", "message": "y"}}
    )

    with pytest.raises(error) as exc_info:
        graph.request("GET", "/planner/tasks/t1")

    assert f"HTTP {status}" in str(exc_info.value)


def test_transport_error_becomes_graph_error(transport):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport["handler"] = boom

    with pytest.raises(GraphAPIError, match="connection refused"):
        graph.request("GET", "/me/todo/lists")


def test_pagination_follows_next_link(transport):
    next_link = "https://graph.microsoft.com/v1.0/me/todo/lists?$skiptoken=abc"

    def handler(request):
        if "skiptoken" in str(request.url):
            return httpx.Response(200, json={"value": [{"id": "l3"}]})
        return httpx.Response(
            200, json={"value": [{"id": "l1"}, {"id": "l2"}], "@odata.nextLink": next_link}
        )

    transport["handler"] = handler

    items = list(graph.request_paginated("/me/todo/lists"))

    assert [item["id"] for item in items] == ["l1", "l2", "l3"]
    assert str(transport["requests"][1].url) == next_link


def test_pagination_respects_limit(transport):
    transport["handler"] = lambda request: httpx.Response(
        200,
        json={
            "value": [{"id": "l1"}, {"id": "l2"}],
            "@odata.nextLink": "https://graph.microsoft.com/v1.0/next",
        },
    )

    items = list(graph.request_paginated("/me/todo/lists", limit=1))

    assert items == [{"id": "l1"}]
    assert len(transport["requests"]) == 1
