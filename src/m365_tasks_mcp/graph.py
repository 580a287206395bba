from json import JSONDecodeError
import logging
from typing import Any, Iterator

import httpx

from .auth import get_token
from .exceptions import (
    GraphAPIError,
    GraphResponseParseError,
    PermissionDeniedError,
    RateLimitError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)

GRAPH_BASE = "https://graph.microsoft.com/v1.0"
REQUEST_TIMEOUT = 15


def _auth_header(account_id: str | None) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {get_token(account_id)}",
        "Content-Type": "application/json",
    }


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    if response.is_success:
        return

    status = response.status_code
    detail = f"{method} {path} returned HTTP {status}: {response.text}"
    if status == 404:
        raise ResourceNotFoundError(detail)
    if status in (401, 403):
        raise PermissionDeniedError(detail)
    if status == 429:
        raise RateLimitError(detail)
    raise GraphAPIError(detail)


def _parse_response(response: httpx.Response, path: str) -> dict[str, Any] | None:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except JSONDecodeError as e:
        raise GraphResponseParseError(f"Invalid JSON from {path}: {e}") from e


def request(
    method: str,
    path: str,
    account_id: str | None = None,
    *,
    params: dict[str, Any] | None = None,
    json: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any] | None:
    """Send one authenticated request to Microsoft Graph.

    ``path`` is relative to the v1.0 endpoint; absolute URLs (such as
    ``@odata.nextLink`` values) are used as given. Returns the decoded JSON
    body, or None for empty responses.
    """
    url = path if path.startswith("https://") else f"{GRAPH_BASE}{path}"
    request_headers = _auth_header(account_id)
    if headers:
        request_headers.update(headers)

    logger.debug(f"Graph request: {method} {path} params={params}")
    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT) as client:
            response = client.request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
            )
    except httpx.HTTPError as e:
        raise GraphAPIError(f"{method} {path} failed: {e}") from e

    logger.debug(f"Graph response: {method} {path} -> {response.status_code}")
    _raise_for_status(response, method, path)
    return _parse_response(response, path)


def request_paginated(
    path: str,
    account_id: str | None = None,
    params: dict[str, Any] | None = None,
    limit: int | None = None,
) -> Iterator[dict[str, Any]]:
    """Yield items from ``value`` across ``@odata.nextLink`` pages."""
    fetched = 0
    next_path: str | None = path
    next_params = params

    while next_path:
        result = request("GET", next_path, account_id, params=next_params)
        if not result:
            return

        for item in result.get("value", []):
            yield item
            fetched += 1
            if limit is not None and fetched >= limit:
                return

        # nextLink already carries the query string
        next_path = result.get("@odata.nextLink")
        next_params = None
