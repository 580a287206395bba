"""Shared parameter validation helpers for the task tools."""

from __future__ import annotations

import logging
import re
from typing import Any

LOGGER = logging.getLogger("m365_tasks_mcp.validators")

GRAPH_ID_PATTERN = re.compile(r"[A-Za-z0-9\-._!+=/$]{1,512}")
MAX_TITLE_LENGTH = 1024


class ValidationError(ValueError):
    """Raised when parameter validation fails."""


def _mask_value(value: Any) -> str:
    """Return a shortened representation of a parameter value for messages."""
    if value is None:
        return "None"

    if isinstance(value, str):
        stripped = value.strip()
        if len(stripped) > 64:
            return f"{stripped[:32]}…{stripped[-8:]}"
        return stripped

    return str(value)


def format_validation_error(
    param: str,
    value: Any,
    reason: str,
    expected: str,
) -> str:
    """Format the canonical validation error message."""
    masked = _mask_value(value)
    return f"Invalid {param} '{masked}': {reason}. Expected: {expected}"


def _log_failure(param: str, reason: str, value: Any) -> None:
    LOGGER.warning(
        "Validation failed",
        extra={
            "param": param,
            "reason": reason,
            "value": _mask_value(value),
        },
    )


def _fail(param: str, value: Any, reason: str, expected: str) -> ValidationError:
    _log_failure(param, reason, value)
    return ValidationError(format_validation_error(param, value, reason, expected))


def validate_non_empty_string(
    value: Any,
    param_name: str,
    max_length: int = MAX_TITLE_LENGTH,
) -> str:
    """Ensure a free-text parameter is a non-blank string within bounds.

    The value is returned as given (not stripped) so exact comparisons
    against remote data still see the caller's text.
    """
    if not isinstance(value, str):
        raise _fail(param_name, value, "must be a string", "non-empty string")
    if not value.strip():
        raise _fail(param_name, value, "cannot be empty", "non-empty string")
    if len(value) > max_length:
        raise _fail(
            param_name,
            value,
            f"exceeds {max_length} characters",
            f"at most {max_length} characters",
        )
    return value


def validate_microsoft_graph_id(
    identifier: Any,
    param_name: str = "identifier",
) -> str:
    """Validate Microsoft Graph resource identifiers.

    Planner and To-Do ids are base64-like strings; besides alphanumerics they
    may contain ``- . _ ! + = / $``.
    """
    if not isinstance(identifier, str):
        raise _fail(
            param_name,
            identifier,
            "must be a string",
            "Graph resource identifier string",
        )
    trimmed = identifier.strip()
    if not trimmed:
        raise _fail(param_name, identifier, "cannot be empty", "Non-empty string")
    if not GRAPH_ID_PATTERN.fullmatch(trimmed):
        raise _fail(
            param_name,
            identifier,
            "contains unsupported characters",
            "Alphanumeric with - . _ ! + = / $",
        )
    return trimmed


def validate_optional_graph_id(
    identifier: Any,
    param_name: str = "identifier",
) -> str | None:
    """Like validate_microsoft_graph_id, but None and blank strings pass as None."""
    if identifier is None:
        return None
    if isinstance(identifier, str) and not identifier.strip():
        return None
    return validate_microsoft_graph_id(identifier, param_name)
