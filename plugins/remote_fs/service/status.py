"""HTTP status -> remote file error mapping.

Every bridge response goes through raise_for_panel_status(). Internal detail
(status lines, raw bodies) is logged; only the panel's own `detail` field
reaches the user.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from panelfs.core.errors import (
    BusyError,
    ForbiddenError,
    NotFoundError,
    ServerUnavailableError,
    UnauthenticatedError,
)
from panelfs.core.logging import get_logger

_logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "rate limited"
SERVER_ERROR_MESSAGE = (
    "The server (or a proxy) was unable to handle the request. "
    "Check the diagnostic log for more information."
)
DEFAULT_DETAIL = "Request could not be completed."


def error_detail(response: httpx.Response, default: str = DEFAULT_DETAIL) -> str:
    """First `errors[].detail` of a panel error body, or default."""
    try:
        body: Any = response.json()
        detail = body["errors"][0]["detail"]
    except (ValueError, KeyError, IndexError, TypeError):
        return default
    return str(detail) if detail else default


def raise_for_panel_status(
    operation: str,
    response: httpx.Response,
    *,
    on_unauthenticated: Callable[[], None],
) -> None:
    """Raise the error kind for a non-2xx response; return on success.

    A 401 calls on_unauthenticated exactly once before raising.
    """
    status = response.status_code
    status_line = f"{status} {response.reason_phrase}"
    _logger.verbose(f"{operation}: {status_line}")

    target = str(response.url)
    if status == 401:
        _logger.warning(f"Authentication failed for {response.url.host}.")
        on_unauthenticated()
        raise UnauthenticatedError(target)
    if status == 403:
        raise ForbiddenError(f"Permission denied: {target}")
    if status == 404:
        raise NotFoundError(f"Not found: {target}")
    if status == 422:
        raise BusyError(error_detail(response))
    if status == 429:
        raise BusyError(RATE_LIMITED_MESSAGE, "Wait a moment before retrying")
    if status == 500:
        _logger.verbose(f"-> Response: {response.text}")
        raise ServerUnavailableError(SERVER_ERROR_MESSAGE)
    if not response.is_success:
        raise ServerUnavailableError(f"Unknown error: {status_line}")
