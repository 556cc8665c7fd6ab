"""Shared HTTP helpers used by the module proxy client.

Encapsulates common request error handling so callers avoid duplicating
try/except blocks. Transport failures are raised as FetchFailedError rather
than retried.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from common.errors import FetchFailedError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(
    url: str,
    *,
    context: str,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "goproxy").
        timeout: Seconds before giving up; None keeps the transport default.
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object, whatever its status.

    Raises:
        FetchFailedError: On timeouts and connection errors.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=timeout, **kwargs)
        except requests.Timeout as exc:
            logger.error("%s request timed out after %s seconds", context, timeout)
            raise FetchFailedError(f"{context}: request to {safe_target} timed out") from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            raise FetchFailedError(f"{context}: request to {safe_target} failed: {exc}") from exc
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                status_code=res.status_code,
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context
            )
        )
    return res
