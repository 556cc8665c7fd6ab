"""Centralised logging configuration and structured-debug helpers.

Modules log through ``logging.getLogger(__name__)``. Structured DEBUG events
attach their fields with ``extra=extra_context(...)`` and are guarded by
``is_debug_enabled`` so the dictionaries are only built when they are printed.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_EXTRA_KEY = "modsources_fields"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = getattr(record, _EXTRA_KEY, None)
        if not fields:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None)
        return f"{base} {rendered}" if rendered else base


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the process.

    Args:
        level: Level name; falls back to the MODSOURCES_LOG_LEVEL environment
            variable, then INFO.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_modsources", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter(Constants.LOG_FORMAT))
        handler._modsources = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a file handler to the root logger and return it."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    logging.getLogger().addHandler(handler)
    return handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records of this logger would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """Build the ``extra`` mapping for a structured log call."""
    return {_EXTRA_KEY: fields}


def safe_url(url: str) -> str:
    """Strip credentials and query strings from a URL before logging it."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
