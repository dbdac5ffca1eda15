"""
Shared error types and error-handling helpers.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class PortalServiceError(RuntimeError):
    """A portal collaborator call failed (transport, status or payload)."""

    def __init__(self, service: str, detail: str, *, status_code: Optional[int] = None) -> None:
        self.service = service
        self.detail = detail
        self.status_code = status_code
        prefix = f"{service} request failed"
        if status_code is not None:
            prefix = f"{prefix} ({status_code})"
        super().__init__(f"{prefix}: {detail}")


class PolicyValidationError(ValueError):
    """A matching policy is missing required fields or carries bad values."""


def _format_extra(extra: dict | None) -> str:
    if not extra:
        return ""
    parts: list[str] = []
    for key, value in extra.items():
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return f" {' '.join(parts)}" if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """
    Log an exception with context. Uses logger.exception for stack traces.
    """
    suffix = _format_extra(extra)
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")


def guarded_call(
    name: str,
    fn: Callable[[], T],
    *,
    fallback: T | None = None,
    logger: logging.Logger | None = None,
    context: dict | None = None,
) -> T | None:
    """
    Execute fn with logging on failure. Returns fallback if provided.
    """
    try:
        return fn()
    except Exception as exc:
        if logger:
            log_exception(logger, f"{name} failed", extra=context or {}, exc=exc)
        return fallback
