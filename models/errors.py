"""Structured error codes for stream ``error`` events and HTTP details.

Stream errors follow the format::

    {ERROR_CODE}: {human_readable_detail}
"""

from __future__ import annotations

from enum import Enum

from errors.exceptions import (
    FeatureLockedError,
    ProjectNotFoundError,
    TransportError,
    UpstreamError,
)


class ErrorCode(str, Enum):
    """Canonical error codes shared between the service and its clients."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FEATURE_LOCKED = "FEATURE_LOCKED"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def format_error(code: ErrorCode, detail: str) -> str:
    """Format an error as ``{ERROR_CODE}: {detail}``."""
    return f"{code.value}: {detail}"


def format_upstream_error(exc: UpstreamError) -> str:
    """Format a provider failure, keeping its status and raw body."""
    body = exc.body.strip() or "no error body"
    return format_error(
        ErrorCode.UPSTREAM_ERROR,
        f"provider returned {exc.status_code}: {body}",
    )


def describe_error(exc: BaseException) -> str:
    """Classify an exception into the ``message`` of a terminal error event.

    Classification order (first match wins):
        1. Provider non-success status.
        2. Dropped connection or exceeded generation ceiling.
        3. Locked feature / missing project.
        4. Fallback: ``INTERNAL_ERROR``.
    """
    if isinstance(exc, UpstreamError):
        return format_upstream_error(exc)
    if isinstance(exc, TransportError):
        return format_error(ErrorCode.TRANSPORT_ERROR, str(exc) or "connection lost")
    if isinstance(exc, FeatureLockedError):
        return format_error(ErrorCode.FEATURE_LOCKED, str(exc))
    if isinstance(exc, ProjectNotFoundError):
        return format_error(ErrorCode.NOT_FOUND, str(exc))
    return format_error(ErrorCode.INTERNAL_ERROR, str(exc) or type(exc).__name__)
