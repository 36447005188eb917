"""Error responses for the conversion API.

Every error response has the shape:
- ``error``: Human-readable error message
- ``code``: Machine-readable error code string
- ``details`` (optional): Additional context for the error

Handlers either build a response directly with :func:`api_error` or let
:func:`domain_error` translate one of the scanner, exclusion or state
store exceptions into the matching status and code.

Usage:
    from umd.server.api.errors import api_error, job_not_found, INVALID_PARAMETER

    return api_error("Invalid file index", code=INVALID_PARAMETER)
    return job_not_found(job_id)
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

from umd.exclusions.exceptions import (
    ExclusionRuleNotFoundError,
    InvalidExclusionRuleError,
)
from umd.jobs.exceptions import BatchNotFoundError, FileNotInBatchError
from umd.scanner.exceptions import ScanPathNotDirectoryError, ScanPathNotFoundError

# --- Error code constants ---

INVALID_JSON = "INVALID_JSON"
NOT_FOUND = "NOT_FOUND"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
INVALID_PARAMETER = "INVALID_PARAMETER"
UNKNOWN_PARAMETERS = "UNKNOWN_PARAMETERS"
VALIDATION_FAILED = "VALIDATION_FAILED"
CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
SHUTTING_DOWN = "SHUTTING_DOWN"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Checked in order; subclasses come before their bases
_DOMAIN_ERRORS: tuple[tuple[type[Exception], str, int], ...] = (
    (ScanPathNotFoundError, NOT_FOUND, 404),
    (ScanPathNotDirectoryError, INVALID_PARAMETER, 400),
    (ExclusionRuleNotFoundError, NOT_FOUND, 404),
    (InvalidExclusionRuleError, VALIDATION_FAILED, 400),
    (BatchNotFoundError, NOT_FOUND, 404),
    (FileNotInBatchError, NOT_FOUND, 404),
)


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
    **extra: Any,
) -> web.Response:
    """Create a JSON error response.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (use constants from this module).
        status: HTTP status code (default 400).
        details: Optional additional context (string, list, or dict).
        **extra: Additional top-level fields (e.g. ``totalFiles``).

    Returns:
        aiohttp JSON response with ``{"error": ..., "code": ...}`` body.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return web.json_response(body, status=status)


def domain_error(exc: Exception) -> web.Response:
    """Map a scan, exclusion or batch exception to its error response.

    Exceptions without a mapping become a 500 ``INTERNAL_ERROR``.
    """
    for exc_type, code, status in _DOMAIN_ERRORS:
        if isinstance(exc, exc_type):
            return api_error(str(exc), code=code, status=status)
    return api_error(str(exc), code=INTERNAL_ERROR, status=500)


def job_not_found(job_id: str) -> web.Response:
    return api_error("Job not found", code=NOT_FOUND, status=404, jobId=job_id)


def rule_not_found(rule_id: str) -> web.Response:
    return api_error("Rule not found", code=NOT_FOUND, status=404, ruleId=rule_id)
