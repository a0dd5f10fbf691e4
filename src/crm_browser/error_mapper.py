"""Translate CRM API error responses into :class:`ApiError` subclasses.

The CRM routes answer failures as ``{"error": "..."}``; some handlers add
``code`` and ``details``. Both shapes end up in the same exception fields.
"""

from __future__ import annotations

from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    ValidationError,
)

ERRORS_BY_STATUS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthError,
    403: PermissionError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}

DEFAULT_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    429: "RATE_LIMITED",
}


def error_class_for(status_code: int) -> type[ApiError]:
    if status_code >= 500:
        return ServerError
    return ERRORS_BY_STATUS.get(status_code, ApiError)


def map_error(status_code: int, payload: Mapping[str, object] | None, request_id: str | None) -> ApiError:
    body = dict(payload or {})
    fallback_code = "SERVER_ERROR" if status_code >= 500 else DEFAULT_CODES.get(status_code, "HTTP_ERROR")
    echoed_request_id = body.get("request_id") or body.get("requestId")
    return error_class_for(status_code)(
        code=str(body.get("code") or fallback_code),
        message=str(body.get("message") or body.get("error") or f"Request failed with status {status_code}"),
        details=body.get("details"),
        request_id=str(echoed_request_id) if echoed_request_id else request_id,
        status_code=status_code,
        raw_payload=body,
    )
