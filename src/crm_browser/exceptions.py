from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    request_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        request = f" request_id={self.request_id}" if self.request_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{request}"


class AuthError(ApiError):
    """Missing, expired or rejected bearer token."""


class PermissionError(ApiError):
    """Authenticated but not allowed to read the entity."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class RateLimitError(ApiError):
    pass


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str
    index: int | None = None


class ClientValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        issue = self.issues[0]
        location = f"filter {issue.index}" if issue.index is not None else "payload"
        return f"{location} {issue.field}: {issue.reason}"
