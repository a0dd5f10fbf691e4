"""Record sources for the browser.

The CRM list endpoints are paginated server-side. ``fetch_all`` requests the
first page with a very large ``limit`` as a stand-in for an unbounded fetch.
That is a scalability ceiling: when the backend reports more rows than it
returned, the result is flagged as truncated and a warning is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_FETCH_ALL_LIMIT
from .exceptions import AuthError, ValidationError
from .http_client import HttpClient
from .logger import get_logger, log_event
from .models import RecordSetResponse

logger = get_logger(__name__)


class DataSource(Protocol):
    def fetch_all(self, entity_type: str, auth_credential: str | None) -> list[dict[str, Any]]: ...


@dataclass
class CrmApiDataSource:
    http: HttpClient
    fetch_all_limit: int = DEFAULT_FETCH_ALL_LIMIT
    last_truncated: bool = False
    last_total: int | None = None

    def fetch_all(self, entity_type: str, auth_credential: str | None) -> list[dict[str, Any]]:
        path = entity_path(entity_type)
        headers = {"Authorization": f"Bearer {auth_credential}"} if auth_credential else {}
        payload = self.http.request(
            "GET",
            path,
            headers=headers,
            params={"page": 1, "limit": self.fetch_all_limit},
        )
        response = _parse_record_set(payload, path)
        records = [record for record in response.data or [] if isinstance(record, dict)]
        total = response.pagination.total if response.pagination else None
        self.last_total = total if total is not None else len(records)
        self.last_truncated = total is not None and total > len(records)
        if self.last_truncated:
            log_event(
                logger,
                "fetch_all_truncated",
                level=logging.WARNING,
                entity_type=entity_type,
                returned=len(records),
                total=total,
                limit=self.fetch_all_limit,
            )
        log_event(logger, "fetch_all", entity_type=entity_type, returned=len(records), total=self.last_total)
        return records


@dataclass
class StaticDataSource:
    """In-memory source, keyed by entity type. Used offline and in tests."""

    records_by_entity: Mapping[str, list[dict[str, Any]]] = field(default_factory=dict)
    required_credential: str | None = None

    def fetch_all(self, entity_type: str, auth_credential: str | None) -> list[dict[str, Any]]:
        if self.required_credential is not None and auth_credential != self.required_credential:
            raise AuthError(
                code="INVALID_TOKEN",
                message=f"credential rejected for {entity_type}",
                details=None,
                request_id=None,
                status_code=401,
            )
        return [dict(record) for record in self.records_by_entity.get(entity_type, [])]


def entity_path(entity_type: str) -> str:
    return f"/api/crm/{entity_type.strip().lower()}"


def _parse_record_set(payload: Any, path: str) -> RecordSetResponse:
    if isinstance(payload, list):
        # Some handlers return a bare array without pagination metadata.
        return RecordSetResponse(data=[item for item in payload if isinstance(item, dict)])
    if not isinstance(payload, dict):
        raise ValidationError(
            code="INVALID_RESPONSE",
            message=f"Expected {path} response to be a JSON object",
            details=None,
            request_id=None,
            status_code=200,
        )
    try:
        return RecordSetResponse.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            code="INVALID_RESPONSE",
            message=f"Unexpected {path} response shape",
            details=exc.errors(include_url=False),
            request_id=None,
            status_code=200,
        ) from exc
