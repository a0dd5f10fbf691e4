from __future__ import annotations

import json
import logging

import pytest
import requests
import responses

from crm_browser.config import ClientConfig
from crm_browser.data_source import CrmApiDataSource, StaticDataSource, entity_path
from crm_browser.error_mapper import map_error
from crm_browser.exceptions import (
    ApiError,
    AuthError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    TransportError,
    ValidationError,
)
from crm_browser.http_client import REQUEST_ID_HEADER, HttpClient

BASE_URL = "https://crm.example.com"


def _source(retries: int = 0, limit: int = 10000) -> CrmApiDataSource:
    cfg = ClientConfig(env_name="test", api_base_url=BASE_URL, retries=retries, retry_backoff_seconds=0)
    return CrmApiDataSource(http=HttpClient(cfg), fetch_all_limit=limit)


@responses.activate
def test_fetch_all_requests_one_large_page() -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/crm/deals",
        json={"data": [{"id": "d1"}, {"id": "d2"}], "pagination": {"page": 1, "limit": 10000, "total": 2, "totalPages": 1}},
        status=200,
    )
    source = _source()

    records = source.fetch_all("deals", "token-abc")

    assert records == [{"id": "d1"}, {"id": "d2"}]
    request = responses.calls[0].request
    assert "page=1" in request.url
    assert "limit=10000" in request.url
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert request.headers[REQUEST_ID_HEADER]
    assert source.last_truncated is False
    assert source.http.last_operation is not None
    assert source.http.last_operation.result == "success"


@responses.activate
def test_fetch_all_flags_truncation(caplog: pytest.LogCaptureFixture) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/crm/contacts",
        json={"data": [{"id": "c1"}, {"id": "c2"}], "pagination": {"total": 5}},
        status=200,
    )
    source = _source(limit=2)

    with caplog.at_level(logging.WARNING, logger="crm_browser.data_source"):
        records = source.fetch_all("contacts", "token")

    assert len(records) == 2
    assert source.last_truncated is True
    assert source.last_total == 5
    events = [json.loads(record.getMessage())["event"] for record in caplog.records]
    assert "fetch_all_truncated" in events


@responses.activate
def test_fetch_all_accepts_bare_arrays() -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/crm/tasks", json=[{"id": "t1"}, "junk"], status=200)

    assert _source().fetch_all("tasks", None) == [{"id": "t1"}]
    assert "Authorization" not in responses.calls[0].request.headers


@responses.activate
def test_fetch_all_rejects_unexpected_shape() -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/crm/leads", json={"data": "nope"}, status=200)

    with pytest.raises(ValidationError) as exc_info:
        _source().fetch_all("leads", "token")

    assert exc_info.value.code == "INVALID_RESPONSE"


@responses.activate
def test_unauthorized_maps_to_auth_error() -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/crm/companies",
        json={"error": "Invalid or expired token"},
        status=401,
    )

    with pytest.raises(AuthError) as exc_info:
        _source().fetch_all("companies", "stale")

    assert exc_info.value.message == "Invalid or expired token"
    assert exc_info.value.status_code == 401
    assert exc_info.value.request_id


@responses.activate
def test_server_errors_are_retried_for_get() -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/crm/deals", json={"error": "down"}, status=503)
    responses.add(responses.GET, f"{BASE_URL}/api/crm/deals", json={"data": [{"id": "d1"}]}, status=200)

    records = _source(retries=2).fetch_all("deals", "token")

    assert records == [{"id": "d1"}]
    assert len(responses.calls) == 2


@responses.activate
def test_server_error_after_retries_raises() -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/crm/deals", json={"message": "boom"}, status=500)

    with pytest.raises(ServerError):
        _source(retries=1).fetch_all("deals", "token")

    assert len(responses.calls) == 2


@responses.activate
def test_connection_failure_raises_transport_error() -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/crm/deals", body=requests.ConnectionError("refused"))

    with pytest.raises(TransportError) as exc_info:
        _source().fetch_all("deals", "token")

    assert exc_info.value.status_code == 0


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (403, PermissionError),
        (404, NotFoundError),
        (422, ValidationError),
        (429, RateLimitError),
        (502, ServerError),
    ],
)
def test_map_error_by_status(status: int, expected: type) -> None:
    error = map_error(status, {"code": "X", "message": "nope", "requestId": "r-1"}, "local")

    assert isinstance(error, expected)
    assert error.request_id == "r-1"
    assert str(error) == f"[{status}] X: nope request_id=r-1"


def test_map_error_falls_back_to_status_defaults() -> None:
    not_found = map_error(404, {"error": "Deal not found"}, "req-1")
    unavailable = map_error(503, None, None)
    teapot = map_error(418, {}, None)

    assert isinstance(not_found, NotFoundError)
    assert (not_found.code, not_found.message, not_found.request_id) == ("NOT_FOUND", "Deal not found", "req-1")
    assert isinstance(unavailable, ServerError)
    assert unavailable.code == "SERVER_ERROR"
    assert unavailable.message == "Request failed with status 503"
    assert type(teapot) is ApiError
    assert teapot.code == "HTTP_ERROR"


def test_static_source_checks_credential() -> None:
    source = StaticDataSource({"deals": [{"id": "d1"}]}, required_credential="secret")

    assert source.fetch_all("deals", "secret") == [{"id": "d1"}]
    assert source.fetch_all("tasks", "secret") == []
    with pytest.raises(AuthError):
        source.fetch_all("deals", None)


def test_entity_path() -> None:
    assert entity_path(" Deals ") == "/api/crm/deals"
