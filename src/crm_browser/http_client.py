from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import TransportError
from .logger import get_logger, log_event

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


@dataclass
class LastOperation:
    method: str
    path: str
    duration_ms: int
    result: str
    request_id: str


@dataclass
class HttpClient:
    config: ClientConfig
    session: requests.Session | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=4)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def _build_url(self, path: str) -> str:
        base = self.config.require_api().rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any] | list[Any] | None:
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        request_id = str(uuid.uuid4())
        request_headers = {"Accept": "application/json", REQUEST_ID_HEADER: request_id}
        if headers:
            request_headers.update(headers)

        normalized_method = method.upper()
        url = self._build_url(path)
        attempts = self.config.retries + 1 if normalized_method in {"GET", "HEAD"} else 1
        started = time.monotonic()
        response: requests.Response | None = None
        for attempt in range(attempts):
            try:
                response = self.session.request(
                    method=normalized_method,
                    url=url,
                    headers=request_headers,
                    params=params,
                    json=json_body,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if attempt >= attempts - 1:
                    self._record(normalized_method, path, started, "transport_error", request_id)
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc),
                        details={"type": type(exc).__name__},
                        request_id=request_id,
                        status_code=0,
                        raw_payload=None,
                    ) from exc
                log_event(
                    logger,
                    "request_retry",
                    level=logging.WARNING,
                    method=normalized_method,
                    path=path,
                    attempt=attempt + 1,
                    error=type(exc).__name__,
                    request_id=request_id,
                )
            else:
                if response.status_code < 500 or attempt >= attempts - 1:
                    break
                log_event(
                    logger,
                    "request_retry",
                    level=logging.WARNING,
                    method=normalized_method,
                    path=path,
                    attempt=attempt + 1,
                    status_code=response.status_code,
                    request_id=request_id,
                )
            time.sleep(self.config.retry_backoff_seconds * (2**attempt))

        if response is None:
            raise RuntimeError("HTTP request failed without response")

        if response.ok:
            self._record(normalized_method, path, started, "success", request_id)
            if not response.content:
                return None
            return response.json()

        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}
        self._record(normalized_method, path, started, f"error({response.status_code})", request_id)
        raise map_error(response.status_code, payload if isinstance(payload, dict) else {}, request_id)

    def _record(self, method: str, path: str, started: float, result: str, request_id: str) -> None:
        self.last_operation = LastOperation(
            method=method,
            path=path,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            request_id=request_id,
        )
        log_event(logger, "http_request", level=logging.DEBUG, **self.last_operation.__dict__)
