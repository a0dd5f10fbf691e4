from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv

DEFAULT_FETCH_ALL_LIMIT = 10000
DEFAULT_PAGE_SIZE = 25
DEFAULT_MAX_PAGE_SIZE = 200


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str | None = None
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    verify_ssl: bool = True
    fetch_all_limit: int = DEFAULT_FETCH_ALL_LIMIT
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE
    view_state_path: str | None = None

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()

    def require_api(self) -> str:
        if not self.api_base_url:
            raise ConfigError("Missing required config values: CRM_API_BASE_URL")
        return self.api_base_url


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None, *, require_api: bool = False) -> ClientConfig:
    """Load config from environment with optional .env override.

    The API base URL is only mandatory when ``require_api`` is set; browsing a
    local record set needs no backend.
    """
    load_dotenv(env_file)

    env_name = (os.getenv("CRM_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"CRM_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("CRM_API_BASE_URL") or "").strip()
    )
    if require_api:
        _require({"CRM_API_BASE_URL": api_base_url}, ["CRM_API_BASE_URL"])

    timeout_seconds = _read_float("CRM_TIMEOUT_SECONDS", "10")
    _validate(timeout_seconds > 0, f"Invalid CRM_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}")

    connect_timeout_seconds = _read_float("CRM_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0)))
    _validate(
        connect_timeout_seconds > 0,
        f"Invalid CRM_CONNECT_TIMEOUT_SECONDS: expected > 0, got {connect_timeout_seconds}",
    )

    read_timeout_seconds = _read_float(
        "CRM_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid CRM_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    retries = _read_int("CRM_RETRIES", "3")
    _validate(retries >= 0, f"Invalid CRM_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("CRM_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        f"Invalid CRM_RETRY_BACKOFF_SECONDS: expected >= 0, got {retry_backoff_seconds}",
    )

    fetch_all_limit = _read_int("CRM_FETCH_ALL_LIMIT", str(DEFAULT_FETCH_ALL_LIMIT))
    _validate(fetch_all_limit >= 1, f"Invalid CRM_FETCH_ALL_LIMIT: expected >= 1, got {fetch_all_limit}")

    max_page_size = _read_int("CRM_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE))
    _validate(max_page_size >= 1, f"Invalid CRM_MAX_PAGE_SIZE: expected >= 1, got {max_page_size}")

    default_page_size = _read_int("CRM_DEFAULT_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))
    _validate(
        1 <= default_page_size <= max_page_size,
        f"Invalid CRM_DEFAULT_PAGE_SIZE: expected 1..{max_page_size}, got {default_page_size}",
    )

    verify_ssl = _coerce_bool(os.getenv("CRM_VERIFY_SSL"), True)
    view_state_path = (os.getenv("CRM_VIEW_STATE_PATH") or "").strip() or None

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/") or None,
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        verify_ssl=verify_ssl,
        fetch_all_limit=fetch_all_limit,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        view_state_path=view_state_path,
    )
