from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

sys.path.insert(0, str(SRC_DIR))

CRM_ENV_KEYS = (
    "CRM_ENV",
    "CRM_API_BASE_URL",
    "CRM_API_BASE_URL_DEV",
    "CRM_TIMEOUT_SECONDS",
    "CRM_CONNECT_TIMEOUT_SECONDS",
    "CRM_READ_TIMEOUT_SECONDS",
    "CRM_RETRIES",
    "CRM_RETRY_BACKOFF_SECONDS",
    "CRM_VERIFY_SSL",
    "CRM_FETCH_ALL_LIMIT",
    "CRM_DEFAULT_PAGE_SIZE",
    "CRM_MAX_PAGE_SIZE",
    "CRM_VIEW_STATE_PATH",
    "CRM_ACCESS_TOKEN",
)


@pytest.fixture(autouse=True)
def _clean_crm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in CRM_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
