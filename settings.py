from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_HOSTNAME_ENV = "PURPLEAIR_HOSTNAME"
_PERIOD_ENV = "PURPLEAIR_PERIOD"
_DATA_PATH_ENV = "PURPLEAIR_DATA_PATH"
_STATE_PATH_ENV = "PURPLEAIR_STATE_PATH"
_LOG_PATH_ENV = "PURPLEAIR_LOG_PATH"
_TIMEOUT_ENV = "PURPLEAIR_REQUEST_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    hostname: Optional[str]
    period: float
    data_path: Optional[str]
    state_path: Optional[str]
    log_path: Optional[str]
    request_timeout: float
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timeout(default: float) -> float:
    value = os.getenv(_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    # zero disables the timeout
    return parsed if parsed >= 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        hostname=_read_optional_env(_HOSTNAME_ENV, None),
        period=_read_positive_float(_PERIOD_ENV, 60.0),
        data_path=_read_optional_env(_DATA_PATH_ENV, None),
        state_path=_read_optional_env(_STATE_PATH_ENV, None),
        log_path=_read_optional_env(_LOG_PATH_ENV, None),
        request_timeout=_read_timeout(10.0),
        log_level=_read_log_level("WARNING"),
    )
