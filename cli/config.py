from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from settings import Settings, get_settings


class ConfigError(ValueError):
    """Invalid startup configuration; the process exits before polling."""


@dataclass(frozen=True)
class PollerConfig:
    hostname: str
    period: float
    data_path: Optional[Path] = None
    state_path: Optional[Path] = None
    log_path: Optional[Path] = None
    request_timeout: float = 10.0
    log_level: str = "WARNING"


def _resolve_log_level(settings: Settings, verbose: bool, debug: bool) -> str:
    if debug:
        return logging.getLevelName(logging.DEBUG)
    if verbose:
        return logging.getLevelName(logging.INFO)
    return settings.log_level


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


def load_config(
    hostname: Optional[str] = None,
    period: Optional[float] = None,
    data_path: Optional[Path] = None,
    state_path: Optional[Path] = None,
    log_path: Optional[Path] = None,
    request_timeout: Optional[float] = None,
    verbose: bool = False,
    debug: bool = False,
) -> PollerConfig:
    """Merge command-line values over environment settings and validate them."""
    settings = get_settings()

    host = (hostname or settings.hostname or "").strip()
    if not host:
        raise ConfigError("a sensor hostname is required")

    if period is None:
        period = settings.period
    if period <= 0:
        raise ConfigError(f"period must be positive, got {period}")

    if request_timeout is None:
        request_timeout = settings.request_timeout
    if request_timeout < 0:
        raise ConfigError(f"timeout must not be negative, got {request_timeout}")

    return PollerConfig(
        hostname=host,
        period=period,
        data_path=data_path or _optional_path(settings.data_path),
        state_path=state_path or _optional_path(settings.state_path),
        log_path=log_path or _optional_path(settings.log_path),
        request_timeout=request_timeout,
        log_level=_resolve_log_level(settings, verbose, debug),
    )
