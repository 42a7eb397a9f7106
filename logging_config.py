from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Optional, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "url",
    "status_code",
    "failure",
    "path",
    "cycle",
    "exit_status",
)


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if not context_parts:
            return message
        # keep the context on the first line when a traceback follows
        head, sep, tail = message.partition("\n")
        return f"{head} | {' '.join(context_parts)}{sep}{tail}"


def _build_handler(log_level: str | int, log_path: Optional[str]) -> Dict[str, Any]:
    if log_path:
        return {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": log_path,
            "mode": "a",
            "encoding": "utf-8",
        }
    return {
        "class": "logging.StreamHandler",
        "level": log_level,
        "formatter": "contextual",
    }


def configure_logging(
    level: str | int | None = None,
    log_path: Optional[str] = None,
) -> None:
    """Configure application-wide logging with contextual formatting.

    Logs go to stderr unless ``log_path`` names a file, which is appended to.
    Calling this again replaces the previous configuration.
    """
    settings = get_settings()
    log_level = level if level is not None else settings.log_level
    destination = log_path if log_path is not None else settings.log_path

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {"default": _build_handler(log_level, destination)},
            "root": {"handlers": ["default"], "level": log_level},
        }
    )
