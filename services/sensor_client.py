"""HTTP client for the sensor's local JSON endpoint."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx

from models.records import Reading

JSON_PATH = "/json"

_logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Reasons a poll produced no reading."""

    connect = "connect"
    status = "status"
    empty_body = "empty_body"
    parse = "parse"


@dataclass(frozen=True)
class FetchFailure:
    kind: FailureKind
    message: str


FetchResult = Union[Reading, FetchFailure]


def _reject_constant(token: str) -> float:
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"invalid constant {token!r}")


class SensorClient:
    """Fetches one reading per call from ``http://<hostname>/json``.

    A fresh ``httpx.Client`` is opened and closed inside every ``fetch()``.
    ``timeout`` of ``None`` or ``0`` waits indefinitely.
    """

    def __init__(
        self,
        hostname: str,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.hostname = hostname
        self.url = f"http://{hostname}{JSON_PATH}"
        self.timeout = timeout or None
        self._logger = logger or _logger
        self._transport = transport

    def fetch(self) -> FetchResult:
        self._logger.debug("GET %s", self.url, extra={"url": self.url})
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(self.url)
        except httpx.DecodingError as exc:
            return self._fail(FailureKind.parse, f"could not decode response: {exc}")
        except httpx.RequestError as exc:
            return self._fail(FailureKind.connect, f"could not connect: {exc}")

        body = response.text
        self._logger.debug("response body: %s", body, extra={"url": self.url})

        if response.status_code != 200:
            return self._fail(
                FailureKind.status,
                f"unexpected HTTP status {response.status_code}",
                status_code=response.status_code,
            )

        if not body.strip():
            return self._fail(FailureKind.empty_body, "empty body")

        try:
            reading = json.loads(body, parse_constant=_reject_constant)
        except ValueError as exc:
            return self._fail(FailureKind.parse, f"could not parse JSON: {exc}")

        if not isinstance(reading, dict):
            return self._fail(
                FailureKind.parse,
                f"expected a JSON object, got {type(reading).__name__}",
            )
        return reading

    def _fail(
        self, kind: FailureKind, message: str, status_code: Optional[int] = None
    ) -> FetchFailure:
        self._logger.error(
            "fetch from %s failed: %s",
            self.url,
            message,
            extra={"url": self.url, "failure": kind.value, "status_code": status_code},
        )
        return FetchFailure(kind=kind, message=message)
