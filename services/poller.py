"""Poll cycle orchestration: fetch, derive, log the timeseries, publish state."""

from __future__ import annotations

import logging
import signal
import threading
import time
from enum import Enum
from pathlib import Path
from types import FrameType
from typing import Callable, Dict, Optional, TextIO

from models.records import DerivedRecord, Reading, ReadingError, derive_record
from models.state import PublishedState
from services.scheduler import PeriodicScheduler
from services.sensor_client import FetchFailure, SensorClient
from storage.atomic import publish_text

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
EXIT_OK = 0
EXIT_FAILURE = 1

_logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    running = "running"
    terminated = "terminated"


def format_timeseries_line(record: DerivedRecord) -> str:
    stamp = time.strftime(TIMESTAMP_FORMAT, time.localtime(record.timestamp))
    columns = (
        stamp,
        record.temperature,
        record.humidity,
        record.pm25,
        record.pm25_raw_a,
        record.pm25_raw_b,
    )
    return "\t".join(str(column) for column in columns) + "\n"


class Poller:
    """Runs one fetch-derive-log-publish cycle per scheduler tick."""

    def __init__(
        self,
        client: SensorClient,
        data_stream: TextIO,
        state_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.data_stream = data_stream
        self.state_path = state_path
        self.state = LoopState.running
        self.exit_status: Optional[int] = None
        self._logger = logger or _logger
        self._clock = clock

    def poll_once(self) -> Optional[DerivedRecord]:
        """Execute one cycle; return the derived record or ``None`` when skipped."""
        timestamp = int(self._clock())

        result = self.client.fetch()
        if isinstance(result, FetchFailure):
            self._logger.info(
                "no reading this cycle", extra={"failure": result.kind.value}
            )
            return None

        try:
            record = derive_record(result, timestamp)
        except ReadingError as exc:
            self._logger.error(
                "unusable reading from %s: %s",
                self.client.url,
                exc,
                extra={"url": self.client.url},
            )
            return None

        self.data_stream.write(format_timeseries_line(record))
        self.data_stream.flush()

        if self.state_path is not None:
            self._publish(record, result)
        return record

    def run(self, scheduler: PeriodicScheduler) -> int:
        """Poll until a termination signal (status 0) or an uncaught failure (status 1)."""
        self.state = LoopState.running
        previous_handlers = self._install_signal_handlers(scheduler)
        try:
            cycles = scheduler.run(self.poll_once)
            self._logger.info("stopped after %d cycles", cycles, extra={"cycle": cycles})
            status = EXIT_OK
        except KeyboardInterrupt:
            self._logger.info("interrupted")
            status = EXIT_OK
        except Exception as exc:
            self._logger.exception("%s: %s", type(exc).__name__, exc)
            status = EXIT_FAILURE
        finally:
            self._restore_signal_handlers(previous_handlers)

        self.state = LoopState.terminated
        self.exit_status = status
        self._logger.info("exiting with status %d", status, extra={"exit_status": status})
        return status

    def _publish(self, record: DerivedRecord, reading: Reading) -> None:
        assert self.state_path is not None
        state = PublishedState.from_record(record, reading)
        publish_text(self.state_path, state.to_json())

    def _install_signal_handlers(self, scheduler: PeriodicScheduler) -> Dict[int, object]:
        if threading.current_thread() is not threading.main_thread():
            return {}

        def handle(signum: int, _frame: FrameType | None) -> None:
            self._logger.info("received %s, stopping", signal.Signals(signum).name)
            scheduler.stop()

        previous: Dict[int, object] = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.getsignal(signum)
            signal.signal(signum, handle)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: Dict[int, object]) -> None:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)  # type: ignore[arg-type]
