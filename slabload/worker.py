from __future__ import annotations

import enum
import io
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .client import UploadClient, UploadResult
from .config import UploadConfig
from .history import ThroughputHistory
from .outcomes import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_PROTOCOL_ERROR,
    OutcomeLog,
    UploadOutcome,
)
from .rate import format_bps

EXPECTED_SLABS = 1


class ProtocolViolationError(Exception):
    """Raised when a successful upload reports an unexpected slab layout."""


class WorkerState(enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class WorkerResult:
    name: str
    uploads: int
    failures: int
    failed: bool = False
    reason: str | None = None


def generate_unit(rng: random.Random, size: int) -> bytes:
    # Only needs to defeat dedup and compression on the backend.
    return rng.randbytes(size)


class UploadWorker:
    """One upload loop: generate a unit, submit it, record or back off."""

    def __init__(
        self,
        name: str,
        client: UploadClient,
        config: UploadConfig,
        history: ThroughputHistory,
        outcomes: OutcomeLog | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.state = WorkerState.STOPPED
        self.uploads = 0
        self.failures = 0
        self._client = client
        self._config = config
        self._history = history
        self._outcomes = outcomes
        self._rng = rng or random.Random()
        self._clock = clock
        self._logger = logging.getLogger(f"slabload.worker.{name}")

    def run(self, stop_event: threading.Event) -> WorkerResult:
        self.state = WorkerState.RUNNING
        self._logger.debug("starting upload thread")
        try:
            return self._loop(stop_event)
        finally:
            self.state = WorkerState.STOPPED

    def _loop(self, stop_event: threading.Event) -> WorkerResult:
        while not stop_event.is_set():
            data = generate_unit(self._rng, self._config.unit_size)
            started_ts = time.time()
            start = self._clock()
            try:
                result = self._client.submit(io.BytesIO(data), self._config.redundancy)
            except Exception as exc:  # noqa: BLE001
                elapsed = self._clock() - start
                self.failures += 1
                self._logger.error(
                    "failed to upload slab, backing off for %.0fs: %s (duration=%.3fs)",
                    self._config.backoff_s,
                    exc,
                    elapsed,
                )
                self._add_outcome(STATUS_FAILED, started_ts, elapsed, error=repr(exc))
                if stop_event.wait(self._config.backoff_s):
                    break
                continue

            elapsed = self._clock() - start
            try:
                slab_id = self._check_result(result)
            except ProtocolViolationError as exc:
                self._logger.error("%s", exc)
                self._add_outcome(STATUS_PROTOCOL_ERROR, started_ts, elapsed, error=str(exc))
                return self._result(failed=True, reason=str(exc))

            self._history.record(elapsed)
            self.uploads += 1
            self._add_outcome(STATUS_OK, started_ts, elapsed, slab_id=slab_id)
            self._logger.info(
                "upload completed slab=%s duration=%.3fs speed=%s",
                slab_id,
                elapsed,
                format_bps(self._config.redundant_unit_size, elapsed),
            )

        self._logger.debug("upload thread stopped")
        return self._result()

    def _check_result(self, result: UploadResult) -> str:
        if result.slab_count != EXPECTED_SLABS:
            raise ProtocolViolationError(
                f"expected {EXPECTED_SLABS} slab, got {result.slab_count}"
            )
        return result.slabs[0].id

    def _add_outcome(
        self,
        status: str,
        started_ts: float,
        duration_s: float,
        slab_id: str | None = None,
        error: str | None = None,
    ) -> None:
        if self._outcomes is None:
            return
        self._outcomes.add(
            UploadOutcome(
                worker=self.name,
                status=status,
                started_ts=started_ts,
                duration_s=duration_s,
                slab_id=slab_id,
                error=error,
            )
        )

    def _result(self, failed: bool = False, reason: str | None = None) -> WorkerResult:
        return WorkerResult(
            name=self.name,
            uploads=self.uploads,
            failures=self.failures,
            failed=failed,
            reason=reason,
        )


__all__ = [
    "ProtocolViolationError",
    "UploadWorker",
    "WorkerResult",
    "WorkerState",
    "generate_unit",
]
