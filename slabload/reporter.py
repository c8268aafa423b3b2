from __future__ import annotations

import logging
import threading

from .history import ThroughputHistory, mean_duration
from .rate import format_bps

LOGGER = logging.getLogger("slabload.reporter")

# Denominator used before any upload has completed.
EMPTY_HISTORY_DURATION_S = 1.0


class ThroughputReporter:
    """Periodically logs the average upload speed over the recent window."""

    def __init__(
        self,
        history: ThroughputHistory,
        unit_bytes: int,
        interval_s: float,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self._history = history
        self._unit_bytes = unit_bytes
        self._interval_s = interval_s
        self._logger = logger

    def report_once(self) -> str:
        samples = self._history.snapshot()
        average = mean_duration(samples, default=EMPTY_HISTORY_DURATION_S)
        speed = format_bps(self._unit_bytes, average)
        self._logger.info(
            "average upload speed: %s (samples=%d, mean=%.3fs)",
            speed,
            len(samples),
            average,
        )
        return speed

    def run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_s):
            self.report_once()


__all__ = ["ThroughputReporter"]
