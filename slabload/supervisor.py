from __future__ import annotations

import logging
import signal
import threading
from typing import Any

from .client import UploadClient
from .config import UploadConfig
from .history import ThroughputHistory
from .outcomes import OutcomeLog
from .reporter import ThroughputReporter
from .worker import UploadWorker, WorkerResult

LOGGER = logging.getLogger("slabload.supervisor")

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(stop_event: threading.Event) -> dict[int, Any]:
    """Route SIGINT/SIGTERM to ``stop_event`` and return the handlers they replaced."""

    def _handler(signum: int, frame: Any) -> None:
        LOGGER.info("received %s, stopping upload threads", signal.Signals(signum).name)
        stop_event.set()

    previous: dict[int, Any] = {}
    for signum in STOP_SIGNALS:
        previous[signum] = signal.signal(signum, _handler)
    return previous


def restore_signal_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


class UploadSupervisor:
    """Runs the upload workers and the reporter until every worker has stopped."""

    def __init__(
        self,
        client: UploadClient,
        config: UploadConfig,
        history: ThroughputHistory | None = None,
        outcomes: OutcomeLog | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self.history = history if history is not None else ThroughputHistory(config.history_size)
        self.outcomes = outcomes
        self.workers: list[UploadWorker] = []

    def run(self, stop_event: threading.Event) -> list[WorkerResult]:
        results: dict[str, WorkerResult] = {}
        results_lock = threading.Lock()
        threads: list[threading.Thread] = []
        self.workers = []

        for n in range(1, self._config.threads + 1):
            worker = UploadWorker(
                name=f"upload-thread-{n}",
                client=self._client,
                config=self._config,
                history=self.history,
                outcomes=self.outcomes,
            )
            self.workers.append(worker)

            def worker_runner(worker: UploadWorker = worker) -> None:
                result = None
                try:
                    result = worker.run(stop_event)
                except BaseException as exc:
                    LOGGER.exception("upload thread %s crashed", worker.name)
                    result = _failed_result(worker, repr(exc))
                    if not isinstance(exc, Exception):
                        raise
                finally:
                    with results_lock:
                        results[worker.name] = result or _failed_result(worker, "no result")

            thread = threading.Thread(target=worker_runner, name=worker.name)
            thread.start()
            threads.append(thread)

        reporter = ThroughputReporter(
            history=self.history,
            unit_bytes=self._config.redundant_unit_size,
            interval_s=self._config.report_interval_s,
        )
        reporter_thread = threading.Thread(
            target=reporter.run,
            args=(stop_event,),
            name="throughput-reporter",
            daemon=True,
        )
        reporter_thread.start()

        try:
            for thread in threads:
                thread.join()
        finally:
            stop_event.set()

        LOGGER.info("all upload threads finished")
        with results_lock:
            return [
                results.get(worker.name) or _failed_result(worker, "no result")
                for worker in self.workers
            ]


def _failed_result(worker: UploadWorker, reason: str) -> WorkerResult:
    return WorkerResult(
        name=worker.name,
        uploads=worker.uploads,
        failures=worker.failures,
        failed=True,
        reason=reason,
    )


__all__ = ["UploadSupervisor", "install_signal_handlers", "restore_signal_handlers"]
