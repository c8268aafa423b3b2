from __future__ import annotations

import collections
import threading
from dataclasses import asdict, dataclass

import pandas as pd

DEFAULT_MAX_ROWS = 100_000

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_PROTOCOL_ERROR = "protocol_error"

COLUMNS = [
    "worker",
    "status",
    "started_ts",
    "duration_s",
    "slab_id",
    "error",
]


@dataclass
class UploadOutcome:
    worker: str
    status: str
    started_ts: float
    duration_s: float
    slab_id: str | None = None
    error: str | None = None


class OutcomeLog:
    """Bounded, thread-safe record of every upload attempt."""

    def __init__(self, max_rows: int = DEFAULT_MAX_ROWS) -> None:
        self._lock = threading.Lock()
        self._rows: collections.deque[UploadOutcome] = collections.deque(maxlen=max_rows)
        self._counts: collections.Counter[str] = collections.Counter()

    def add(self, outcome: UploadOutcome) -> None:
        with self._lock:
            self._rows.append(outcome)
            self._counts[outcome.status] += 1

    def summaries(self) -> dict[str, int]:
        # Counts cover every attempt, including rows already dropped from the window.
        with self._lock:
            return dict(self._counts)

    def build_dataframe(self) -> pd.DataFrame:
        with self._lock:
            rows = [asdict(outcome) for outcome in self._rows]

        if not rows:
            return pd.DataFrame(columns=COLUMNS)
        return pd.DataFrame(rows, columns=COLUMNS)


__all__ = [
    "STATUS_FAILED",
    "STATUS_OK",
    "STATUS_PROTOCOL_ERROR",
    "OutcomeLog",
    "UploadOutcome",
]
