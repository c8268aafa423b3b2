from __future__ import annotations

import collections
import threading
from typing import Sequence

from .config import DEFAULT_HISTORY_SIZE


class ThroughputHistory:
    """Sliding window of the most recent successful upload durations."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        if capacity <= 0:
            raise ValueError("history capacity must be > 0")
        self._capacity = capacity
        self._samples: collections.deque[float] = collections.deque()
        self._recorded = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def recorded(self) -> int:
        """Total number of samples ever recorded, including evicted ones."""
        with self._lock:
            return self._recorded

    def record(self, duration_s: float) -> None:
        with self._lock:
            self._samples.append(duration_s)
            self._recorded += 1
            while len(self._samples) > self._capacity:
                self._samples.popleft()

    def snapshot(self) -> list[float]:
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


def mean_duration(samples: Sequence[float], default: float = 1.0) -> float:
    # An empty window falls back to ``default`` so rate formatting stays defined.
    if not samples:
        return default
    return sum(samples) / len(samples)


__all__ = ["ThroughputHistory", "mean_duration"]
