from __future__ import annotations

import logging
import threading
import time

import pytest

from slabload.client import Redundancy, Slab, UploadError, UploadResult
from slabload.config import UploadConfig


class ScriptedClient:
    """Fake storage client driven by a per-call behaviour function."""

    def __init__(self, behaviour) -> None:
        self._behaviour = behaviour
        self._lock = threading.Lock()
        self.calls: list[float] = []
        self.sizes: list[int] = []
        self.redundancies: list[Redundancy] = []
        self.closed = False

    def submit(self, stream, redundancy):
        data = stream.read()
        with self._lock:
            self.calls.append(time.monotonic())
            self.sizes.append(len(data))
            self.redundancies.append(redundancy)
            call_number = len(self.calls)
        return self._behaviour(call_number)

    def close(self) -> None:
        self.closed = True


def one_slab(call_number: int) -> UploadResult:
    return UploadResult(object_id=f"obj-{call_number}", slabs=[Slab(id=f"slab-{call_number}", length=32)])


def two_slabs(call_number: int) -> UploadResult:
    return UploadResult(
        object_id=f"obj-{call_number}",
        slabs=[Slab(id="a", length=16), Slab(id="b", length=16)],
    )


def always_fail(call_number: int) -> UploadResult:
    raise UploadError(f"host unreachable (attempt {call_number})")


@pytest.fixture
def small_config() -> UploadConfig:
    return UploadConfig(
        threads=2,
        data_shards=2,
        parity_shards=4,
        backoff_s=0.2,
        report_interval_s=0.05,
        history_size=10,
        sector_size=16,
    )


@pytest.fixture
def scripted_client():
    return ScriptedClient


@pytest.fixture(autouse=True)
def reset_slabload_logger():
    yield
    logger = logging.getLogger("slabload")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
