"""Sliding window of upload durations shared between workers and the reporter."""

import threading

import pytest

from slabload.history import ThroughputHistory, mean_duration


def test_snapshot_is_a_copy():
    history = ThroughputHistory(capacity=5)
    history.record(1.0)
    snapshot = history.snapshot()
    snapshot.append(99.0)
    assert history.snapshot() == [1.0]


def test_window_keeps_most_recent_samples_in_order():
    history = ThroughputHistory(capacity=3)
    for value in range(1, 8):
        history.record(float(value))
        assert len(history.snapshot()) <= 3

    assert history.snapshot() == [5.0, 6.0, 7.0]
    assert history.recorded == 7


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ThroughputHistory(capacity=0)


def test_concurrent_records_are_not_lost():
    history = ThroughputHistory(capacity=100)
    threads_n, per_thread = 8, 500
    start = threading.Barrier(threads_n)

    def writer(offset: int) -> None:
        start.wait()
        for i in range(per_thread):
            history.record(offset + i / 1000)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(threads_n)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert history.recorded == threads_n * per_thread
    assert len(history) == 100


def test_mean_duration():
    assert mean_duration([2.0, 4.0]) == 3.0
    assert mean_duration([]) == 1.0
    assert mean_duration([], default=7.5) == 7.5
