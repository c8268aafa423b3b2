from __future__ import annotations

from dataclasses import dataclass

from .client import Redundancy

SECTOR_SIZE = 1 << 22

DEFAULT_THREADS = 1
DEFAULT_DATA_SHARDS = 2
DEFAULT_PARITY_SHARDS = 4
DEFAULT_BACKOFF_S = 5 * 60.0
DEFAULT_REPORT_INTERVAL_S = 2 * 60.0
DEFAULT_HISTORY_SIZE = 1_000


@dataclass(frozen=True)
class UploadConfig:
    """Settings shared by the upload workers and the throughput reporter."""

    threads: int = DEFAULT_THREADS
    data_shards: int = DEFAULT_DATA_SHARDS
    parity_shards: int = DEFAULT_PARITY_SHARDS
    backoff_s: float = DEFAULT_BACKOFF_S
    report_interval_s: float = DEFAULT_REPORT_INTERVAL_S
    history_size: int = DEFAULT_HISTORY_SIZE
    sector_size: int = SECTOR_SIZE

    @property
    def redundancy(self) -> Redundancy:
        return Redundancy(data_shards=self.data_shards, parity_shards=self.parity_shards)

    @property
    def unit_size(self) -> int:
        return self.data_shards * self.sector_size

    @property
    def redundant_unit_size(self) -> int:
        return (self.data_shards + self.parity_shards) * self.sector_size

    @property
    def redundancy_factor(self) -> float:
        return (self.data_shards + self.parity_shards) / self.data_shards

    def validate(self) -> None:
        for name in ("threads", "data_shards", "parity_shards", "history_size", "sector_size"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value!r}")
        for name in ("backoff_s", "report_interval_s"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0 seconds, got {value!r}")


__all__ = [
    "SECTOR_SIZE",
    "UploadConfig",
]
