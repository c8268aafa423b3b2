"""
Continuous load generator for erasure-coded storage backends.

Upload threads push fixed-size slabs of random data through a storage client
while a reporter periodically logs the sustained upload speed.
"""

from .config import UploadConfig
from .history import ThroughputHistory
from .rate import format_bps
from .supervisor import UploadSupervisor

__all__ = ["ThroughputHistory", "UploadConfig", "UploadSupervisor", "format_bps"]
