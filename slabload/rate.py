from __future__ import annotations

import math

SCALE_LETTERS = "KMGTPE"
SCALE_FACTOR = 1000


def format_bps(num_bytes: int, duration_s: float) -> str:
    """Render ``num_bytes`` moved in ``duration_s`` as an SI-scaled bit rate.

    The duration is truncated to whole seconds first; anything that does not
    reach one full second yields ``"0.00 bps"``.
    """
    seconds = math.trunc(duration_s)
    if seconds <= 0:
        return "0.00 bps"

    speed = float(num_bytes * 8) / seconds
    if speed < SCALE_FACTOR:
        return f"{speed:.2f} bps"

    index = -1
    while speed >= SCALE_FACTOR and index < len(SCALE_LETTERS) - 1:
        speed /= SCALE_FACTOR
        index += 1
    return f"{speed:.2f} {SCALE_LETTERS[index]}bps"


__all__ = ["format_bps"]
