"""Clock helpers shared by the runner and plugins."""

from __future__ import annotations

import time


def get_timestamp() -> int:
    """Wall-clock time in epoch microseconds."""

    return time.time_ns() // 1000


def monotonic_seconds() -> float:
    return time.perf_counter()
