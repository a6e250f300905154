"""
Monotonic timing reference for udplat.
"""

import time
from typing import Optional


class TimingClock:
    """Monotonic epoch captured once per run; timestamps are seconds since it."""

    def __init__(self):
        self._epoch: Optional[float] = None

    def start(self) -> None:
        """Capture the reference epoch."""
        self._epoch = time.perf_counter()

    def elapsed(self) -> float:
        """Seconds elapsed since the epoch."""
        if self._epoch is None:
            raise RuntimeError("Timing clock has not been started")
        return time.perf_counter() - self._epoch
