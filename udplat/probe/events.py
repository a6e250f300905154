"""
Progress notifications emitted by the latency probe.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class TotalTarget:
    """Number of probes the run will send."""
    count: int


@dataclass(frozen=True)
class SentProgress:
    """Probes sent so far."""
    count: int


@dataclass(frozen=True)
class ReceivedProgress:
    """Echoes matched so far with the running latency statistics (seconds)."""
    count: int
    min_latency: float
    average_latency: float
    max_latency: float


ProbeEvent = Union[TotalTarget, SentProgress, ReceivedProgress]


class NotificationChannel:
    """Ordered one-way event stream from the probe to an observer.

    Publishing never blocks: with a bounded ``maxsize`` events that do not
    fit are dropped and counted.
    """

    def __init__(self, maxsize: int = 0):
        self.logger = logging.getLogger(__name__)
        self._queue: "queue.Queue[ProbeEvent]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self._dropped_lock = threading.Lock()

    def publish(self, event: ProbeEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._dropped_lock:
                self.dropped += 1
            self.logger.debug(f"Notification channel full, dropped {event}")

    def get(self, timeout: Optional[float] = None) -> Optional[ProbeEvent]:
        """Next event, or None if none arrives within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> Iterator[ProbeEvent]:
        """Yield every event currently queued without waiting."""
        while True:
            try:
                yield self._queue.get_nowait()
            except queue.Empty:
                return
