"""
Shared measurement state for udplat.

The sender appends ``Sent`` records to the ledger and the receiver turns
them into ``Received`` records in place. The index of a record in the ledger
is the sequence number carried by its probe.
"""

import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union


@dataclass(frozen=True)
class Sent:
    """Probe dispatched, echo not yet observed."""
    at: float


@dataclass(frozen=True)
class Received:
    """Probe whose echo has been matched."""
    sent_at: float
    received_at: float
    latency: float


ProbeRecord = Union[Sent, Received]


class LatencyStatistics:
    """Running latency aggregates, updated in constant time per sample."""

    def __init__(self):
        self.received_count = 0
        self.outstanding_count = 0
        self.min_latency: Optional[float] = None
        self.max_latency: Optional[float] = None
        self.average_latency = 0.0

    def sent(self) -> None:
        """Account for a probe that has not been echoed yet."""
        self.outstanding_count += 1

    def record(self, latency: float) -> None:
        """Fold one matched latency into the aggregates."""
        n = self.received_count

        # Cumulative average: avg = avg * (n / (n + 1)) + latency / (n + 1)
        self.average_latency = self.average_latency * (n / (n + 1)) + latency / (n + 1)

        if n == 0:
            self.min_latency = latency
            self.max_latency = latency
        else:
            if latency < self.min_latency:
                self.min_latency = latency
            if latency > self.max_latency:
                self.max_latency = latency

        self.received_count += 1
        self.outstanding_count -= 1


def loss_percent(lost: int, sent: int) -> float:
    """Packet loss percentage; 0 when nothing has been sent."""
    if sent == 0:
        return 0.0
    return lost / sent * 100.0


@dataclass(frozen=True)
class LatencyResult:
    """Immutable snapshot of a measurement run."""
    ledger: Tuple[ProbeRecord, ...]
    received_count: int
    lost_count: int
    min_latency: Optional[float]
    average_latency: Optional[float]
    max_latency: Optional[float]
    anomalies: int = 0

    @property
    def sent_count(self) -> int:
        return len(self.ledger)

    @property
    def loss_percent(self) -> float:
        return loss_percent(self.lost_count, self.sent_count)

    def latencies(self) -> List[float]:
        """Matched latencies in send order."""
        return [record.latency for record in self.ledger if isinstance(record, Received)]


class LatencyState:
    """Ledger and statistics shared by the sender and receiver workers.

    Every method holds the lock only for its own read-modify-write, never
    across socket I/O.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.ledger: List[ProbeRecord] = []
        self.statistics = LatencyStatistics()
        self.should_stop = False
        self.anomalies = 0

    def record_sent(self, at: float) -> int:
        """Append a ``Sent`` record and return its sequence number."""
        with self._lock:
            sequence = len(self.ledger)
            self.ledger.append(Sent(at))
            self.statistics.sent()
            return sequence

    def record_received(self, sequence: int, received_at: float) -> Optional[Received]:
        """Match an echo against its ``Sent`` record.

        Returns the new ``Received`` record, or None when the sequence number
        is out of range or already matched. Such echoes leave the statistics
        untouched.
        """
        with self._lock:
            if sequence < 0 or sequence >= len(self.ledger):
                self.anomalies += 1
                return None

            record = self.ledger[sequence]
            if not isinstance(record, Sent):
                self.anomalies += 1
                return None

            received = Received(
                sent_at=record.at,
                received_at=received_at,
                latency=received_at - record.at,
            )
            self.ledger[sequence] = received
            self.statistics.record(received.latency)
            return received

    def record_anomaly(self) -> None:
        with self._lock:
            self.anomalies += 1

    def request_stop(self) -> None:
        """Set the stop flag; it is never cleared."""
        with self._lock:
            self.should_stop = True

    def stopping(self) -> bool:
        with self._lock:
            return self.should_stop

    def progress(self) -> Tuple[int, Optional[float], float, Optional[float]]:
        """Received count with min, average and max latency."""
        with self._lock:
            stats = self.statistics
            return (stats.received_count, stats.min_latency,
                    stats.average_latency, stats.max_latency)

    def snapshot(self) -> LatencyResult:
        """Freeze the current state; probes still ``Sent`` count as lost."""
        with self._lock:
            stats = self.statistics
            received = stats.received_count
            return LatencyResult(
                ledger=tuple(self.ledger),
                received_count=received,
                lost_count=len(self.ledger) - received,
                min_latency=stats.min_latency,
                average_latency=stats.average_latency if received else None,
                max_latency=stats.max_latency,
                anomalies=self.anomalies,
            )
