"""
Latency distribution summary for a finished run.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional

import numpy as np

from .state import LatencyResult


@dataclass(frozen=True)
class LatencySummary:
    """Distribution of matched latencies, in seconds."""
    sent: int
    received: int
    lost: int
    loss_percent: float
    min: Optional[float] = None
    mean: Optional[float] = None
    max: Optional[float] = None
    stddev: Optional[float] = None
    p50: Optional[float] = None
    p90: Optional[float] = None
    p99: Optional[float] = None
    jitter: Optional[float] = None

    def as_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


def summarize(result: LatencyResult) -> LatencySummary:
    """Compute percentiles, deviation and jitter of a run's latencies.

    Jitter is the mean absolute difference between consecutive matched
    latencies in send order.
    """
    base = dict(
        sent=result.sent_count,
        received=result.received_count,
        lost=result.lost_count,
        loss_percent=result.loss_percent,
    )

    latencies = np.asarray(result.latencies(), dtype=float)
    if latencies.size == 0:
        return LatencySummary(**base)

    p50, p90, p99 = np.percentile(latencies, [50, 90, 99])
    jitter = float(np.mean(np.abs(np.diff(latencies)))) if latencies.size > 1 else 0.0

    return LatencySummary(
        min=float(latencies.min()),
        mean=float(latencies.mean()),
        max=float(latencies.max()),
        stddev=float(latencies.std()),
        p50=float(p50),
        p90=float(p90),
        p99=float(p99),
        jitter=jitter,
        **base,
    )
