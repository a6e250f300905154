"""
CSV export of the per-probe ledger.
"""

import csv
import logging
from pathlib import Path
from typing import Iterator, List

from ..probe.state import LatencyResult, Received, Sent

CSV_HEADER = ["packet", "sent", "received", "latency"]

logger = logging.getLogger(__name__)


def _micros(seconds: float) -> str:
    """Whole microseconds, truncated.

    Snapping to nanoseconds first keeps float noise such as 1499.9999 from
    truncating a whole microsecond away.
    """
    nanos = round(seconds * 1_000_000_000)
    return str(nanos // 1000)


def ledger_rows(result: LatencyResult) -> Iterator[List[str]]:
    """One row per probe, times in microseconds; unmatched probes leave
    the received and latency columns empty."""
    for index, record in enumerate(result.ledger):
        if isinstance(record, Received):
            yield [str(index), _micros(record.sent_at),
                   _micros(record.received_at), _micros(record.latency)]
        elif isinstance(record, Sent):
            yield [str(index), _micros(record.at), "", ""]


def write_csv(result: LatencyResult, path: Path) -> int:
    """Write the ledger to ``path`` and return the number of rows."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    rows = 0
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for row in ledger_rows(result):
            writer.writerow(row)
            rows += 1

    logger.info(f"Wrote {rows} probe records to {path}")
    return rows
