"""
InfluxDB export of latency samples.
"""

import logging
from typing import List

from influxdb_client import InfluxDBClient, Point
from influxdb_client.client.write_api import SYNCHRONOUS

from ..core.config import InfluxDBConfig
from ..probe.state import LatencyResult, Received
from ..probe.summary import summarize


class InfluxExporter:
    """Writes matched probes and the run summary to InfluxDB."""

    def __init__(self, config: InfluxDBConfig, target: str):
        self.config = config
        self.target = target
        self.logger = logging.getLogger(__name__)

        self._client = InfluxDBClient(
            url=config.url,
            token=config.token,
            org=config.organization
        )
        self._write_api = self._client.write_api(write_options=SYNCHRONOUS)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> 'InfluxExporter':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def build_points(self, result: LatencyResult) -> List[Point]:
        """One point per matched probe plus a summary point."""
        points = []
        for index, record in enumerate(result.ledger):
            if not isinstance(record, Received):
                continue
            points.append(
                Point(self.config.measurement)
                .tag("target", self.target)
                .field("sequence", index)
                .field("latency_ms", record.latency * 1000)
            )

        summary = summarize(result)
        point = Point(f"{self.config.measurement}_summary") \
            .tag("target", self.target) \
            .field("sent", summary.sent) \
            .field("received", summary.received) \
            .field("loss_percent", summary.loss_percent)
        for name in ("min", "mean", "max", "p50", "p90", "p99", "jitter"):
            value = getattr(summary, name)
            if value is not None:
                point = point.field(f"{name}_ms", value * 1000)
        points.append(point)

        return points

    def export(self, result: LatencyResult) -> int:
        """Write the run to InfluxDB and return the number of points."""
        points = self.build_points(result)
        self._write_api.write(
            bucket=self.config.bucket,
            org=self.config.organization,
            record=points
        )
        self.logger.info(f"Exported {len(points)} points to InfluxDB bucket {self.config.bucket}")
        return len(points)
