"""
Console progress view for udplat.
Consumes probe notifications and renders a single status line.
"""

import logging
import threading
import time
from typing import Optional

import click

from ..probe.events import (NotificationChannel, ProbeEvent, ReceivedProgress,
                            SentProgress, TotalTarget)
from ..probe.state import loss_percent


def format_latency(seconds: Optional[float]) -> str:
    """Human readable latency."""
    if seconds is None:
        return "-"
    if seconds < 1e-3:
        return f"{seconds * 1e6:.0f}us"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


class ConsoleView:
    """Renders latency progress from a notification channel."""

    def __init__(self, channel: NotificationChannel, refresh_interval: float = 0.2):
        self.channel = channel
        self.logger = logging.getLogger(__name__)
        self.refresh_interval = refresh_interval

        self._running = False
        self._thread = None

        self.packets_total: Optional[int] = None
        self.packets_sent = 0
        self.packets_received = 0
        self.min_latency: Optional[float] = None
        self.avg_latency: Optional[float] = None
        self.max_latency: Optional[float] = None

    def start(self) -> None:
        """Start rendering in a background thread."""
        if self._running:
            self.logger.warning("Console view already running")
            return

        self._running = True
        self._thread = threading.Thread(target=self._run, name="udplat-console", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Apply any remaining events and finish the status line."""
        self._running = False

        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

        for event in self.channel.drain():
            self.update(event)
        click.echo("\r" + self.render())

    def update(self, event: ProbeEvent) -> None:
        """Apply one notification to the view state."""
        if isinstance(event, TotalTarget):
            self.packets_total = event.count
        elif isinstance(event, SentProgress):
            self.packets_sent = event.count
        elif isinstance(event, ReceivedProgress):
            self.packets_received = event.count
            self.min_latency = event.min_latency
            self.avg_latency = event.average_latency
            self.max_latency = event.max_latency

    @property
    def packet_loss(self) -> float:
        return loss_percent(self.packets_sent - self.packets_received, self.packets_sent)

    def render(self) -> str:
        if self.packets_total:
            sent = f"sent {self.packets_sent}/{self.packets_total}"
        else:
            sent = f"sent {self.packets_sent}"

        return (
            f"{sent}  received {self.packets_received}  "
            f"loss {self.packet_loss:.2f}%  "
            f"min {format_latency(self.min_latency)}  "
            f"avg {format_latency(self.avg_latency)}  "
            f"max {format_latency(self.max_latency)}"
        )

    def _run(self) -> None:
        """Main render loop."""
        last_render = 0.0
        while self._running:
            event = self.channel.get(timeout=self.refresh_interval)
            if event is not None:
                self.update(event)

            now = time.monotonic()
            if now - last_render >= self.refresh_interval:
                click.echo("\r" + self.render(), nl=False)
                last_render = now
