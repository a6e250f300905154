"""
UDP round-trip latency probe.

A sender thread emits sequenced probes at a fixed interval while a receiver
thread matches echoes against the ledger. When the sender finishes it sets
the stop flag; the receiver keeps draining in-flight echoes until no datagram
arrives within the grace period.
"""

import logging
import select
import socket
import threading
from typing import Callable, List, Optional, Tuple

from ..core.clock import TimingClock
from ..core.config import ProbeConfig, validate_probe
from ..core.errors import ConfigurationError, ProbeRunError
from .events import NotificationChannel, ReceivedProgress, SentProgress, TotalTarget
from .packet import build_packet, decode_sequence
from .state import LatencyResult, LatencyState

# Large enough for any UDP payload
RECEIVE_BUFFER_SIZE = 65535

# Receiver poll period while the sender is still running
POLL_INTERVAL = 0.05


class LatencyProbe:
    """Measures per-packet UDP round-trip latency against an echo responder."""

    def __init__(self, config: ProbeConfig, notify: Optional[NotificationChannel] = None,
                 poll_interval: float = POLL_INTERVAL):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.notify = notify if notify is not None else NotificationChannel()

        self.state = LatencyState()
        self.clock = TimingClock()

        self._cancel = threading.Event()
        self._poll_interval = min(poll_interval, config.grace_period)
        self._sock: Optional[socket.socket] = None
        self._destination: Optional[Tuple] = None
        self._errors: List[Exception] = []
        self._errors_lock = threading.Lock()

    def cancel(self) -> None:
        """Ask the sender to stop; calling it again has no effect."""
        if not self._cancel.is_set():
            self.logger.info("Cancellation requested")
            self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def local_address(self) -> Optional[Tuple]:
        """Address the probe socket is bound to while a run is active."""
        return self._sock.getsockname() if self._sock else None

    def run(self) -> LatencyResult:
        """Run one measurement and return its final statistics.

        Raises ConfigurationError before any probe is sent when the
        configuration is unusable, and ProbeRunError carrying the partial
        result when a socket operation fails mid-run.
        """
        validate_probe(self.config)

        family, self._destination = self._resolve_destination()
        self._sock = self._bind_socket(family)

        try:
            if self.config.count > 0:
                self.notify.publish(TotalTarget(self.config.count))

            self.logger.info(
                f"Probing {self.config.address}:{self.config.port} "
                f"(count={self.config.count or 'unbounded'}, interval={self.config.interval}s, "
                f"size={self.config.packet_size}B)"
            )

            self.clock.start()
            workers = [
                threading.Thread(target=self._worker, args=(self._send_packets,),
                                 name="udplat-sender", daemon=True),
                threading.Thread(target=self._worker, args=(self._receive_packets,),
                                 name="udplat-receiver", daemon=True),
            ]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

        finally:
            self._close_socket()

        result = self.state.snapshot()
        if self._errors:
            error = self._errors[0]
            raise ProbeRunError(f"Latency run aborted: {error}", result) from error

        self.logger.info(
            f"Run complete: {result.received_count}/{result.sent_count} echoes, "
            f"{result.loss_percent:.2f}% loss"
        )
        return result

    def _resolve_destination(self) -> Tuple[int, Tuple]:
        """Resolve the echo responder address to a socket family and address."""
        try:
            infos = socket.getaddrinfo(self.config.address, self.config.port,
                                       type=socket.SOCK_DGRAM)
        except socket.gaierror as e:
            raise ConfigurationError(f"Invalid destination address {self.config.address}: {e}")

        family, _, _, _, sockaddr = infos[0]
        return family, sockaddr

    def _bind_socket(self, family: int) -> socket.socket:
        """Create the probe socket bound to the configured client port."""
        bind_ip = '::' if family == socket.AF_INET6 else '0.0.0.0'
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((bind_ip, self.config.client_port))
        except OSError as e:
            sock.close()
            raise ConfigurationError(f"Failed to bind {bind_ip}:{self.config.client_port}: {e}")

        self.logger.debug(f"Probe socket bound to {sock.getsockname()}")
        return sock

    def _close_socket(self) -> None:
        if self._sock:
            self._sock.close()
            self._sock = None

    def _worker(self, loop: Callable[[], None]) -> None:
        """Run a loop, turning failures into a run abort."""
        name = threading.current_thread().name
        try:
            loop()
        except Exception as e:
            if isinstance(e, OSError):
                self.logger.error(f"Socket error in {name}: {e}")
            else:
                self.logger.exception(f"Unexpected error in {name}: {e}")

            with self._errors_lock:
                self._errors.append(e)
            self.state.request_stop()
            self._cancel.set()

    def _send_packets(self) -> None:
        """Sender loop: one probe per tick until the count or cancellation."""
        count = self.config.count
        interval = self.config.interval
        sent = 0
        next_tick = self.clock.elapsed()

        try:
            while True:
                # Ticks are not caught up: the next one is due an interval
                # after this one actually fired
                delay = max(next_tick - self.clock.elapsed(), 0.0)
                if self._cancel.wait(delay):
                    self.logger.debug("Sender interrupted while waiting for tick")
                    break
                next_tick = self.clock.elapsed() + interval

                # The Sent record must exist before the probe can be echoed
                sequence = self.state.record_sent(self.clock.elapsed())
                packet = build_packet(sequence, self.config.packet_size)
                self._sock.sendto(packet, self._destination)

                sent = sequence + 1
                self.notify.publish(SentProgress(sent))
                self.logger.debug(f"Sent probe seq={sequence}")

                if self._cancel.is_set() or (count > 0 and sent >= count):
                    break
        finally:
            self.state.request_stop()

        self.logger.info(
            f"Sender finished after {sent} probes, "
            f"draining echoes for {self.config.grace_period}s"
        )

    def _receive_packets(self) -> None:
        """Receiver loop: match echoes until the grace window runs out."""
        while True:
            draining = self.state.stopping()
            timeout = self.config.grace_period if draining else self._poll_interval

            readable, _, _ = select.select([self._sock], [], [], timeout)
            if not readable:
                if draining:
                    self.logger.debug("Grace window expired, receiver stopping")
                    break
                continue

            data, addr = self._sock.recvfrom(RECEIVE_BUFFER_SIZE)
            received_at = self.clock.elapsed()
            self._handle_echo(data, addr, received_at)

    def _handle_echo(self, data: bytes, addr: Tuple, received_at: float) -> None:
        """Match one echo and publish the updated statistics."""
        try:
            sequence = decode_sequence(data)
        except ValueError as e:
            self.state.record_anomaly()
            self.logger.warning(f"Discarding malformed echo from {addr}: {e}")
            return

        received = self.state.record_received(sequence, received_at)
        if received is None:
            self.logger.warning(f"Discarding duplicate or unknown echo seq={sequence} from {addr}")
            return

        self.logger.debug(f"Echo seq={sequence} latency={received.latency * 1000:.3f}ms")

        count, min_latency, average_latency, max_latency = self.state.progress()
        self.notify.publish(ReceivedProgress(count, min_latency, average_latency, max_latency))
