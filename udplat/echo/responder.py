"""
UDP echo responder for udplat.
Reflects every datagram back to its sender without interpreting it.
"""

import logging
import select
import socket
import threading
from collections import Counter
from typing import Dict, Optional, Tuple

from ..core.config import EchoConfig, validate_echo
from ..core.errors import ConfigurationError


class EchoResponder:
    """Echoes datagrams back to their source and counts them per source."""

    def __init__(self, config: EchoConfig, poll_interval: float = 0.5):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self._running = False
        self._thread = None
        self._sock: Optional[socket.socket] = None
        self._poll_interval = poll_interval

        # Diagnostics only; no correlation with probe sequence numbers
        self._packets: Counter = Counter()
        self._lock = threading.Lock()

    @property
    def address(self) -> Optional[Tuple]:
        """Bound address, available once started."""
        return self._sock.getsockname() if self._sock else None

    def start(self) -> None:
        """Bind the socket and start echoing."""
        if self._running:
            self.logger.warning("Echo responder already running")
            return

        validate_echo(self.config)
        family = socket.AF_INET6 if ':' in self.config.bind_address else socket.AF_INET
        self._sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            self._sock.bind((self.config.bind_address, self.config.port))
        except OSError as e:
            self._sock.close()
            self._sock = None
            raise ConfigurationError(
                f"Failed to bind echo responder to {self.config.bind_address}:{self.config.port}: {e}"
            )

        self._running = True
        self._thread = threading.Thread(target=self._run, name="udplat-echo", daemon=True)
        self._thread.start()

        self.logger.info(f"Echo responder listening on {self.address}")

    def stop(self) -> None:
        """Stop the responder and release the socket."""
        self._running = False

        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

        if self._sock:
            self._sock.close()
            self._sock = None

        self.logger.info("Echo responder stopped")

    def _run(self) -> None:
        """Main echo loop."""
        while self._running:
            try:
                readable, _, _ = select.select([self._sock], [], [], self._poll_interval)
                if not readable:
                    continue

                data, src = self._sock.recvfrom(self.config.buffer_size)
                with self._lock:
                    self._packets[src] += 1
                self._sock.sendto(data, src)

            except OSError as e:
                if not self._running:
                    break
                self.logger.error(f"Echo responder socket error: {e}")
                continue

            self.logger.debug(f"Echoed {len(data)} bytes to {src}")

    def get_status(self) -> dict:
        """Get current status of the echo responder."""
        with self._lock:
            total = sum(self._packets.values())
            sources = len(self._packets)
        return {
            'running': self._running,
            'address': self.address,
            'packets_echoed': total,
            'sources': sources,
        }

    def packet_counts(self) -> Dict[Tuple, int]:
        """Datagrams echoed per source address."""
        with self._lock:
            return dict(self._packets)
