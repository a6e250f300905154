"""
Shared fixtures for the udplat tests.
"""

import socket
import threading

import pytest

from udplat.core.config import EchoConfig, ProbeConfig
from udplat.echo.responder import EchoResponder
from udplat.probe.state import LatencyState


@pytest.fixture
def echo_responder():
    """Echo responder on an ephemeral loopback port."""
    responder = EchoResponder(EchoConfig(bind_address="127.0.0.1", port=0), poll_interval=0.05)
    responder.start()
    yield responder
    responder.stop()


@pytest.fixture
def silent_peer():
    """Bound socket that accepts probes and never answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock
    sock.close()


@pytest.fixture
def probe_config():
    def make(port, **overrides):
        values = dict(address="127.0.0.1", port=port, packet_size=64,
                      interval=0.02, count=5, grace_period=0.2)
        values.update(overrides)
        return ProbeConfig(**values)
    return make


def build_state(samples):
    """State with one probe per sample; ``None`` samples stay unmatched."""
    state = LatencyState()
    for index, latency in enumerate(samples):
        sent_at = index * 0.1
        state.record_sent(sent_at)
        if latency is not None:
            state.record_received(index, sent_at + latency)
    return state


class DelayedEchoPeer:
    """Echoes every datagram back after a fixed delay."""

    def __init__(self, delay):
        self.delay = delay
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self._running = True
        self._timers = []
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    @property
    def port(self):
        return self.sock.getsockname()[1]

    def _reply(self, data, addr):
        try:
            self.sock.sendto(data, addr)
        except OSError:
            pass

    def _run(self):
        while self._running:
            try:
                data, addr = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError:
                break
            timer = threading.Timer(self.delay, self._reply, args=(data, addr))
            timer.daemon = True
            self._timers.append(timer)
            timer.start()

    def close(self):
        self._running = False
        self._thread.join(timeout=2)
        for timer in self._timers:
            timer.cancel()
        self.sock.close()


@pytest.fixture
def delayed_peer():
    peers = []

    def make(delay):
        peer = DelayedEchoPeer(delay)
        peers.append(peer)
        return peer

    yield make
    for peer in peers:
        peer.close()
