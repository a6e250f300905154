import os
import socket

import pytest

from udplat.core.config import EchoConfig
from udplat.core.errors import ConfigurationError
from udplat.echo.responder import EchoResponder


@pytest.fixture
def client_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def test_echoes_payload_unchanged(echo_responder, client_socket):
    for payload in [b"", b"x", os.urandom(64), os.urandom(1400), b"\xff" * 9000]:
        client_socket.sendto(payload, echo_responder.address)
        data, addr = client_socket.recvfrom(65535)
        assert data == payload
        assert addr == echo_responder.address


def test_counts_packets_per_source(echo_responder, client_socket):
    for _ in range(3):
        client_socket.sendto(b"probe", echo_responder.address)
        client_socket.recvfrom(2048)

    counts = echo_responder.packet_counts()
    assert counts[client_socket.getsockname()] == 3

    status = echo_responder.get_status()
    assert status['running']
    assert status['packets_echoed'] == 3
    assert status['sources'] == 1


def test_start_twice_is_harmless(echo_responder):
    address = echo_responder.address
    echo_responder.start()
    assert echo_responder.address == address


def test_stop_releases_socket():
    responder = EchoResponder(EchoConfig(bind_address="127.0.0.1", port=0), poll_interval=0.05)
    responder.start()
    responder.stop()
    assert responder.address is None
    assert not responder.get_status()['running']


def test_bind_conflict_is_configuration_error(echo_responder):
    port = echo_responder.address[1]
    other = EchoResponder(EchoConfig(bind_address="127.0.0.1", port=port))
    with pytest.raises(ConfigurationError):
        other.start()


def test_invalid_bind_address():
    responder = EchoResponder(EchoConfig(bind_address="not-an-address", port=0))
    with pytest.raises(ConfigurationError):
        responder.start()
