import sys

import pytest

from udplat.core.config import SEQUENCE_SIZE
from udplat.core.errors import ConfigurationError
from udplat.probe.packet import build_packet, decode_sequence, encode_sequence


def test_sequence_round_trip():
    for sequence in [0, 1, 2, 255, 256, 65535, 2 ** 32, 2 ** 64 - 1]:
        assert decode_sequence(encode_sequence(sequence)) == sequence


def test_prefix_is_native_endian():
    assert encode_sequence(1) == (1).to_bytes(SEQUENCE_SIZE, sys.byteorder)


def test_build_packet_pads_to_size():
    packet = build_packet(42, 64)
    assert len(packet) == 64
    assert decode_sequence(packet) == 42
    assert packet[SEQUENCE_SIZE:] == bytes(64 - SEQUENCE_SIZE)


def test_build_packet_exact_prefix_size():
    assert len(build_packet(7, SEQUENCE_SIZE)) == SEQUENCE_SIZE


def test_build_packet_rejects_small_size():
    with pytest.raises(ConfigurationError):
        build_packet(0, SEQUENCE_SIZE - 1)


def test_decode_rejects_short_datagram():
    with pytest.raises(ValueError):
        decode_sequence(b"\x01\x02\x03")
