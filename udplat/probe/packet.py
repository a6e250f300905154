"""
Probe payload codec.

Every probe starts with its sequence number as a fixed-width unsigned
integer in native byte order. The rest of the datagram is zero filler up to
the configured packet size. The echo responder never looks inside.
"""

import struct

from ..core.config import SEQUENCE_SIZE
from ..core.errors import ConfigurationError

_SEQUENCE = struct.Struct("=Q")


def encode_sequence(sequence: int) -> bytes:
    """Encode a sequence number as the probe prefix."""
    return _SEQUENCE.pack(sequence)


def decode_sequence(data: bytes) -> int:
    """Decode the sequence number from a probe prefix.

    Raises ValueError for datagrams shorter than the prefix.
    """
    if len(data) < SEQUENCE_SIZE:
        raise ValueError(f"Datagram of {len(data)} bytes is too short for a sequence number")
    return _SEQUENCE.unpack_from(data)[0]


def build_packet(sequence: int, packet_size: int) -> bytes:
    """Build a probe of ``packet_size`` bytes carrying ``sequence``."""
    if packet_size < SEQUENCE_SIZE:
        raise ConfigurationError(
            f"Packet size {packet_size} is smaller than the {SEQUENCE_SIZE}-byte sequence number"
        )
    buf = bytearray(packet_size)
    _SEQUENCE.pack_into(buf, 0, sequence)
    return bytes(buf)
