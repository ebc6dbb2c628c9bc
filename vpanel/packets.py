"""Wire format of panel packets: a packed header followed by a panel state."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_HEADER = struct.Struct("<HI")
HEADER_SIZE = _HEADER.size


class PacketError(ValueError):
    """A datagram could not be interpreted as a panel packet."""


@dataclass(frozen=True)
class PacketHeader:
    """Packet header: payload byte count and panel type flags."""

    byte_count: int
    flags: int = 0

    def pack(self) -> bytes:
        try:
            return _HEADER.pack(self.byte_count, self.flags)
        except struct.error as exc:
            raise PacketError(f"header field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "PacketHeader":
        if len(data) < HEADER_SIZE:
            raise PacketError(
                f"Packet too small for header: {len(data)} bytes (need {HEADER_SIZE})"
            )
        byte_count, flags = _HEADER.unpack_from(data)
        return cls(byte_count, flags)


def extract_payload(data: bytes, expected_size: int) -> bytes:
    """Validate a packet and return its panel-state payload of ``expected_size`` bytes."""
    data = bytes(data)
    header = PacketHeader.unpack(data)
    expected_total = HEADER_SIZE + header.byte_count
    if len(data) < expected_total:
        raise PacketError(
            f"Packet too small: {len(data)} bytes (need {expected_total} total, "
            f"header={HEADER_SIZE} + payload={header.byte_count})"
        )
    if header.byte_count != expected_size:
        raise PacketError(
            f"Invalid payload size: {header.byte_count} bytes "
            f"(expected {expected_size} for panel state)"
        )
    return data[HEADER_SIZE:HEADER_SIZE + expected_size]


def build_packet(payload: bytes, flags: int = 0) -> bytes:
    """Prefix ``payload`` with a header describing it."""
    payload = bytes(payload)
    return PacketHeader(len(payload), flags).pack() + payload


def to_hex(value: int, width: int) -> str:
    """Format ``value`` as exactly ``width`` upper-case, zero-padded hex digits."""
    if value < 0:
        raise ValueError(f"cannot format negative value {value} as hex")
    if value >> (4 * width):
        raise ValueError(f"value {value:#x} does not fit in {width} hex digits")
    return format(value, f"0{width}X") if width else ""