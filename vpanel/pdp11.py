"""PDP-11 panel state as laid out in 2.11BSD kernel memory, and address decoding."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass
from typing import Sequence

APR_BASE = 0o172300
APR_MASK = 0o77777
OFFSET_MASK = 0o7777
PHYS_MASK = 0o7777777

_WORD_PAIR = struct.Struct("<HH")
_SHORTS = struct.Struct("<6H")
PANEL_STATE_SIZE = _WORD_PAIR.size + _SHORTS.size


def pdp_long_from_bytes(data: bytes) -> int:
    """Read a 32-bit PDP-11 long: high word first, each word little-endian."""
    data = bytes(data)
    if len(data) != _WORD_PAIR.size:
        raise ValueError(f"a PDP-11 long is {_WORD_PAIR.size} bytes, got {len(data)}")
    high, low = _WORD_PAIR.unpack(data)
    return (high << 16) | low


def pdp_long_to_bytes(value: int) -> bytes:
    """Write ``value`` as a 32-bit PDP-11 long (middle-endian byte order)."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"value {value} does not fit in an unsigned 32-bit long")
    return _WORD_PAIR.pack(value >> 16, value & 0xFFFF)


def decode_phys_addr(pc: int, ps: int, aprs: Sequence[int]) -> int:
    """Translate a virtual ``pc`` to a 22-bit physical address.

    ``aprs`` holds the memory-management segment registers: indexes 0-7 are
    used in kernel mode, 8-15 in supervisor and user mode. Returns 0 when the
    processor mode in ``ps`` is not one of those.
    """
    pc &= 0xFFFF
    ps &= 0xFFFF
    mode = (ps >> 14) & 0o3
    segnum = (pc >> 13) & 0o7
    if mode == 0:
        index = segnum
    elif mode in (1, 3):
        index = 8 + segnum
    else:
        return 0
    try:
        seg_reg = aprs[index] & 0xFFFF & APR_MASK
    except IndexError:
        raise ValueError(
            f"segment register {index} needed but only {len(aprs)} given"
        ) from None
    offset = pc & OFFSET_MASK
    return ((seg_reg << 6) | offset) & PHYS_MASK


@dataclass(frozen=True)
class PDPPanelState:
    """The kernel ``panel`` structure: address, data and processor registers."""

    ps_address: int = 0
    ps_data: int = 0
    ps_psw: int = 0
    ps_mser: int = 0
    ps_cpu_err: int = 0
    ps_mmr0: int = 0
    ps_mmr3: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "PDPPanelState":
        """Parse the structure exactly as it sits in PDP-11 memory."""
        data = bytes(data)
        if len(data) != PANEL_STATE_SIZE:
            raise ValueError(
                f"panel state is {PANEL_STATE_SIZE} bytes, got {len(data)}"
            )
        address = pdp_long_from_bytes(data[: _WORD_PAIR.size])
        return cls(address, *_SHORTS.unpack(data[_WORD_PAIR.size:]))

    def to_bytes(self) -> bytes:
        """Lay the structure out as PDP-11 memory holds it."""
        address, *shorts = astuple(self)
        try:
            return pdp_long_to_bytes(address) + _SHORTS.pack(*shorts)
        except struct.error as exc:
            raise ValueError(f"panel field out of range: {exc}") from exc