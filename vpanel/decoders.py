"""Decoders turning panel packets from each machine type into JSON state."""

from __future__ import annotations

import json
import struct
from typing import Any, ClassVar

from .packets import PacketError, extract_payload, to_hex


class PanelDecoder:
    """Base decoder: unpacks a fixed-layout panel state into named fields.

    Subclasses set ``payload_format`` and ``fields`` and refine :meth:`decode`
    into the dictionary sent to web clients.
    """

    module_name: ClassVar[str] = "PanelDecoder"
    payload_format: ClassVar[struct.Struct] = struct.Struct("<")
    fields: ClassVar[tuple[str, ...]] = ()

    @property
    def payload_size(self) -> int:
        return self.payload_format.size

    def decode(self, payload: bytes) -> dict[str, Any]:
        """Unpack ``payload`` into a mapping of raw field names to values."""
        if len(payload) != self.payload_size:
            raise PacketError(
                f"Invalid payload size: {len(payload)} bytes "
                f"(expected {self.payload_size} for panel state)"
            )
        return dict(zip(self.fields, self.payload_format.unpack(payload)))

    def packet_to_dict(self, data: bytes) -> dict[str, Any]:
        """Validate a whole packet and decode its panel state."""
        return self.decode(extract_payload(data, self.payload_size))

    def packet_to_json(self, data: bytes) -> str:
        """Validate a whole packet and render its panel state as compact JSON."""
        return json.dumps(self.packet_to_dict(data), separators=(",", ":"))


_PARITY_ERROR_BITS = (1 << 7) | (1 << 6) | (1 << 5) | (1 << 4)
_ADDRESS_ERROR_BITS = (1 << 6) | (1 << 5)


class PDPDecoder(PanelDecoder):
    """PDP-11/70 panel: address, data and processor status registers."""

    module_name = "PDProxy"
    payload_format = struct.Struct("<IHHHHHH")
    fields = ("ps_address", "ps_data", "ps_psw", "ps_mser", "ps_cpu_err", "ps_mmr0", "ps_mmr3")

    def decode(self, payload: bytes) -> dict[str, Any]:
        raw = super().decode(payload)
        mode = (raw["ps_psw"] >> 14) & 0x3
        addr22 = bool(raw["ps_mmr3"] & (1 << 4))
        addr18 = bool(raw["ps_mmr0"] & 1) and not addr22
        return {
            "address": raw["ps_address"] & 0x3FFFFF,
            "data": raw["ps_data"],
            "parity_error": bool(raw["ps_mser"] & _PARITY_ERROR_BITS),
            "address_error": bool(raw["ps_cpu_err"] & _ADDRESS_ERROR_BITS),
            "user_mode": mode == 3,
            "super_mode": mode == 1,
            "kernel_mode": mode == 0,
            "addr16": not (addr18 or addr22),
            "addr18": addr18,
            "addr22": addr22,
        }


CLOCKFRAME_FIELDS = (
    "cf_rdi", "cf_rsi", "cf_rdx", "cf_rcx", "cf_r8", "cf_r9", "cf_r10", "cf_r11",
    "cf_r12", "cf_r13", "cf_r14", "cf_r15", "cf_rbp", "cf_rbx", "cf_rax", "cf_gs",
    "cf_fs", "cf_es", "cf_ds", "cf_trapno", "cf_err", "cf_rip", "cf_cs", "cf_rflags",
    "cf_rsp", "cf_ss",
)

_AMD64_REPORTED = ("rax", "rbx", "rcx", "rdx", "rdi", "rsi", "rbp", "rsp", "rip", "rflags")


class AMD64Decoder(PanelDecoder):
    """NetBSD amd64 panel: an interrupt clock frame, reported as 64-bit hex."""

    module_name = "AMD64Proxy"
    payload_format = struct.Struct("<" + "Q" * len(CLOCKFRAME_FIELDS))
    fields = CLOCKFRAME_FIELDS

    def decode(self, payload: bytes) -> dict[str, Any]:
        raw = super().decode(payload)
        return {name: to_hex(raw[f"cf_{name}"], 16) for name in _AMD64_REPORTED}


class NetBSDVAXDecoder(PanelDecoder):
    """NetBSD VAX panel: full 32-bit address and data."""

    module_name = "NetBSDVAXProxy"
    payload_format = struct.Struct("<II")
    fields = ("ps_address", "ps_data")

    def decode(self, payload: bytes) -> dict[str, Any]:
        raw = super().decode(payload)
        return {"address": raw["ps_address"], "data": raw["ps_data"]}