"""Linux x86-64 register snapshot read from the panel kernel probe."""

from __future__ import annotations

import re
import struct
from dataclasses import astuple, dataclass, fields
from pathlib import Path
from typing import Union

PROC_PATH = "/proc/panel_regs"
NO_DATA_PREFIX = "No register data captured yet"

# Order of the registers in the probe's text output, with the field each fills.
_TEXT_ORDER = (
    ("RIP", "rip"), ("RSP", "rsp"), ("RBP", "rbp"), ("RAX", "rax"),
    ("RBX", "rbx"), ("RCX", "rcx"), ("RDX", "rdx"), ("RSI", "rsi"),
    ("RDI", "rdi"), ("R8", "r8"), ("R9", "r9"), ("R10", "r10"),
    ("R11", "r11"), ("R12", "r12"), ("R13", "r13"), ("R14", "r14"),
    ("R15", "r15"), ("EFLAGS", "eflags"), ("CS", "cs"), ("SS", "ss"),
    ("ORIG_RAX", "orig_rax"),
)

_TEXT_PATTERN = re.compile(
    r"\s*".join(rf"{label}=0x([0-9a-fA-F]+)" for label, _ in _TEXT_ORDER)
)


class RegsUnavailable(Exception):
    """The probe has no usable register snapshot yet; try again later."""


@dataclass(frozen=True)
class PtRegs:
    """CPU registers in the kernel's ``pt_regs`` order."""

    r15: int = 0
    r14: int = 0
    r13: int = 0
    r12: int = 0
    rbp: int = 0
    rbx: int = 0
    r11: int = 0
    r10: int = 0
    r9: int = 0
    r8: int = 0
    rax: int = 0
    rcx: int = 0
    rdx: int = 0
    rsi: int = 0
    rdi: int = 0
    orig_rax: int = 0
    rip: int = 0
    cs: int = 0
    eflags: int = 0
    rsp: int = 0
    ss: int = 0

    def pack(self) -> bytes:
        """Serialise as 21 little-endian 64-bit words."""
        try:
            return _PT_REGS.pack(*astuple(self))
        except struct.error as exc:
            raise ValueError(f"register value out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "PtRegs":
        data = bytes(data)
        if len(data) != _PT_REGS.size:
            raise ValueError(f"pt_regs is {_PT_REGS.size} bytes, got {len(data)}")
        return cls(*_PT_REGS.unpack(data))


_PT_REGS = struct.Struct("<" + "Q" * len(fields(PtRegs)))
PT_REGS_SIZE = _PT_REGS.size


def parse_panel_regs(text: str) -> PtRegs:
    """Parse the probe's one-line register dump."""
    if text.startswith(NO_DATA_PREFIX):
        raise RegsUnavailable("no register data captured yet")
    match = _TEXT_PATTERN.match(text)
    if match is None:
        raise RegsUnavailable(f"could not parse register data: {text.strip()!r}")
    values = {name: int(digits, 16) for (_, name), digits in zip(_TEXT_ORDER, match.groups())}
    if any(value > 0xFFFFFFFFFFFFFFFF for value in values.values()):
        raise RegsUnavailable("register value wider than 64 bits")
    return PtRegs(**values)


def read_panel_regs(path: Union[str, Path] = PROC_PATH) -> PtRegs:
    """Read and parse the first line of the probe's proc file.

    A missing file raises the usual :class:`OSError`; a file with no line
    raises :class:`OSError` too, since the probe is then not working.
    """
    with open(path, encoding="ascii", errors="replace") as handle:
        line = handle.readline()
    if not line:
        raise OSError(f"Could not read from {path}")
    return parse_panel_regs(line)