"""Kernel symbol lookup through the output of ``nm``."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Union

PANEL_NAMES = ("panel", "_panel")
KERNELS = ("/unix", "/vmunix")

# An address, one type character and a name. Octal is tried first, then hex,
# and a number ends at the first character that is not one of its digits.
_OCTAL_LINE = re.compile(r"\s*([0-7]+)(?![0-7])\s*(\S)\s*(\S+)")
_HEX_LINE = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+)(?![0-9a-fA-F])\s*(\S)\s*(\S+)")


class SymbolNotFound(LookupError):
    """None of the wanted symbol names appears in the symbol table."""


@dataclass(frozen=True)
class Symbol:
    """One entry of a symbol table."""

    address: int
    type: str
    name: str


def parse_nm_line(line: str) -> Optional[Symbol]:
    """Parse one ``nm`` output line; return None if it has no address, type and name."""
    for pattern, base in ((_OCTAL_LINE, 8), (_HEX_LINE, 16)):
        match = pattern.match(line)
        if match is not None:
            digits, kind, name = match.groups()
            return Symbol(int(digits, base), kind, name)
    return None


def iter_symbols(lines: Iterable[str]) -> Iterator[Symbol]:
    """Yield the symbols of every line that parses."""
    for line in lines:
        symbol = parse_nm_line(line)
        if symbol is not None:
            yield symbol


def find_symbol(lines: Iterable[str], names: Sequence[str] = PANEL_NAMES) -> Symbol:
    """Return the last symbol whose name is one of ``names``."""
    wanted = set(names)
    found = None
    for symbol in iter_symbols(lines):
        if symbol.name in wanted:
            found = symbol
    if found is None:
        raise SymbolNotFound(f"symbol {' or '.join(names)} not found in kernel symbol table")
    return found


def nm_lines(kernel: Union[str, Path]) -> list[str]:
    """Run ``nm`` on a kernel image and return its output lines."""
    result = subprocess.run(
        ["nm", str(kernel)],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        check=False,
    )
    return result.stdout.splitlines()


def lookup_symbol(
    names: Sequence[str] = PANEL_NAMES,
    kernels: Sequence[Union[str, Path]] = KERNELS,
) -> Symbol:
    """Find a symbol in the first kernel image that has it."""
    for kernel in kernels:
        try:
            lines = nm_lines(kernel)
        except OSError:
            continue
        try:
            return find_symbol(lines, names)
        except SymbolNotFound:
            continue
    raise SymbolNotFound(
        f"symbol {' or '.join(names)} not found in {', '.join(map(str, kernels))}"
    )