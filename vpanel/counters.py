"""Kernel clock counter checks and a memory diagnostic over kernel memory."""

from __future__ import annotations

import argparse
import sys
import time
from typing import Optional, Sequence, TextIO

from .paneldump import KMEM_PATH, KernelMemory
from .pdp11 import pdp_long_from_bytes
from .symbols import KERNELS, Symbol, SymbolNotFound, lookup_symbol, nm_lines

LONG_SIZE = 4

HARDCLOCK_COUNTER = 0x4522
TIMEOUT_COUNTER = 0x4526
PANEL_ADDRESS = 0x4502
CONTEXT_START = 0x4520
CONTEXT_END = 0x4530


def _signed(value: int) -> int:
    return value - (1 << 32) if value & 0x80000000 else value


def read_counter(memory, address: int) -> int:
    """Read a signed 32-bit PDP-11 long counter at ``address``."""
    return _signed(pdp_long_from_bytes(memory.read(address, LONG_SIZE)))


def clock_verdict(first: int, second: int, seconds: float = 2) -> str:
    """Describe what two counter readings ``seconds`` apart say about the clock."""
    diff = second - first
    if diff > 0:
        return "\n".join(
            (
                "SUCCESS: hardclock is being called!",
                f"Clock ticks in {seconds} seconds: {diff}",
                f"Estimated Hz: {int(diff / seconds)}",
            )
        )
    if diff == 0:
        return "\n".join(
            (
                "FAILED: hardclock counter is not incrementing",
                "This means hardclock() is not being called",
            )
        )
    return "WARNING: Counter went backwards (wraparound?)"


def hexdump_words(memory, start: int, end: int) -> list[str]:
    """Lines showing each 16-bit word from ``start`` to ``end`` inclusive.

    Words that cannot be read are left out.
    """
    lines = []
    for address in range(start, end + 1, 2):
        try:
            data = memory.read(address, 2)
        except OSError:
            continue
        lines.append(f"0x{address:04x}: {data[0]:02x} {data[1]:02x}")
    return lines


def _lookup(names: Sequence[str], kernels: Sequence[str]) -> Optional[Symbol]:
    try:
        return lookup_symbol(names, kernels)
    except SymbolNotFound:
        return None


def _open_memory(path: str) -> Optional[KernelMemory]:
    try:
        return KernelMemory(path)
    except OSError as exc:
        print(f"open {path}: {exc}", file=sys.stderr)
        return None


def _print_reading(
    kmem: str, label: str, symbol: Optional[Symbol], out: TextIO
) -> None:
    if symbol is None:
        print(f"   {label}: symbol not found", file=out)
        return
    memory = _open_memory(kmem)
    if memory is None:
        return
    with memory:
        try:
            value = read_counter(memory, symbol.address)
        except OSError as exc:
            print(f"read: {exc}", file=sys.stderr)
            return
    print(f"   {label}: {value} (at 0x{symbol.address:x})", file=out)


def _all_counters(args, out: TextIO) -> int:
    print("All Counters Test", file=out)
    print("=================", file=out)
    print(file=out)
    print("1. Finding counter symbols:", file=out)
    counters = []
    for label in ("hardclock_counter", "timeout_counter"):
        symbol = _lookup((f"_{label}",), args.kernels)
        if symbol is None:
            print(f"   {label}: not found", file=out)
        else:
            print(f"   {label}: found at 0x{symbol.address:x}", file=out)
        counters.append((label, symbol))

    print(file=out)
    print("2. Initial readings:", file=out)
    for label, symbol in counters:
        _print_reading(args.kmem, label, symbol, out)

    seconds = 3 if args.seconds is None else args.seconds
    print(file=out)
    print(f"3. Waiting {seconds} seconds...", file=out)
    time.sleep(seconds)

    print(file=out)
    print("4. Second readings:", file=out)
    for label, symbol in counters:
        _print_reading(args.kmem, label, symbol, out)

    print(file=out)
    print("This tells us which kernel functions are actually being called.", file=out)
    print("- hardclock_counter increments if hardclock() is called", file=out)
    print("- timeout_counter increments if timeout() is called", file=out)
    return 0


def _clock_test(args, out: TextIO) -> int:
    print("Clock Test - checking if hardclock is being called", file=out)
    print("=================================================", file=out)
    print(file=out)
    print("1. Finding hardclock_counter symbol:", file=out)
    symbol = _lookup(("hardclock_counter", "_hardclock_counter"), args.kernels)
    if symbol is None:
        print("   ERROR: hardclock_counter symbol not found", file=out)
        print("   This means the kernel wasn't built with the counter", file=out)
        return 1
    print(f"   -> Using: {symbol.name} at 0x{symbol.address:x}", file=out)

    memory = _open_memory(args.kmem)
    if memory is None:
        return 1
    seconds = 2 if args.seconds is None else args.seconds
    with memory:
        try:
            first = read_counter(memory, symbol.address)
            print(f"2. First counter reading: {first}", file=out)
            print(f"3. Waiting {seconds} seconds...", file=out)
            time.sleep(seconds)
            second = read_counter(memory, symbol.address)
        except OSError as exc:
            print(f"   read: {exc}", file=sys.stderr)
            return 1
    print(f"4. Second counter reading: {second}", file=out)
    print(f"5. Counter difference: {second - first}", file=out)
    print(file=out)
    print(clock_verdict(first, second, seconds), file=out)
    return 0


def _print_long(memory, label: str, address: int, out: TextIO) -> None:
    print(f"   {label} (0x{address:x}):", file=out)
    try:
        raw = memory.read(address, LONG_SIZE)
    except OSError:
        return
    value = _signed(pdp_long_from_bytes(raw))
    print(f"     as long: 0x{value & 0xFFFFFFFF:08x} ({value})", file=out)
    print("     as bytes: " + " ".join(f"{byte:02x}" for byte in raw), file=out)


def _memory_diag(args, out: TextIO) -> int:
    print("Memory Diagnostic Test", file=out)
    print("=====================", file=out)
    print(file=out)
    try:
        lines = nm_lines(args.kernels[0])
    except OSError:
        lines = []
    print("1. All panel-related symbols:", file=out)
    for word, heading in (
        ("panel", None),
        ("hardclock", "hardclock symbols:"),
        ("timeout", "timeout symbols:"),
    ):
        if heading is not None:
            print(f"   {heading}", file=out)
        for line in lines:
            if word in line:
                print(f"   {line}", file=out)

    memory = _open_memory(args.kmem)
    if memory is None:
        return 1
    with memory:
        print(file=out)
        print("2. Testing memory reads at specific addresses:", file=out)
        _print_long(memory, "hardclock_counter", HARDCLOCK_COUNTER, out)
        _print_long(memory, "timeout_counter", TIMEOUT_COUNTER, out)
        print(f"   panel structure (0x{PANEL_ADDRESS:x}):", file=out)
        try:
            panel = memory.read(PANEL_ADDRESS, 16)
        except OSError:
            panel = None
        if panel is not None:
            groups = (panel[i:i + 4] for i in range(0, 16, 4))
            text = "  ".join(" ".join(f"{byte:02x}" for byte in group) for group in groups)
            print(f"     raw bytes: {text}", file=out)

        print(file=out)
        print("3. Memory context around symbols:", file=out)
        for line in hexdump_words(memory, CONTEXT_START, CONTEXT_END):
            print(f"   {line}", file=out)

    print(file=out)
    print("4. Expected values:", file=out)
    print("   hardclock_counter should be: 0x87654321", file=out)
    print("   timeout_counter should be:   0x12345678", file=out)
    print("   If we're reading zeros, the issue is:", file=out)
    print("   - Wrong kernel loaded, or", file=out)
    print("   - BSS section not initialized, or", file=out)
    print("   - Wrong symbol addresses", file=out)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="counters", description="Check kernel clock counters and memory."
    )
    parser.add_argument("--kmem", default=KMEM_PATH, help="kernel memory device")
    parser.add_argument(
        "--kernel", action="append", dest="kernels", help="kernel image to search"
    )
    parser.add_argument(
        "--seconds", type=float, default=None, help="time to wait between readings"
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="clock",
        choices=("all", "clock", "diag"),
        help="all counters, clock test or memory diagnostic",
    )
    args = parser.parse_args(argv)
    args.kernels = args.kernels or list(KERNELS)
    out = sys.stdout
    if args.command == "all":
        return _all_counters(args, out)
    if args.command == "diag":
        return _memory_diag(args, out)
    return _clock_test(args, out)


if __name__ == "__main__":
    raise SystemExit(main())