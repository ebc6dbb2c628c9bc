"""Sample the kernel panel structure from kernel memory and report changes."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence, TextIO, Union

from .pdp11 import PANEL_STATE_SIZE, PDPPanelState
from .symbols import KERNELS, PANEL_NAMES, Symbol, iter_symbols, nm_lines

KMEM_PATH = "/dev/kmem"
DEFAULT_SAMPLES = 10
SAMPLE_DELAY = 0.1

_TABLE_HEADER = (
    "Sample  ps_address    ps_data  ps_psw   ps_mser  ps_cpu_err ps_mmr0  ps_mmr3  Status",
    "------  ------------  -------  -------  -------  ---------- -------  -------  ------",
)


class KernelMemory:
    """Read-only access to a kernel memory device (or any seekable file)."""

    def __init__(self, path: Union[str, Path] = KMEM_PATH) -> None:
        self.path = Path(path)
        self._file = open(self.path, "rb", buffering=0)

    def read(self, address: int, size: int) -> bytes:
        """Read exactly ``size`` bytes at ``address``."""
        self._file.seek(address)
        data = self._file.read(size)
        if data is None or len(data) != size:
            got = 0 if data is None else len(data)
            raise OSError(f"short read at {address:#x}: expected {size} bytes, got {got}")
        return data

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "KernelMemory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def format_sample(number: int, state: PDPPanelState, status: str) -> str:
    """One row of the sample table."""
    return (
        f"{number:6d}  0x{state.ps_address:08x}    0x{state.ps_data:04x}   "
        f"0x{state.ps_psw:04x}   0x{state.ps_mser:04x}   0x{state.ps_cpu_err:04x}     "
        f"0x{state.ps_mmr0:04x}   0x{state.ps_mmr3:04x}  {status}"
    )


def summarize(samples: int, changes: int) -> str:
    """Summary of a run, with a warning when nothing changed."""
    text = f"Summary: {samples} samples taken, {changes} showed changes"
    if samples > 1:
        text += f" ({changes * 100.0 / (samples - 1):.1f}%)"
    if changes == 0 and samples > 1:
        text += "\nWARNING: Panel data appears to be static - kernel may not be updating it"
    return text


def dump(
    memory,
    address: int,
    samples: int = DEFAULT_SAMPLES,
    delay: float = SAMPLE_DELAY,
    out: Optional[TextIO] = None,
) -> int:
    """Sample the panel structure ``samples`` times; return how many samples changed."""
    out = sys.stdout if out is None else out
    print("Reading panel data...", file=out)
    print(f"Structure size: {PANEL_STATE_SIZE} bytes", file=out)
    print(f"Panel address: 0x{address:x}", file=out)
    for line in _TABLE_HEADER:
        print(line, file=out)

    changes = 0
    previous: Optional[bytes] = None
    for count in range(samples):
        try:
            raw = memory.read(address, PANEL_STATE_SIZE)
        except OSError as exc:
            print(f"read: {exc}", file=sys.stderr)
            break
        if previous is None:
            print("Raw bytes: " + "".join(f"{byte:02x} " for byte in raw), file=out)
            status = "FIRST"
        elif raw == previous:
            status = "SAME"
        else:
            status = "CHANGED"
            changes += 1
        print(format_sample(count + 1, PDPPanelState.from_bytes(raw), status), file=out)
        previous = raw
        if count < samples - 1 and delay > 0:
            time.sleep(delay)

    print(file=out)
    print(summarize(samples, changes), file=out)
    return changes


def _find_panel(kernels: Sequence[str], out: TextIO) -> Optional[Symbol]:
    lines = None
    for kernel in kernels:
        try:
            lines = nm_lines(kernel)
        except OSError:
            continue
        break
    if lines is None:
        print("Cannot run nm to find panel symbol", file=sys.stderr)
        return None

    print("Searching for panel symbol in kernel:", file=out)
    found = []
    for line in (line for line in lines if "panel" in line):
        print(f"  nm output: {line}", file=out)
        for symbol in iter_symbols([line]):
            if symbol.name in PANEL_NAMES:
                print(
                    f"  Found panel symbol: {symbol.name} at 0x{symbol.address:x} "
                    f"(type {symbol.type})",
                    file=out,
                )
                found.append(symbol)
    if not found:
        print("Panel symbol not found", file=sys.stderr)
        return None
    if len(found) > 1:
        print(f"WARNING: Found {len(found)} panel symbols, using last one", file=out)
    return found[-1]


def _sample_count(text: Optional[str]) -> int:
    try:
        samples = int(text) if text is not None else DEFAULT_SAMPLES
    except ValueError:
        samples = 0
    return samples if samples > 0 else DEFAULT_SAMPLES


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="paneldump", description="Dump the kernel panel state structure."
    )
    parser.add_argument("samples", nargs="?", help="number of samples (default 10)")
    parser.add_argument("--kmem", default=KMEM_PATH, help="kernel memory device")
    parser.add_argument(
        "--kernel", action="append", dest="kernels", help="kernel image to search"
    )
    args = parser.parse_args(argv)
    samples = _sample_count(args.samples)
    out = sys.stdout

    print(f"Panel State Dumper - taking {samples} samples", file=out)
    symbol = _find_panel(args.kernels or list(KERNELS), out)
    if symbol is None:
        return 1
    print(f"Panel symbol found at address {symbol.address:x}", file=out)

    try:
        memory = KernelMemory(args.kmem)
    except OSError as exc:
        print(f"open {args.kmem}: {exc}", file=sys.stderr)
        return 1
    with memory:
        dump(memory, symbol.address, samples, SAMPLE_DELAY, out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())