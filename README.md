# vpanel

`vpanel` shows the state of a running machine as a front panel in a web
browser.

Machines being watched send samples of their CPU state (address, data,
processor status, registers) as UDP packets. The `vpanel` proxy receives
those packets, decodes them according to the kind of machine that sent them,
and pushes each sample as a JSON message to every browser connected over
WebSocket. A small web server delivers the panel pages and tells them which
port belongs to which machine.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running the proxy

```
vpanel
vpanel --content-dir path/to/pages
```

This starts, all at once:

| Component     | Port | What it does                                            |
|---------------|------|---------------------------------------------------------|
| web server    | 4080 | serves the content directory (`wwwroot` by default) and `/config.json` |
| `pdproxy`     | 4000 | PDP-11 panel packets                                    |
| `amd64proxy`  | 4001 | NetBSD amd64 clock-frame packets                        |
| `netbsdvax`   | 4002 | NetBSD VAX panel packets                                |

Each proxy listens for UDP datagrams and accepts WebSocket clients at path
`/` on the TCP port of the same number. The web server answers `/` with
`index.html` from the content directory, any other path with the file of
that name inside the directory (404 when it is missing or lies outside the
directory), and `/config.json` with the proxy ports sorted by name:

```json
{"proxy_ports": {"amd64proxy": 4001, "netbsdvax": 4002, "pdproxy": 4000}}
```

Press Ctrl-C to stop all servers. Log lines go to standard output, errors to
standard error, each as `[YYYY-MM-DD HH:MM:SS] [INF|ERR] [component] message`.

The same pieces can be assembled by hand: `vpanel.app.create_components()`
returns the `WebServer` and the list of `PanelProxy` objects, and
`vpanel.app.run_all(webserver, proxies)` runs them in one event loop.

## Packet format

Every datagram begins with a packed 6-byte little-endian header
(`vpanel.packets.PacketHeader`): a 16-bit payload byte count followed by
32-bit panel-type flags. The payload must be exactly the size the receiving
decoder expects; short packets and payloads of the wrong size raise
`PacketError`, and the proxy logs and drops them.

The JSON sent to browsers depends on the decoder:

* **`PDPDecoder`** (12-byte payload) – `address` (masked to 22 bits),
  `data`, `parity_error`, `address_error`, `user_mode`, `super_mode`,
  `kernel_mode`, `addr16`, `addr18`, `addr22`.
* **`AMD64Decoder`** (208-byte clock frame) – `rax`, `rbx`, `rcx`, `rdx`,
  `rdi`, `rsi`, `rbp`, `rsp`, `rip`, `rflags`, each as 16 upper-case
  hexadecimal digits.
* **`NetBSDVAXDecoder`** (8-byte payload) – `address` and `data` as full
  32-bit numbers.

## Using the decoders directly

```python
import struct

from vpanel.packets import build_packet
from vpanel.decoders import NetBSDVAXDecoder

decoder = NetBSDVAXDecoder()
packet = build_packet(struct.pack("<II", 0x1234, 0xBEEF))
print(decoder.packet_to_json(packet))   # {"address":4660,"data":48879}
```

`packet_to_dict` returns the same fields as a dictionary, and `decode`
works on a bare payload without the header.

## Other building blocks

* `vpanel.pdp11` – `PDPPanelState`, the 2.11BSD kernel `panel` structure as
  it sits in PDP-11 memory (32-bit longs stored high word first), and
  `decode_phys_addr(pc, ps, aprs)`, which turns a virtual PC into a 22-bit
  physical address from the segment registers.
* `vpanel.linuxregs` – `PtRegs`, an x86-64 `pt_regs` register set, with
  `parse_panel_regs` and `read_panel_regs` for the one-line register dump
  found in `/proc/panel_regs`. `RegsUnavailable` is raised while no snapshot
  has been captured.
* `vpanel.symbols` – parses `nm` output (octal or hexadecimal addresses) and
  looks up kernel symbols with `find_symbol` and `lookup_symbol`.

## Kernel diagnostics (2.11BSD)

Two commands inspect a 2.11BSD kernel through `nm` and a kernel memory
device, and need the privileges to read it.

```
vpanel-paneldump 20
```

looks up the kernel's `panel` symbol, samples the panel structure the given
number of times (10 by default, 100 ms apart) and reports which samples
changed, warning if the kernel never updates it. `--kmem` picks the memory
device (default `/dev/kmem`) and `--kernel` (repeatable) the kernel images
to search (default `/unix`, then `/vmunix`).

```
vpanel-counters
vpanel-counters all
vpanel-counters diag
```

`clock` (the default) reads the kernel's `hardclock_counter` twice, two
seconds apart, and says whether the clock interrupt is running and at what
rate. `all` reads both `hardclock_counter` and `timeout_counter` before and
after a three-second wait. `diag` prints the panel, hardclock and timeout
symbols and dumps kernel memory at fixed diagnostic addresses. `--seconds`
changes the wait; `--kmem` and `--kernel` work as above.

## What this package does not do

It receives and displays panel data but does not produce it: there is no
program here that samples a machine's CPU state and sends the UDP packets,
and nothing that installs the kernel support those senders rely on (the
`panel` structure, the `/proc/panel_regs` probe). It also ships no web
pages; the content directory with `index.html` and its panel display must
be supplied separately.