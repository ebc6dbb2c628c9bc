"""Entry point: one web server plus a relay proxy per panel type."""

from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path
from typing import Optional, Sequence, Union

from .decoders import AMD64Decoder, NetBSDVAXDecoder, PDPDecoder
from .proxy import PanelProxy
from .webserver import WebServer

WEBSERVER_PORT = 4080
CONTENT_DIR = "wwwroot"

PROXIES = (
    ("pdproxy", 4000, PDPDecoder),
    ("amd64proxy", 4001, AMD64Decoder),
    ("netbsdvax", 4002, NetBSDVAXDecoder),
)


def create_components(
    content_dir: Union[str, Path] = CONTENT_DIR,
) -> tuple[WebServer, list[PanelProxy]]:
    """Create the shared web server and the proxies it advertises."""
    webserver = WebServer(WEBSERVER_PORT, content_dir)
    proxies = []
    for name, port, decoder_type in PROXIES:
        webserver.add_proxy_port(name, port)
        proxies.append(PanelProxy(decoder_type(), port))
    return webserver, proxies


async def run_all(webserver: WebServer, proxies: Sequence[PanelProxy]) -> None:
    """Run the web server and all proxies until they stop; SIGINT stops them all."""
    loop = asyncio.get_running_loop()

    def shutdown() -> None:
        for proxy in proxies:
            proxy.stop()
        webserver.stop()

    try:
        loop.add_signal_handler(signal.SIGINT, shutdown)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False
    try:
        await asyncio.gather(webserver.run(), *(proxy.run() for proxy in proxies))
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vpanel", description="Relay panel packets from UDP to WebSocket clients."
    )
    parser.add_argument(
        "--content-dir", default=CONTENT_DIR, help="directory of the web front end"
    )
    args = parser.parse_args(argv)
    webserver, proxies = create_components(args.content_dir)
    asyncio.run(run_all(webserver, proxies))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())