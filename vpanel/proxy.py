"""UDP to WebSocket relay for one kind of panel."""

from __future__ import annotations

import asyncio
from typing import Optional

from aiohttp import WSCloseCode, WSMsgType, web

from .decoders import PanelDecoder
from .log import Loggable
from .packets import HEADER_SIZE, PacketError


class _DatagramReceiver(asyncio.DatagramProtocol):
    """Hands every non-empty datagram to the owning proxy."""

    def __init__(self, proxy: "PanelProxy") -> None:
        self._proxy = proxy

    def datagram_received(self, data: bytes, addr) -> None:
        if data:
            self._proxy._schedule(data)

    def error_received(self, exc: Exception) -> None:
        self._proxy.log_error(f"UDP recv error: {exc}")


class PanelProxy(Loggable):
    """Receives panel packets over UDP and broadcasts them as JSON to WebSocket clients.

    The WebSocket server listens on TCP ``port`` at path ``/`` and the UDP
    socket on the same port number.
    """

    def __init__(self, decoder: PanelDecoder, port: int, host: str = "0.0.0.0") -> None:
        self.decoder = decoder
        self.port = port
        self.host = host
        self.http_port: Optional[int] = None
        self.udp_port: Optional[int] = None
        self.started = asyncio.Event()
        self._stopped = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._clients: set[web.WebSocketResponse] = set()
        self._tasks: set[asyncio.Task] = set()
        payload = decoder.payload_size
        self.log_info(
            f"Structure sizes: header={HEADER_SIZE} bytes, panel_state={payload} bytes, "
            f"total_packet={HEADER_SIZE + payload} bytes"
        )

    @property
    def module_name(self) -> str:
        return self.decoder.module_name

    @property
    def client_count(self) -> int:
        """Number of connected WebSocket clients."""
        return len(self._clients)

    async def handle_datagram(self, data: bytes) -> Optional[str]:
        """Decode one datagram and send it to every client; return the JSON sent, or None."""
        try:
            message = self.decoder.packet_to_json(data)
        except PacketError as exc:
            self.log_error(str(exc))
            self.log_error(
                f"Failed to parse UDP packet ({len(data)} bytes) - packet cannot be processed"
            )
            return None
        for client in list(self._clients):
            try:
                await client.send_str(message)
            except (ConnectionError, RuntimeError) as exc:
                self.log_error(f"WebSocket send failed: {exc}")
                self._clients.discard(client)
        return message

    def _schedule(self, data: bytes) -> None:
        task = asyncio.ensure_future(self.handle_datagram(data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._clients.add(ws)
        self.log_info(f"WebSocket client connected: {request.remote}")
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    self.log_error(f"WebSocket error from {request.remote}: {ws.exception()}")
        finally:
            self._clients.discard(ws)
        return ws

    async def _close_clients(self, app: web.Application) -> None:
        for client in list(self._clients):
            await client.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        self._clients.clear()

    def make_app(self) -> web.Application:
        """Build the WebSocket application served at ``/``."""
        app = web.Application()
        app.router.add_get("/", self._websocket)
        app.on_shutdown.append(self._close_clients)
        return app

    async def _open_udp(self) -> Optional[asyncio.DatagramTransport]:
        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _DatagramReceiver(self), local_addr=(self.host, self.port)
            )
        except OSError as exc:
            self.log_error(f"Failed to bind UDP socket: {exc}")
            return None
        self.udp_port = transport.get_extra_info("sockname")[1]
        self.log_info(f"UDP socket listening on port {self.udp_port}")
        return transport

    async def run(self) -> None:
        """Serve WebSocket clients and relay UDP packets until :meth:`stop` is called."""
        self._loop = asyncio.get_running_loop()
        self.log_info(f"Starting WebSocket server on port {self.port}")
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, self.host, self.port)
            try:
                await site.start()
            except OSError as exc:
                self.log_error(f"Failed to start WebSocket server on port {self.port}: {exc}")
                return
            self.http_port = runner.addresses[0][1]
            self.log_info("WebSocket server started")
            transport = await self._open_udp()
            self.started.set()
            await self._stopped.wait()
            self.log_info("WebSocket server stopped")
            if transport is not None:
                transport.close()
                self.log_info("UDP socket closed")
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
        finally:
            await runner.cleanup()

    def stop(self) -> None:
        """Ask :meth:`run` to finish; safe to call from any thread."""
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or loop is running or loop.is_closed():
            self._stopped.set()
        else:
            loop.call_soon_threadsafe(self._stopped.set)