"""HTTP server for the web front end and its proxy configuration."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Union

from aiohttp import web

from .log import Loggable


class WebServer(Loggable):
    """Serves static content from a directory and ``/config.json`` listing proxy ports."""

    def __init__(
        self, port: int, content_dir: Union[str, Path], host: str = "0.0.0.0"
    ) -> None:
        self.port = port
        self.host = host
        self.content_dir = Path(content_dir)
        self.proxy_ports: dict[str, int] = {}
        self.bound_port: Optional[int] = None
        self.started = asyncio.Event()
        self._stopped = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def add_proxy_port(self, name: str, port: int) -> None:
        """Register (or replace) the port of the named proxy."""
        self.proxy_ports[name] = port

    def config(self) -> dict:
        """The configuration document served at ``/config.json``."""
        return {"proxy_ports": dict(sorted(self.proxy_ports.items()))}

    def _static_file(self, relative: str) -> web.FileResponse:
        root = self.content_dir.resolve()
        target = (root / relative).resolve()
        if not target.is_relative_to(root) or not target.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(target)

    async def _config(self, request: web.Request) -> web.Response:
        return web.json_response(self.config())

    async def _index(self, request: web.Request) -> web.FileResponse:
        return self._static_file("index.html")

    async def _path(self, request: web.Request) -> web.FileResponse:
        return self._static_file(request.match_info["path"])

    def make_app(self) -> web.Application:
        """Build the HTTP application."""
        app = web.Application()
        app.router.add_get("/config.json", self._config)
        app.router.add_get("/", self._index)
        app.router.add_get("/{path:.+}", self._path)
        return app

    async def run(self) -> None:
        """Serve HTTP requests until :meth:`stop` is called."""
        self._loop = asyncio.get_running_loop()
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, self.host, self.port)
            try:
                await site.start()
            except OSError as exc:
                self.log_error(f"Failed to start HTTP server on port {self.port}: {exc}")
                return
            self.bound_port = runner.addresses[0][1]
            self.log_info(
                f"HTTP server serving directory '{self.content_dir}' on port {self.bound_port}"
            )
            self.started.set()
            await self._stopped.wait()
            self.log_info("HTTP server stopped")
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