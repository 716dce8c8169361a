"""
MCP Server Implementation
=========================

Wires the shared services together and runs the enabled transports (stdio
and HTTP) concurrently in one event loop until shutdown.
"""

from typing import Any, List, Optional
import asyncio
import signal

import uvicorn

from html2image_mcp.config.settings import Settings, get_settings
from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.events import ProgressNotifier
from html2image_mcp.core.exceptions import RenderError
from html2image_mcp.core.rendering.browser import BrowserEngine
from html2image_mcp.core.rendering.orchestrator import RenderOrchestrator
from html2image_mcp.core.storage import ImageStore
from html2image_mcp.mcp_server.dispatcher import ToolDispatcher
from html2image_mcp.mcp_server.handlers import MessageHandler
from html2image_mcp.mcp_server.stdio import StdioChannel
from html2image_mcp.mcp_server.tools import build_catalog

logger = get_logger(__name__)


class Html2ImageServices:
    """
    Process-wide collaborators shared by every transport.

    Created once at startup and handed to each adapter explicitly; `close()`
    releases the browser.
    """

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.notifier = ProgressNotifier()
        self.engine = engine or BrowserEngine(
            headless=self.settings.playwright_headless,
            launch_args=self.settings.browser_args,
        )
        self.store = ImageStore(self.settings.images_dir, self.settings.images_url_prefix)
        self.orchestrator = RenderOrchestrator(
            self.engine,
            navigation_timeout_ms=self.settings.navigation_timeout_ms,
            selector_timeout_ms=self.settings.selector_timeout_ms,
            max_wait_ms=self.settings.max_wait_ms,
        )
        self.catalog = build_catalog(self.orchestrator, self.store)
        self.dispatcher = ToolDispatcher(self.catalog, self.notifier, debug=self.settings.debug)
        self.handler = MessageHandler(
            self.dispatcher,
            server_name=self.settings.app_name,
            server_version=self.settings.app_version,
        )
        self.logger: Any = logger.bind(component="services")

    async def start(self) -> None:
        """Warm up the browser. A failed launch is retried on the first render."""
        try:
            await self.engine.start()
        except RenderError as e:
            self.logger.warning("Browser warm-up failed, will retry on demand", error=e.message)

    async def close(self) -> None:
        try:
            await self.engine.close()
        except Exception as e:
            self.logger.error("Error closing browser", error=str(e))

    async def __aenter__(self) -> "Html2ImageServices":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class Html2ImageMCPServer:
    """Runs the stdio channel and the HTTP server over shared services."""

    def __init__(self, services: Optional[Html2ImageServices] = None):
        self.services = services or Html2ImageServices()
        self.settings = self.services.settings
        self.logger: Any = logger.bind(component="mcp_server")
        self._http: Optional[uvicorn.Server] = None

    def _build_http_server(self) -> uvicorn.Server:
        from html2image_mcp.api.main import create_app

        config = uvicorn.Config(
            create_app(self.services),
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
            access_log=self.settings.debug,
        )
        return uvicorn.Server(config)

    async def run(self) -> None:
        """
        Serve until a shutdown signal arrives.

        With stdio as the only transport the server also stops when stdin
        closes. With HTTP enabled, stdin EOF only ends the stdio channel.
        """
        transports = self.settings.transports
        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, shutdown_event.set)
            except (NotImplementedError, RuntimeError):
                # Not available off the main thread or on some platforms
                pass

        async with self.services:
            shutdown_task = asyncio.create_task(shutdown_event.wait())
            stop_on: List[asyncio.Task] = [shutdown_task]
            http_task: Optional[asyncio.Task] = None
            stdio_task: Optional[asyncio.Task] = None

            if "http" in transports:
                self._http = self._build_http_server()
                http_task = asyncio.create_task(self._http.serve())
                stop_on.append(http_task)
                self.logger.info(
                    "HTTP transport starting", host=self.settings.host, port=self.settings.port
                )

            if "stdio" in transports:
                stdio_task = asyncio.create_task(StdioChannel(self.services.handler).serve_stdio())
                if http_task is None:
                    stop_on.append(stdio_task)

            try:
                await asyncio.wait(stop_on, return_when=asyncio.FIRST_COMPLETED)
            finally:
                self.logger.info("Shutting down")
                shutdown_task.cancel()
                if stdio_task is not None:
                    stdio_task.cancel()
                if self._http is not None:
                    self._http.should_exit = True

                pending = [t for t in (shutdown_task, http_task, stdio_task) if t is not None]
                for result in await asyncio.gather(*pending, return_exceptions=True):
                    if isinstance(result, Exception):
                        self.logger.error("Transport failed", error=str(result))

        self.logger.info("Server stopped")


async def main() -> None:
    """Main entry point for the MCP server."""
    settings = get_settings()
    logger.info(
        "Starting server",
        name=settings.app_name,
        version=settings.app_version,
        transports=settings.transports,
    )
    await Html2ImageMCPServer(Html2ImageServices(settings)).run()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
