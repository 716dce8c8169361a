"""
Browser Engine
==============

Process-wide Playwright Chromium handle. The browser is launched once (lazily
or at startup) and shared; each render gets its own context and page, which
are closed when the render exits.
"""

from typing import Any, AsyncGenerator, List, Optional
import asyncio
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser, Page, Playwright

from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.exceptions import RenderError
from html2image_mcp.models.schemas import Viewport

logger = get_logger(__name__)


class BrowserEngine:
    """Owns the Playwright driver and a single Chromium browser."""

    def __init__(self, headless: bool = True, launch_args: Optional[List[str]] = None):
        self.headless = headless
        self.launch_args = list(launch_args or [])
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self.logger: Any = logger.bind(component="browser_engine")

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> Browser:
        """Launch the browser if it is not already running."""
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless, args=self.launch_args
                )
            except Exception as e:
                self.logger.error("Failed to launch browser", error=str(e))
                raise RenderError("engine-failure", f"Browser launch failed: {e}") from e

            self.logger.info("Browser launched", headless=self.headless)
            return self._browser

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                finally:
                    self._browser = None

            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                finally:
                    self._playwright = None

        self.logger.info("Browser closed")

    @asynccontextmanager
    async def new_page(self, viewport: Viewport) -> AsyncGenerator[Page, None]:
        """
        Yield a fresh page in its own browser context.

        The context is closed on every exit path, so a page never outlives the
        render that acquired it.
        """
        browser = await self.start()
        context = await browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height}
        )
        try:
            yield await context.new_page()
        finally:
            await context.close()
