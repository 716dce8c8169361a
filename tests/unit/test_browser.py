"""
Unit Tests for Browser Engine
=============================

Tests for browser launch, reuse and shutdown, and for per-render context
cleanup, with the Playwright driver replaced by mocks.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from html2image_mcp.core.exceptions import RenderError
from html2image_mcp.core.rendering.browser import BrowserEngine
from html2image_mcp.models.schemas import Viewport


pytestmark = pytest.mark.unit


@pytest.fixture
def driver():
    """Mocked Playwright driver, browser, context and page."""
    page = MagicMock()

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.is_connected = MagicMock(return_value=True)
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    with patch("html2image_mcp.core.rendering.browser.async_playwright") as factory:
        factory.return_value.start = AsyncMock(return_value=playwright)
        yield SimpleNamespace(
            factory=factory,
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
        )


@pytest.fixture
def engine(driver):
    return BrowserEngine(headless=True, launch_args=["--no-sandbox"])


class TestBrowserLaunch:
    """Test launching and reusing the browser."""

    @pytest.mark.asyncio
    async def test_start_launches_chromium(self, engine, driver):
        browser = await engine.start()

        assert browser is driver.browser
        assert engine.is_connected is True
        driver.playwright.chromium.launch.assert_awaited_once_with(
            headless=True, args=["--no-sandbox"]
        )

    @pytest.mark.asyncio
    async def test_not_connected_before_start(self, engine):
        assert engine.is_connected is False

    @pytest.mark.asyncio
    async def test_concurrent_starts_launch_once(self, engine, driver):
        """Callers racing on a cold engine share a single launch."""
        browsers = await asyncio.gather(*(engine.start() for _ in range(5)))

        assert all(browser is driver.browser for browser in browsers)
        assert driver.playwright.chromium.launch.await_count == 1
        assert driver.factory.return_value.start.await_count == 1

    @pytest.mark.asyncio
    async def test_relaunch_after_disconnect(self, engine, driver):
        """A disconnected browser is replaced; the driver is reused."""
        await engine.start()
        driver.browser.is_connected.return_value = False

        await engine.start()

        assert driver.playwright.chromium.launch.await_count == 2
        assert driver.factory.return_value.start.await_count == 1

    @pytest.mark.asyncio
    async def test_launch_failure(self, engine, driver):
        driver.playwright.chromium.launch.side_effect = RuntimeError("no chromium")

        with pytest.raises(RenderError) as exc_info:
            await engine.start()

        assert exc_info.value.phase == "engine-failure"
        assert "no chromium" in exc_info.value.detail
        assert engine.is_connected is False


class TestBrowserClose:
    """Test shutting the engine down."""

    @pytest.mark.asyncio
    async def test_close_resets_handles(self, engine, driver):
        await engine.start()

        await engine.close()

        driver.browser.close.assert_awaited_once()
        driver.playwright.stop.assert_awaited_once()
        assert engine._browser is None
        assert engine._playwright is None
        assert engine.is_connected is False

    @pytest.mark.asyncio
    async def test_close_resets_handles_when_browser_close_fails(self, engine, driver):
        await engine.start()
        driver.browser.close.side_effect = RuntimeError("already gone")

        with pytest.raises(RuntimeError):
            await engine.close()

        assert engine._browser is None

    @pytest.mark.asyncio
    async def test_close_without_start(self, engine, driver):
        await engine.close()

        driver.browser.close.assert_not_awaited()
        driver.playwright.stop.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_after_close_relaunches(self, engine, driver):
        await engine.start()
        await engine.close()

        await engine.start()

        assert driver.factory.return_value.start.await_count == 2
        assert driver.playwright.chromium.launch.await_count == 2


class TestNewPage:
    """Test per-render contexts."""

    @pytest.mark.asyncio
    async def test_context_uses_viewport(self, engine, driver):
        async with engine.new_page(Viewport(width=320, height=240)) as page:
            assert page is driver.page

        driver.browser.new_context.assert_awaited_once_with(
            viewport={"width": 320, "height": 240}
        )
        driver.context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_closed_when_body_raises(self, engine, driver):
        with pytest.raises(ValueError):
            async with engine.new_page(Viewport()):
                raise ValueError("render failed")

        driver.context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_closed_when_page_creation_fails(self, engine, driver):
        driver.context.new_page.side_effect = RuntimeError("target closed")

        with pytest.raises(RuntimeError, match="target closed"):
            async with engine.new_page(Viewport()):
                pass

        driver.context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_starts_engine_lazily(self, engine, driver):
        async with engine.new_page(Viewport()):
            pass

        driver.playwright.chromium.launch.assert_awaited_once()
        assert engine.is_connected is True
