"""
Render Orchestrator
===================

Turns a RenderJob into image bytes: resolves the content source, loads it into
a fresh page, applies the wait condition, captures the full page and encodes
the result. Engine failures are translated into RenderError phases.
"""

from typing import Any, Optional
from pathlib import Path
import asyncio
import base64
import io
import math

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError
from PIL import Image

from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.exceptions import RenderError
from html2image_mcp.core.rendering.browser import BrowserEngine
from html2image_mcp.models.schemas import (
    MAX_WAIT_MS,
    OutputFormat,
    RenderJob,
    RenderResult,
    WaitCondition,
)

logger = get_logger(__name__)


def _first_line(error: Exception) -> str:
    """Engine messages carry call logs; keep the summary line only."""
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__


class RenderOrchestrator:
    """Runs render jobs against a shared browser engine."""

    def __init__(
        self,
        engine: BrowserEngine,
        navigation_timeout_ms: int = 30000,
        selector_timeout_ms: int = 10000,
        max_wait_ms: float = MAX_WAIT_MS,
    ):
        self.engine = engine
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms
        self.max_wait_ms = max_wait_ms
        self.logger: Any = logger.bind(component="render_orchestrator")

    async def render(self, job: RenderJob) -> RenderResult:
        """
        Render a job to an image.

        Args:
            job: Render job with exactly one content source

        Returns:
            RenderResult with raw and base64 encoded image bytes

        Raises:
            RenderError: With phase no-content-source, navigation-timeout,
                wait-timeout or engine-failure
        """
        sources = job.content_sources
        if len(sources) != 1:
            detail = (
                "Provide exactly one of html, url or filePath"
                if not sources
                else f"Provide exactly one of html, url or filePath (got {', '.join(sources)})"
            )
            raise RenderError("no-content-source", detail)

        markup = job.html or None
        if job.file_path:
            markup = await self._read_file(job.file_path)

        self.logger.info(
            "Rendering",
            source=sources[0],
            width=job.viewport.width,
            height=job.viewport.height,
            format=job.output_format.value,
        )

        try:
            async with self.engine.new_page(job.viewport) as page:
                await self._load_content(page, markup, job.url)
                await self._apply_wait(page, job.wait_condition)
                image_bytes = await self._capture(page, job.output_format)
        except RenderError as e:
            self.logger.warning("Render failed", phase=e.phase, error=e.detail)
            raise
        except Exception as e:
            self.logger.error("Render engine failure", error=str(e), exc_info=True)
            raise RenderError("engine-failure", _first_line(e)) from e

        result = RenderResult(
            image_bytes=image_bytes,
            encoding=base64.b64encode(image_bytes).decode("ascii"),
            mime_type=job.output_format.mime_type,
        )
        self.logger.info("Render completed", file_size=result.file_size, mime_type=result.mime_type)
        return result

    async def _read_file(self, file_path: str) -> str:
        path = Path(file_path).expanduser().resolve()
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError("engine-failure", f"Cannot read file {path}: {e}") from e

    async def _load_content(self, page: Page, markup: Optional[str], url: Optional[str]) -> None:
        """Load markup or navigate, then wait for network activity to settle."""
        try:
            if markup is not None:
                await page.set_content(
                    markup, wait_until="networkidle", timeout=self.navigation_timeout_ms
                )
            else:
                await page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderError(
                "navigation-timeout",
                f"Content did not settle within {self.navigation_timeout_ms} ms",
            ) from e

    async def _apply_wait(self, page: Page, condition: Optional[WaitCondition]) -> None:
        if condition is None:
            return

        if condition.kind == "duration":
            delay_ms = float(condition.value)
            if not math.isfinite(delay_ms) or delay_ms > self.max_wait_ms:
                raise RenderError(
                    "wait-timeout", f"Wait of {condition.value} ms exceeds {self.max_wait_ms} ms"
                )
            await asyncio.sleep(delay_ms / 1000)
            return

        try:
            await page.wait_for_selector(str(condition.value), timeout=self.selector_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderError(
                "wait-timeout",
                f"Selector '{condition.value}' not found within {self.selector_timeout_ms} ms",
            ) from e

    async def _capture(self, page: Page, output_format: OutputFormat) -> bytes:
        """Capture the full scrollable page in the requested format."""
        if output_format is OutputFormat.JPEG:
            return await page.screenshot(type="jpeg", full_page=True)

        png_bytes = await page.screenshot(type="png", full_page=True)
        if output_format is OutputFormat.WEBP:
            return await asyncio.to_thread(self._to_webp, png_bytes)
        return png_bytes

    def _to_webp(self, png_bytes: bytes) -> bytes:
        """Transcode a PNG capture to WEBP; the browser cannot capture WEBP directly."""
        image = Image.open(io.BytesIO(png_bytes))
        output = io.BytesIO()
        image.save(output, format="WEBP", quality=90)
        return output.getvalue()
