"""
Test Configuration
==================

Pytest fixtures shared by unit and integration tests.
Provides test settings, a browser-free fake engine and wired services.
"""

import io
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from html2image_mcp.api.main import create_app
from html2image_mcp.config.settings import Settings
from html2image_mcp.mcp_server.server import Html2ImageServices
from html2image_mcp.models.schemas import ProgressEvent, Viewport


def make_image_bytes(width: int = 4, height: int = 3, image_format: str = "PNG") -> bytes:
    """Encode a small solid image."""
    output = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(output, format=image_format)
    return output.getvalue()


PNG_BYTES = make_image_bytes()
JPEG_BYTES = make_image_bytes(image_format="JPEG")


def make_page() -> MagicMock:
    """Mock Playwright page whose screenshots are real images."""
    page = MagicMock()
    page.set_content = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()

    async def screenshot(type: str = "png", full_page: bool = False) -> bytes:
        return JPEG_BYTES if type == "jpeg" else PNG_BYTES

    page.screenshot = AsyncMock(side_effect=screenshot)
    return page


class FakeEngine:
    """Stands in for BrowserEngine; hands out one mock page."""

    def __init__(self, page: Any = None):
        self.page = page or make_page()
        self.started = False
        self.closed = False
        self.pages_opened = 0
        self.pages_closed = 0
        self.viewports: List[Viewport] = []

    @property
    def is_connected(self) -> bool:
        return self.started and not self.closed

    async def start(self) -> None:
        self.started = True
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    @asynccontextmanager
    async def new_page(self, viewport: Viewport) -> AsyncGenerator[Any, None]:
        self.pages_opened += 1
        self.viewports.append(viewport)
        try:
            yield self.page
        finally:
            self.pages_closed += 1


@pytest.fixture
def images_dir(tmp_path: Path) -> Path:
    """Per-test images directory."""
    return tmp_path / "images"


@pytest.fixture
def test_settings(images_dir: Path) -> Settings:
    """Test settings fixture."""
    return Settings(
        environment="testing",
        images_dir=images_dir,
        transports=["http"],
        sse_heartbeat_interval=0.05,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Browser-free engine."""
    return FakeEngine()


@pytest.fixture
def services(test_settings: Settings, fake_engine: FakeEngine) -> Html2ImageServices:
    """Services wired to the fake engine."""
    return Html2ImageServices(test_settings, engine=fake_engine)


@pytest.fixture
def events(services: Html2ImageServices) -> Generator[List[ProgressEvent], None, None]:
    """Progress events published while the test runs."""
    received: List[ProgressEvent] = []
    with services.notifier.subscription(received.append):
        yield received


@pytest.fixture
def fastapi_client(services: Html2ImageServices) -> Generator[TestClient, None, None]:
    """FastAPI test client."""
    with TestClient(create_app(services)) as client:
        yield client


@pytest.fixture
def render_arguments() -> Dict[str, Any]:
    """Minimal valid render arguments."""
    return {"html": "<h1>Hello</h1>", "format": "png", "width": 400, "height": 300}
