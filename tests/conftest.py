"""Pytest configuration and shared fixtures."""

import base64
import io
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import httpx
import numpy as np
import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from figma_parity.models.config import (
    BrowserConfig,
    DevServerConfig,
    TimeoutConfig,
    ToolConfig,
)


# ============================================================================
# Image Helpers
# ============================================================================


def solid_image(width: int, height: int, color=(255, 255, 255, 255)) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_url(img: Image.Image) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(img)).decode("ascii")


def with_square(img: Image.Image, x: int, y: int, size: int, color=(255, 0, 0, 255)) -> Image.Image:
    out = img.copy()
    out.paste(Image.new("RGBA", (size, size), color), (x, y))
    return out


def rgba_array(width: int, height: int, color=(255, 255, 255, 255)) -> np.ndarray:
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[...] = color
    return arr


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fast_timeouts() -> TimeoutConfig:
    return TimeoutConfig(launch=5, server_check=1, navigation=2, selector=1, capture=2, overall=10)


@pytest.fixture
def tool_config(tmp_path: Path, fast_timeouts: TimeoutConfig) -> ToolConfig:
    """Config rooted in a temp project with no retry delays."""
    return ToolConfig(
        project_path=str(tmp_path),
        port=5173,
        timeouts=fast_timeouts,
        dev_server=DevServerConfig(retries=1, backoff_initial=0, backoff_max=0),
        browser=BrowserConfig(executable_path="/usr/bin/true", max_pages=2),
        settle_ms=0,
    )


@pytest.fixture
def temp_config_file(tool_config: ToolConfig, tmp_path: Path) -> Path:
    config_file = tmp_path / "figma-parity.json"
    tool_config.save(config_file)
    return config_file


@pytest.fixture
def results_dir(tool_config: ToolConfig) -> Path:
    path = tool_config.results_dir("PrimaryButton")
    path.mkdir(parents=True)
    return path


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def server_up() -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200, text="<html></html>"))


@pytest.fixture
def server_down() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """A Playwright page whose snapshot returns a 30x15 PNG."""
    page = AsyncMock(spec=Page)
    page.is_closed = Mock(return_value=False)
    page.goto = AsyncMock(return_value=None)
    page.wait_for_selector = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.set_viewport_size = AsyncMock()
    page.evaluate = AsyncMock(
        return_value={
            "dataUrl": data_url(solid_image(30, 15, (0, 128, 255, 255))),
            "width": 30,
            "height": 15,
            "elementBox": {"x": 8, "y": 8, "width": 10, "height": 5},
            "textBoxes": [{"x": 3, "y": 3, "width": 12, "height": 9}],
        }
    )
    page.context = AsyncMock(spec=BrowserContext)
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.is_connected = Mock(return_value=True)
    browser.version = "120.0"
    return browser


@pytest.fixture
def playwright_factory(mock_browser: AsyncMock) -> Mock:
    """Stand-in for ``async_playwright`` whose ``start()`` yields a mock driver."""
    driver = Mock()
    driver.chromium.launch = AsyncMock(return_value=mock_browser)
    driver.stop = AsyncMock()
    handle = Mock()
    handle.start = AsyncMock(return_value=driver)
    factory = Mock(return_value=handle)
    factory.driver = driver
    return factory
