"""Shared headless browser with a bounded pool of capture pages."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from figma_parity.browser.launcher import (
    bundled_chromium_present,
    create_capture_context,
    find_system_chrome,
    launch_browser,
)
from figma_parity.errors import StageTimeoutError, TimeoutLaunchError, classify_launch_error
from figma_parity.models.config import BrowserConfig, TimeoutConfig, ViewportConfig
from figma_parity.utils.timeouts import run_stage

logger = logging.getLogger(__name__)


def _viewport_dict(viewport: ViewportConfig | dict | None) -> dict:
    if viewport is None:
        viewport = ViewportConfig()
    if isinstance(viewport, ViewportConfig):
        return {"width": viewport.width, "height": viewport.height}
    return {"width": int(viewport["width"]), "height": int(viewport["height"])}


class BrowserSessionManager:
    """Owns one Chromium process and hands out isolated pages.

    The browser is launched lazily on the first ``acquire_page`` call;
    concurrent first callers share the same launch. At most
    ``config.max_pages`` pages are checked out at once.
    """

    def __init__(
        self,
        config: BrowserConfig | None = None,
        timeouts: TimeoutConfig | None = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.config = config or BrowserConfig()
        self.timeouts = timeouts or TimeoutConfig()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_task: Optional[asyncio.Task] = None
        self._semaphore = asyncio.Semaphore(self.config.max_pages)
        self._idle: list[Page] = []
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def _launch(self) -> Browser:
        logger.info("Launching Chromium (headless=%s)", self.config.headless)
        try:
            self._playwright = await self._playwright_factory().start()
            browser = await run_stage(
                "browser launch", launch_browser(self._playwright, self.config), self.timeouts.launch
            )
        except StageTimeoutError as e:
            await self._stop_playwright()
            raise TimeoutLaunchError(f"Failed to launch browser: {e.message}") from e
        except Exception as e:
            await self._stop_playwright()
            error = classify_launch_error(e)
            logger.error("Browser launch failed (%s): %s", error.error_type, e)
            raise error from e
        logger.info("Browser ready (%s)", browser.version)
        self._browser = browser
        return browser

    async def _ensure_browser(self) -> Browser:
        if self._browser is not None and not self._browser.is_connected():
            logger.warning("Browser disconnected, relaunching")
            self._browser = None
            self._launch_task = None
            self._idle.clear()
            await self._stop_playwright()

        if self._browser is not None:
            return self._browser
        if self._launch_task is None:
            self._launch_task = asyncio.ensure_future(self._launch())
        try:
            return await asyncio.shield(self._launch_task)
        except Exception:
            # A failed launch may be retried by the next caller.
            if self._launch_task is not None and self._launch_task.done():
                self._launch_task = None
            raise

    async def acquire_page(self, viewport: ViewportConfig | dict | None = None) -> Page:
        """Check out a page sized to ``viewport``. Pair with ``release_page``."""
        if self._closed:
            raise RuntimeError("BrowserSessionManager has been torn down")
        size = _viewport_dict(viewport)
        await self._semaphore.acquire()
        try:
            browser = await self._ensure_browser()
            while self._idle:
                page = self._idle.pop()
                if page.is_closed():
                    await self._close_page(page)
                    continue
                try:
                    await page.set_viewport_size(size)
                except PlaywrightError as e:
                    logger.debug("Discarding pooled page: %s", e)
                    await self._close_page(page)
                    continue
                logger.debug("Reusing pooled page")
                return page
            context = await create_capture_context(browser, size)
            return await context.new_page()
        except BaseException:
            self._semaphore.release()
            raise

    async def release_page(self, page: Page) -> None:
        """Return ``page`` to the pool. Never raises."""
        try:
            if page.is_closed() or self._closed:
                await self._close_page(page)
                return
            await page.goto("about:blank", timeout=self.timeouts.page_reset * 1000)
            self._idle.append(page)
        except Exception as e:
            logger.warning("Dropping broken page: %s", e)
            await self._close_page(page)
        finally:
            self._semaphore.release()

    @asynccontextmanager
    async def page(self, viewport: ViewportConfig | dict | None = None) -> AsyncIterator[Page]:
        page = await self.acquire_page(viewport)
        try:
            yield page
        finally:
            await self.release_page(page)

    async def _close_page(self, page: Page) -> None:
        try:
            await page.context.close()
        except Exception as e:
            logger.debug("Error closing page context: %s", e)

    async def _stop_playwright(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.debug("Error stopping Playwright: %s", e)
        self._playwright = None

    def check_availability(self) -> dict:
        """Probe for a usable browser runtime without launching anything."""
        bundled = bundled_chromium_present()
        executable = self.config.executable_path
        if executable and not Path(executable).exists():
            logger.warning("Configured browser executable does not exist: %s", executable)
            executable = None
        if not executable and not bundled:
            executable = find_system_chrome()
        return {
            "available": bundled or executable is not None,
            "engineLoaded": self.is_running,
            "runtimeBundled": bundled,
            "executablePath": executable,
        }

    async def teardown(self) -> None:
        """Close pooled pages, the browser and Playwright. Safe to call twice."""
        self._closed = True
        while self._idle:
            await self._close_page(self._idle.pop())
        if self._launch_task is not None and not self._launch_task.done():
            self._launch_task.cancel()
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("Error closing browser: %s", e)
            self._browser = None
            logger.info("Browser closed")
        self._launch_task = None
        await self._stop_playwright()

    async def __aenter__(self) -> "BrowserSessionManager":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.teardown()
