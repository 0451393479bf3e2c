"""Chromium launch helpers and browser runtime discovery."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

from figma_parity.models.config import BrowserConfig

SYSTEM_CHROME_PATHS = {
    "darwin": [
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
    ],
    "linux": [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
        "/snap/bin/chromium",
    ],
    "win32": [
        "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
        "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    ],
}


def playwright_browsers_dir() -> Path:
    """Directory where ``playwright install`` places browser builds."""
    override = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if override and override != "0":
        return Path(override)
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / "ms-playwright"
    if sys.platform == "win32":
        return Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local")) / "ms-playwright"
    return Path(os.environ.get("XDG_CACHE_HOME", home / ".cache")) / "ms-playwright"


def bundled_chromium_present() -> bool:
    browsers_dir = playwright_browsers_dir()
    if not browsers_dir.is_dir():
        return False
    return any(p.name.startswith("chromium") for p in browsers_dir.iterdir())


def find_system_chrome() -> Optional[str]:
    for candidate in SYSTEM_CHROME_PATHS.get(sys.platform, []):
        if Path(candidate).exists():
            return candidate
    return None


async def launch_browser(playwright: Playwright, config: BrowserConfig) -> Browser:
    """Launch headless Chromium with the configured flags."""
    kwargs: dict = {
        "headless": config.headless,
        "args": list(config.launch_args),
    }
    if config.executable_path:
        kwargs["executable_path"] = config.executable_path
    return await playwright.chromium.launch(**kwargs)


async def create_capture_context(browser: Browser, viewport: dict) -> BrowserContext:
    """Create an isolated context for one pooled page.

    Device scale stays at 1; the in-page serializer applies its own scale.
    """
    return await browser.new_context(
        viewport=viewport,
        device_scale_factor=1,
        locale="en-US",
        timezone_id="UTC",
    )
