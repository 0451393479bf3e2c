"""Component capture: navigate, locate, serialize in-page, write the raster."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import time
from pathlib import Path
from typing import Optional

import httpx
from PIL import Image
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from figma_parity.browser.session import BrowserSessionManager
from figma_parity.capture.dev_server import wait_for_dev_server
from figma_parity.capture.registry import ComponentRegistry
from figma_parity.capture.snapshot_script import SNAPSHOT_SCRIPT, snapshot_options
from figma_parity.errors import (
    CaptureError,
    FormatError,
    NavigationTimeoutError,
    SelectorNotFoundError,
)
from figma_parity.models.capture import BoundingBox, CaptureRequest, CaptureResult
from figma_parity.models.config import CaptureOptions, ToolConfig
from figma_parity.utils.files import write_atomic
from figma_parity.utils.formats import detect_by_extension, detect_from_bytes, require_raster
from figma_parity.utils.timeouts import Deadline

logger = logging.getLogger(__name__)

# Allowed drift in raster px between the element box and the decoded image.
SIZE_TOLERANCE = 2


def decode_data_url(data_url: str) -> bytes:
    if not isinstance(data_url, str) or not data_url.startswith("data:image/"):
        raise CaptureError("Snapshot did not return an image data URL")
    header, _, payload = data_url.partition(",")
    if not header.endswith(";base64") or not payload:
        raise CaptureError(f"Unsupported data URL encoding: {header[:40]}")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CaptureError(f"Snapshot data URL is not valid base64: {e}") from e


def validate_image_bytes(data: bytes) -> tuple[int, int]:
    """Confirm ``data`` is a decodable PNG and return its size."""
    try:
        fmt = detect_from_bytes(data)
    except FormatError as e:
        raise CaptureError(f"Snapshot output is not an image: {e.message}") from e
    if fmt != "png":
        raise CaptureError(f"Snapshot output is {fmt}, expected png")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.size
    except (OSError, ValueError) as e:
        raise CaptureError(f"Snapshot output could not be decoded: {e}") from e


def encode_for_path(png_bytes: bytes, fmt: str) -> bytes:
    """Re-encode PNG bytes for the requested output format."""
    if fmt == "png":
        return png_bytes
    with Image.open(io.BytesIO(png_bytes)) as img:
        img = img.convert("RGBA")
        if fmt == "jpeg":
            # No alpha in JPEG; flatten onto white.
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.getchannel("A"))
            img = background
        out = io.BytesIO()
        img.save(out, format=fmt.upper(), quality=95)
        return out.getvalue()


def expected_raster_size(box: BoundingBox, options: CaptureOptions) -> tuple[int, int]:
    width = options.width or box.width
    height = options.height or box.height
    pad = 2 * options.padding * options.scale
    return round(width * options.scale + pad), round(height * options.scale + pad)


class CaptureEngine:
    """Captures one component per call using pages from the shared session."""

    def __init__(
        self,
        session: BrowserSessionManager,
        config: ToolConfig | None = None,
        registry: ComponentRegistry | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.config = config or ToolConfig()
        self.registry = registry or ComponentRegistry.from_config(self.config)
        self._transport = transport

    async def capture(self, request: CaptureRequest, deadline: Deadline | None = None) -> CaptureResult:
        deadline = deadline or Deadline(self.config.timeouts.overall, f"capture {request.component_name}")
        start = time.monotonic()
        output_path = Path(request.output_path)
        output_format = require_raster(detect_by_extension(output_path))

        target = self.registry.resolve(request.component_name, request.selector)
        url = f"{request.base_url}{request.route or target.route}"
        logger.info("Capturing %s from %s", request.component_name, url)

        await wait_for_dev_server(
            request.base_url,
            self.config.dev_server,
            self.config.timeouts.server_check,
            deadline,
            transport=self._transport,
        )

        async with self.session.page(request.viewport) as page:
            await self._navigate(page, url, deadline)
            selector, used_fallback = await self._resolve_selector(page, target.selector, url, deadline)
            if self.config.settle_ms:
                await page.wait_for_timeout(self.config.settle_ms)
            payload = await self._snapshot(page, selector, request.options, deadline)

        png_bytes = decode_data_url(payload.get("dataUrl"))
        width, height = validate_image_bytes(png_bytes)
        element_box = BoundingBox(**payload["elementBox"]) if payload.get("elementBox") else None
        text_boxes = [BoundingBox(**tb) for tb in payload.get("textBoxes") or []]

        if element_box is not None:
            self._check_raster_size(element_box, request.options, width, height)

        try:
            write_atomic(encode_for_path(png_bytes, output_format), output_path)
        except OSError as e:
            raise CaptureError(
                f"Could not write capture to {output_path}: {e}",
                solutions=["Check that outputPath points into a writable directory"],
                path=str(output_path),
            ) from e
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info("Captured %s: %dx%d in %dms -> %s", request.component_name, width, height, duration_ms, output_path)

        return CaptureResult(
            path=str(output_path),
            url=url,
            selector=selector,
            used_fallback_selector=used_fallback,
            viewport=request.viewport,
            options=request.options,
            width=width,
            height=height,
            element_box=element_box,
            text_boxes=text_boxes,
            duration_ms=duration_ms,
            image_bytes=png_bytes,
        )

    async def _navigate(self, page: Page, url: str, deadline: Deadline) -> None:
        seconds = deadline.budget("navigation", self.config.timeouts.navigation)
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=seconds * 1000)
        except PlaywrightTimeoutError:
            logger.warning("TIMEOUT: navigation to %s exceeded %.1fs", url, seconds)
            raise NavigationTimeoutError(
                "navigation", seconds, f"Navigation to {url} timed out after {seconds:.1f}s"
            ) from None
        except PlaywrightError as e:
            raise CaptureError(f"Navigation to {url} failed: {e.message}", url=url) from e
        if response is not None and response.status >= 400:
            logger.warning("%s answered HTTP %d", url, response.status)

    async def _resolve_selector(
        self, page: Page, primary: str, url: str, deadline: Deadline
    ) -> tuple[str, bool]:
        """Return the selector to capture and whether the fallback was used."""
        fallback = self.config.fallback_selector
        candidates = [(primary, False)]
        if fallback and fallback != primary:
            candidates.append((fallback, True))

        for selector, is_fallback in candidates:
            seconds = deadline.budget("selector", self.config.timeouts.selector)
            try:
                await page.wait_for_selector(selector, state="attached", timeout=seconds * 1000)
            except PlaywrightTimeoutError:
                logger.debug("Selector %s not found at %s", selector, url)
                continue
            except PlaywrightError as e:
                raise CaptureError(
                    f"Selector '{selector}' could not be evaluated at {url}: {e.message}", selector=selector, url=url
                ) from e
            if is_fallback:
                logger.warning("Selector %s not found, using fallback %s", primary, selector)
            return selector, is_fallback

        raise SelectorNotFoundError(
            f"Neither selector '{primary}' nor fallback '{fallback}' found at {url}",
            url=url,
            selector=primary,
            fallback=fallback,
        )

    async def _snapshot(self, page: Page, selector: str, options: CaptureOptions, deadline: Deadline) -> dict:
        args = {
            "selector": selector,
            "options": snapshot_options(options),
            "moduleUrl": self.config.snapdom_url,
        }
        try:
            payload = await deadline.run("capture", page.evaluate(SNAPSHOT_SCRIPT, args), self.config.timeouts.capture)
        except PlaywrightError as e:
            raise CaptureError(f"snapDOM capture failed: {e.message}", selector=selector) from e
        if not isinstance(payload, dict):
            raise CaptureError("snapDOM capture returned no result", selector=selector)
        return payload

    def _check_raster_size(self, box: BoundingBox, options: CaptureOptions, width: int, height: int) -> None:
        exp_w, exp_h = expected_raster_size(box, options)
        if abs(exp_w - width) > SIZE_TOLERANCE or abs(exp_h - height) > SIZE_TOLERANCE:
            logger.warning(
                "Raster size %dx%d differs from element box %dx%d at scale %.1f (expected %dx%d)",
                width, height, box.width, box.height, options.scale, exp_w, exp_h,
            )
