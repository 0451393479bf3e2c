"""Pipeline orchestrator: coordinates capture, compare, analyze and report stages.

This is the only layer that turns exceptions into response dicts; everything
below it raises typed ParityError subclasses.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Optional

import httpx
from pydantic import ValidationError

from figma_parity.analysis.analyzer import RegionAnalyzer
from figma_parity.assets.optimizer import OptimizeSettings, ResizeOptions, optimize_asset
from figma_parity.browser.session import BrowserSessionManager
from figma_parity.capture.dev_server import wait_for_dev_server
from figma_parity.capture.engine import CaptureEngine
from figma_parity.capture.registry import ComponentRegistry
from figma_parity.compare.comparator import PixelComparator
from figma_parity.errors import ComparisonError, InternalError, ParityError, ParityValidationError
from figma_parity.models.capture import BoundingBox, CaptureRequest, CaptureResult
from figma_parity.models.comparison import ComparisonResult
from figma_parity.models.config import CaptureOptions, DevServerConfig, ToolConfig, ViewportConfig
from figma_parity.models.report import ReportArtifacts
from figma_parity.reporter.reporter import Reporter
from figma_parity.utils.timeouts import Deadline

logger = logging.getLogger(__name__)

EXPECTED_NAMES = ("expected.png", "expected.jpg", "expected.jpeg", "expected.webp")
ACTUAL_NAME = "actual.png"
DIFF_NAME = "diff.png"

# camelCase keys accepted in captureOptions, mapped to CaptureOptions fields.
_OPTION_ALIASES = {"backgroundColor": "background_color", "embedFonts": "embed_fonts"}


def failure_response(error: ParityError, component_name: str | None = None) -> dict[str, Any]:
    response = error.to_response()
    if component_name:
        response["componentName"] = component_name
    return response


def internal_failure(error: Exception, operation: str, component_name: str | None = None) -> dict[str, Any]:
    logger.exception("%s crashed: %s", operation, error)
    return failure_response(InternalError(f"Unexpected {type(error).__name__}: {error}"), component_name)


def locate_expected(results_dir: Path) -> Path:
    for name in EXPECTED_NAMES:
        candidate = results_dir / name
        if candidate.exists():
            return candidate
    raise ComparisonError(
        f"Reference image not found in {results_dir}",
        solutions=[
            f"Export the Figma frame at the capture scale to {results_dir / 'expected.png'}",
            "Check the componentName and projectPath arguments",
        ],
        results_dir=str(results_dir),
    )


def scale_text_boxes(boxes: list[BoundingBox], capture: CaptureResult, comparison: ComparisonResult) -> list[BoundingBox]:
    """Map capture-space text boxes into the (possibly resized) comparison space."""
    sx = comparison.dimensions.width / capture.width if capture.width else 1.0
    sy = comparison.dimensions.height / capture.height if capture.height else 1.0
    if sx == 1.0 and sy == 1.0:
        return boxes
    return [
        BoundingBox(
            x=int(b.x * sx), y=int(b.y * sy), width=max(1, round(b.width * sx)), height=max(1, round(b.height * sy))
        )
        for b in boxes
    ]


class Orchestrator:
    """Coordinates the capture/compare pipeline around one shared browser."""

    def __init__(
        self,
        config: ToolConfig,
        session: BrowserSessionManager | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.session = session or BrowserSessionManager(config.browser, config.timeouts)
        self.registry = ComponentRegistry.from_config(config)
        self.engine = CaptureEngine(self.session, config, self.registry, transport=transport)
        self.comparator = PixelComparator(config.comparison)
        self.analyzer = RegionAnalyzer(config.analysis)
        self.reporter = Reporter(config)
        self._transport = transport

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def results_dir(self, component_name: str, project_path: str | None = None) -> Path:
        return self.config.results_dir(component_name, project_path)

    def build_request(
        self,
        component_name: str,
        project_path: str | None = None,
        port: int | None = None,
        viewport: dict | None = None,
        capture_options: dict | None = None,
        output_path: str | None = None,
        selector: str | None = None,
    ) -> CaptureRequest:
        if not component_name:
            raise ParityValidationError("componentName is required", field="componentName")
        options = self.config.capture.model_dump()
        for key, value in (capture_options or {}).items():
            options[_OPTION_ALIASES.get(key, key)] = value
        if output_path is None:
            output_path = str(self.results_dir(component_name, project_path) / ACTUAL_NAME)
        try:
            return CaptureRequest(
                component_name=component_name,
                port=port or self.config.port,
                host=self.config.dev_server.host,
                viewport=ViewportConfig(**{**self.config.viewport.model_dump(), **(viewport or {})}),
                options=CaptureOptions(**options),
                output_path=output_path,
                selector=selector,
            )
        except ValidationError as e:
            raise ParityValidationError(f"Invalid capture arguments: {e}") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def capture(self, request: CaptureRequest, deadline: Deadline | None = None) -> CaptureResult:
        return await self.engine.capture(request, deadline)

    async def capture_component(self, component_name: str, **kwargs: Any) -> dict[str, Any]:
        """Capture one component; returns a success or failure response."""
        try:
            request = self.build_request(component_name, **kwargs)
            result = await self.capture(request)
        except ParityError as e:
            logger.error("Capture of %s failed (%s): %s", component_name, e.error_type, e.message)
            return failure_response(e, component_name)
        except Exception as e:
            return internal_failure(e, f"Capture of {component_name}", component_name)
        return {
            "success": True,
            "componentName": component_name,
            **_capture_summary(result),
        }

    async def compare_component(
        self,
        component_name: str,
        project_path: str | None = None,
        port: int | None = None,
        viewport: dict | None = None,
        capture_options: dict | None = None,
        threshold: float | None = None,
        generate_report: bool = True,
        skip_capture: bool = False,
        output_path: str | None = None,
        selector: str | None = None,
    ) -> dict[str, Any]:
        """Capture (unless skipped), compare against expected, analyze and report."""
        start = time.monotonic()
        capture_result: CaptureResult | None = None
        try:
            threshold = self.comparator.validate_threshold(threshold)
            results_dir = self.results_dir(component_name, project_path)
            expected_path = locate_expected(results_dir)

            if skip_capture:
                actual_path = Path(output_path) if output_path else results_dir / ACTUAL_NAME
                if not actual_path.exists():
                    raise ComparisonError(
                        f"No existing capture at {actual_path}",
                        solutions=["Run without skipCapture to capture the component first"],
                    )
            else:
                request = self.build_request(
                    component_name, project_path, port, viewport, capture_options, output_path, selector
                )
                logger.info("--- Stage 1: Capture %s ---", component_name)
                capture_result = await self.capture(request)
                actual_path = Path(capture_result.path)

            logger.info("--- Stage 2: Compare ---")
            comparison = await asyncio.to_thread(
                self.comparator.compare_files, actual_path, expected_path, results_dir / DIFF_NAME, threshold
            )

            logger.info("--- Stage 3: Analyze ---")
            text_boxes = None
            if capture_result is not None:
                text_boxes = scale_text_boxes(capture_result.text_boxes, capture_result, comparison)
            analysis = await asyncio.to_thread(self.analyzer.analyze, comparison, text_boxes)

            report = self.reporter.build_report(
                component_name,
                comparison,
                analysis,
                ReportArtifacts(expected=str(expected_path), actual=str(actual_path), diff=str(comparison.diff_image_path)),
            )
            reports: dict[str, str] = {}
            if generate_report:
                logger.info("--- Stage 4: Report ---")
                reports = self.reporter.generate_reports(report, results_dir)
        except ParityError as e:
            logger.error("Comparison of %s failed (%s): %s", component_name, e.error_type, e.message)
            return failure_response(e, component_name)
        except Exception as e:
            return internal_failure(e, f"Comparison of {component_name}", component_name)

        logger.info(
            "=== %s: %.2f%% match (%s) in %.1fs ===",
            component_name, comparison.match_percentage, comparison.quality_tier.value, time.monotonic() - start,
        )
        report_data = report.model_dump(mode="json", by_alias=True)
        return {
            "success": True,
            "componentName": component_name,
            "comparison": report_data["comparison"],
            "analysis": {
                "regions": report_data["regions"],
                "totalRegions": report_data["totalRegions"],
                "recommendations": report_data["recommendations"],
            },
            "artifacts": report_data["artifacts"],
            "reports": reports,
            "capture": _capture_summary(capture_result) if capture_result else None,
        }

    async def optimize(
        self,
        input_path: str,
        output_path: str | None = None,
        quality: int = 85,
        format: str = "auto",
        compression_level: int = 9,
        resize: dict | None = None,
        progressive: bool = True,
    ) -> dict[str, Any]:
        try:
            try:
                settings = OptimizeSettings(
                    quality=quality,
                    format=format,
                    compression_level=compression_level,
                    progressive=progressive,
                    resize=ResizeOptions(**resize) if resize else None,
                )
            except ValidationError as e:
                raise ParityValidationError(f"Invalid optimization settings: {e}") from e
            result = await asyncio.to_thread(optimize_asset, input_path, output_path, settings)
        except ParityError as e:
            logger.error("Optimization of %s failed (%s): %s", input_path, e.error_type, e.message)
            return failure_response(e)
        except Exception as e:
            return internal_failure(e, f"Optimization of {input_path}")
        return result.to_response(settings)

    async def check_environment(self, probe_dev_server: bool = True, port: int | None = None) -> dict[str, Any]:
        """Report browser runtime availability and dev server reachability."""
        browser = self.session.check_availability()
        url = f"http://{self.config.dev_server.host}:{port or self.config.port}"
        dev_server: dict[str, Any] = {"url": url}
        if probe_dev_server:
            try:
                await wait_for_dev_server(
                    url, DevServerConfig(retries=0), self.config.timeouts.server_check, transport=self._transport
                )
                dev_server["reachable"] = True
            except ParityError as e:
                dev_server["reachable"] = False
                dev_server["error"] = e.message
        return {
            "success": True,
            "browser": browser,
            "devServer": dev_server,
            "ready": bool(browser["available"] and dev_server.get("reachable", True)),
        }

    async def close(self) -> None:
        await self.session.teardown()

    # ------------------------------------------------------------------
    # Synchronous entry points (CLI)
    # ------------------------------------------------------------------

    def _run(self, coro: Awaitable[dict[str, Any]]) -> dict[str, Any]:
        async def runner() -> dict[str, Any]:
            try:
                return await coro
            finally:
                await self.close()

        return asyncio.run(runner())

    def run_capture(self, component_name: str, **kwargs: Any) -> dict[str, Any]:
        return self._run(self.capture_component(component_name, **kwargs))

    def run_compare(self, component_name: str, **kwargs: Any) -> dict[str, Any]:
        return self._run(self.compare_component(component_name, **kwargs))

    def run_optimize(self, input_path: str, **kwargs: Any) -> dict[str, Any]:
        return self._run(self.optimize(input_path, **kwargs))

    def run_check(self, **kwargs: Any) -> dict[str, Any]:
        return self._run(self.check_environment(**kwargs))


def _capture_summary(result: CaptureResult) -> dict[str, Any]:
    return {
        "path": result.path,
        "url": result.url,
        "selector": result.selector,
        "usedFallbackSelector": result.used_fallback_selector,
        "viewport": result.viewport.model_dump(),
        "options": result.options.model_dump(),
        "method": result.method,
        "width": result.width,
        "height": result.height,
        "textBoxes": len(result.text_boxes),
        "durationMs": result.duration_ms,
    }
