"""Tool: compare_component. Capture and compare a component against its Figma export."""

from __future__ import annotations

from figma_parity.tools.runtime import get_orchestrator


async def compare_component(
    componentName: str,
    projectPath: str | None = None,
    port: int | None = None,
    viewport: dict | None = None,
    captureOptions: dict | None = None,
    threshold: float = 0.02,
    generateReport: bool = True,
    skipCapture: bool = False,
    outputPath: str | None = None,
    selector: str | None = None,
) -> dict:
    """Compare a rendered component with results/expected.png pixel by pixel.

    Args:
        componentName: Component name; served at /component/{componentName}
        projectPath: Project root containing src/components
        port: Dev server port (default 83)
        viewport: Browser viewport, e.g. {"width": 1440, "height": 800}
        captureOptions: scale, backgroundColor, embedFonts, compress, fast, padding, width, height
        threshold: Perceptual sensitivity 0-0.1; lower is stricter (default 0.02)
        generateReport: Write comparison-report.json and comparison-report.md
        skipCapture: Reuse the existing results/actual.png instead of capturing
        outputPath: Path of the captured image (default: results/actual.png)
        selector: CSS selector of the component root

    Returns:
        Match percentage, quality tier, difference regions, prioritized
        recommendations and artifact paths.
    """
    return await get_orchestrator().compare_component(
        componentName,
        project_path=projectPath,
        port=port,
        viewport=viewport,
        capture_options=captureOptions,
        threshold=threshold,
        generate_report=generateReport,
        skip_capture=skipCapture,
        output_path=outputPath,
        selector=selector,
    )
