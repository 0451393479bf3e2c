"""Tool: capture_component. Render a component and save a high-fidelity PNG."""

from __future__ import annotations

from figma_parity.tools.runtime import get_orchestrator


async def capture_component(
    componentName: str,
    projectPath: str | None = None,
    port: int | None = None,
    viewport: dict | None = None,
    captureOptions: dict | None = None,
    outputPath: str | None = None,
    selector: str | None = None,
) -> dict:
    """Capture a UI component from the running dev server with snapDOM.

    Args:
        componentName: Component name; served at /component/{componentName}
        projectPath: Project root containing src/components (default: configured project path)
        port: Dev server port (default 83)
        viewport: Browser viewport, e.g. {"width": 1440, "height": 800}
        captureOptions: scale, backgroundColor, embedFonts, compress, fast, padding, width, height
        outputPath: Where to write the PNG (default: the component's results/actual.png)
        selector: CSS selector of the component root (default: kebab-case class of the name)

    Returns:
        success flag, output path, resolved selector, raster size and timing.
    """
    return await get_orchestrator().capture_component(
        componentName,
        project_path=projectPath,
        port=port,
        viewport=viewport,
        capture_options=captureOptions,
        output_path=outputPath,
        selector=selector,
    )
