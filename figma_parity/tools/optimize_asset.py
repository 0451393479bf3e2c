"""Tool: optimize_asset. Shrink PNG, JPEG and WebP assets."""

from __future__ import annotations

from figma_parity.tools.runtime import get_orchestrator


async def optimize_asset(
    inputPath: str,
    outputPath: str | None = None,
    quality: int = 85,
    format: str = "auto",
    compressionLevel: int = 9,
    resize: dict | None = None,
    progressive: bool = True,
) -> dict:
    """Optimize an image asset with Pillow.

    Raster formats only. SVG files are detected and rejected with a ``format``
    error; vector assets are not optimized by this tool.

    Args:
        inputPath: Image to optimize (PNG, JPEG or WebP)
        outputPath: Output file (default: overwrite the input)
        quality: 1-100 for JPEG/WebP (default 85)
        format: "png", "jpeg", "webp" or "auto" to keep the input format
        compressionLevel: PNG zlib level 0-9 (default 9)
        resize: Optional {"width", "height", "fit"}; fit is contain, cover, fill, inside or outside
        progressive: Progressive JPEG encoding

    Returns:
        Original and optimized sizes, dimensions and the settings used.
    """
    return await get_orchestrator().optimize(
        inputPath,
        output_path=outputPath,
        quality=quality,
        format=format,
        compression_level=compressionLevel,
        resize=resize,
        progressive=progressive,
    )
