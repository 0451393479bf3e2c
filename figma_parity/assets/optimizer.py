"""Raster asset optimization with Pillow.

SVG input is rejected up front by ``require_raster``; there is no vector path.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps
from pydantic import BaseModel

from figma_parity.errors import FormatError, ParityValidationError
from figma_parity.utils.files import format_size, write_atomic
from figma_parity.utils.formats import detect_format, require_raster

logger = logging.getLogger(__name__)

RESIZE_FITS = ("contain", "cover", "fill", "inside", "outside")
OUTPUT_FORMATS = ("auto", "png", "jpeg", "webp")
_SUFFIXES = {"png": ".png", "jpeg": ".jpg", "webp": ".webp"}


class ResizeOptions(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None
    fit: str = "contain"


class OptimizeSettings(BaseModel):
    quality: int = 85
    format: str = "auto"
    compression_level: int = 9
    progressive: bool = True
    resize: Optional[ResizeOptions] = None


class OptimizeResult(BaseModel):
    input_path: str
    output_path: str
    format: str
    original_size: int
    optimized_size: int
    original_dimensions: tuple[int, int]
    optimized_dimensions: tuple[int, int]

    @property
    def reduction(self) -> int:
        return self.original_size - self.optimized_size

    @property
    def reduction_percentage(self) -> float:
        if not self.original_size:
            return 0.0
        return round(100.0 * self.reduction / self.original_size, 2)

    def to_response(self, settings: OptimizeSettings) -> dict:
        return {
            "success": True,
            "inputPath": self.input_path,
            "outputPath": self.output_path,
            "optimization": {
                "originalSize": self.original_size,
                "optimizedSize": self.optimized_size,
                "reduction": self.reduction,
                "reductionPercentage": self.reduction_percentage,
                "originalDimensions": dict(zip(("width", "height"), self.original_dimensions)),
                "optimizedDimensions": dict(zip(("width", "height"), self.optimized_dimensions)),
            },
            "settings": {
                "format": self.format,
                "quality": settings.quality,
                "compressionLevel": settings.compression_level,
                "progressive": settings.progressive,
                "resize": settings.resize.model_dump() if settings.resize else None,
            },
            "summary": {
                "sizeSaved": format_size(self.reduction),
                "percentageSaved": f"{self.reduction_percentage}%",
                "compressionRatio": f"{self.original_size / max(1, self.optimized_size):.2f}x",
            },
        }


def validate_settings(settings: OptimizeSettings) -> None:
    if isinstance(settings.quality, bool) or not 1 <= settings.quality <= 100:
        raise ParityValidationError("Quality must be between 1 and 100", field="quality")
    if not 0 <= settings.compression_level <= 9:
        raise ParityValidationError("PNG compression level must be between 0 and 9", field="compressionLevel")
    if settings.format not in OUTPUT_FORMATS:
        raise ParityValidationError(
            f"Unsupported output format: {settings.format}. Use one of {', '.join(OUTPUT_FORMATS)}",
            field="format",
        )
    resize = settings.resize
    if resize is not None:
        if resize.fit not in RESIZE_FITS:
            raise ParityValidationError(
                f"Unsupported resize fit: {resize.fit}. Use one of {', '.join(RESIZE_FITS)}", field="resize.fit"
            )
        if resize.width is None and resize.height is None:
            raise ParityValidationError("Resize needs a width or a height", field="resize")
        for name, value in (("width", resize.width), ("height", resize.height)):
            if value is not None and value <= 0:
                raise ParityValidationError(f"Resize {name} must be positive", field=f"resize.{name}")


def resize_image(img: Image.Image, resize: ResizeOptions) -> Image.Image:
    width, height = resize.width, resize.height
    if width is None or height is None:
        # One side given: keep the aspect ratio whatever the fit.
        ratio = (width / img.width) if width is not None else (height / img.height)
        size = (max(1, round(img.width * ratio)), max(1, round(img.height * ratio)))
        return img.resize(size, Image.Resampling.LANCZOS)

    if resize.fit == "fill":
        return img.resize((width, height), Image.Resampling.LANCZOS)
    if resize.fit == "cover":
        return ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)
    if resize.fit == "inside":
        return ImageOps.contain(img, (width, height), Image.Resampling.LANCZOS)
    if resize.fit == "outside":
        ratio = max(width / img.width, height / img.height)
        return img.resize((round(img.width * ratio), round(img.height * ratio)), Image.Resampling.LANCZOS)
    # contain: letterbox onto a transparent canvas
    return ImageOps.pad(img.convert("RGBA"), (width, height), Image.Resampling.LANCZOS, color=(0, 0, 0, 0))


def encode(img: Image.Image, fmt: str, settings: OptimizeSettings) -> bytes:
    out = io.BytesIO()
    if fmt == "png":
        img.save(out, format="PNG", optimize=True, compress_level=settings.compression_level)
    elif fmt == "jpeg":
        if img.mode in ("RGBA", "LA", "P"):
            rgba = img.convert("RGBA")
            img = Image.new("RGB", rgba.size, (255, 255, 255))
            img.paste(rgba, mask=rgba.getchannel("A"))
        else:
            img = img.convert("RGB")
        img.save(out, format="JPEG", quality=settings.quality, optimize=True, progressive=settings.progressive)
    else:
        img.save(out, format="WEBP", quality=settings.quality, method=6)
    return out.getvalue()


def _open_image(path: Path) -> Image.Image:
    img = None
    try:
        img = Image.open(path)
        img.load()
    except (OSError, ValueError) as e:
        if img is not None:
            img.close()
        raise FormatError(f"Failed to decode {path.name}: {e}", field="inputPath", path=str(path)) from e
    return img


def optimize_asset(
    input_path: str | Path,
    output_path: str | Path | None = None,
    settings: OptimizeSettings | None = None,
) -> OptimizeResult:
    """Re-encode ``input_path`` with tighter settings.

    Without ``output_path`` the input file is replaced. Validation and format
    detection happen before anything is written.
    """
    settings = settings or OptimizeSettings()
    validate_settings(settings)

    input_path = Path(input_path).resolve()
    if not input_path.exists():
        raise ParityValidationError(f"Input file not found: {input_path}", field="inputPath")
    source_format = require_raster(detect_format(input_path))
    output_format = source_format if settings.format == "auto" else settings.format

    if output_path is None:
        output_path = input_path if output_format == source_format else input_path.with_suffix(_SUFFIXES[output_format])
    output_path = Path(output_path).resolve()

    original_size = input_path.stat().st_size
    with _open_image(input_path) as img:
        original_dimensions = img.size
        logger.info(
            "Optimizing %s (%s, %dx%d, %s) -> %s",
            input_path.name, source_format, img.width, img.height, format_size(original_size), output_format,
        )
        if settings.resize is not None:
            img = resize_image(img, settings.resize)
        optimized_dimensions = img.size
        data = encode(img, output_format, settings)

    try:
        write_atomic(data, output_path)
    except OSError as e:
        raise ParityValidationError(
            f"Could not write optimized asset to {output_path}: {e}", field="outputPath", path=str(output_path)
        ) from e
    result = OptimizeResult(
        input_path=str(input_path),
        output_path=str(output_path),
        format=output_format,
        original_size=original_size,
        optimized_size=len(data),
        original_dimensions=original_dimensions,
        optimized_dimensions=optimized_dimensions,
    )
    logger.info(
        "Optimized %s: %s -> %s (%.1f%% saved)",
        output_path.name, format_size(original_size), format_size(len(data)), result.reduction_percentage,
    )
    return result
