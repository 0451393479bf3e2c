"""Image format detection from file signatures."""

from __future__ import annotations

import logging
from pathlib import Path

from figma_parity.errors import FormatError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

EXTENSIONS = {
    ".png": "png",
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".webp": "webp",
    ".svg": "svg",
}

RASTER_FORMATS = ("png", "jpeg", "webp")

MIME_TYPES = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}


def detect_by_extension(path: str | Path) -> str:
    ext = Path(path).suffix.lower()
    try:
        return EXTENSIONS[ext]
    except KeyError:
        raise FormatError(
            f"Unsupported image format: {ext or '(none)'}. "
            f"Supported formats: {', '.join(sorted(EXTENSIONS))}",
            field="path",
        ) from None


def detect_from_bytes(data: bytes) -> str:
    """Identify an image format from its leading bytes."""
    if data.startswith(PNG_SIGNATURE):
        return "png"
    if data.startswith(JPEG_SIGNATURE):
        return "jpeg"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    head = data[:1024].decode("utf-8", errors="ignore").lower()
    if "<svg" in head or head.lstrip().startswith("<?xml"):
        return "svg"
    raise FormatError("Unable to detect image format from file signature")


def detect_format(path: str | Path) -> str:
    """Detect by extension, then confirm with the file signature.

    The signature wins when the two disagree.
    """
    path = Path(path)
    by_extension = detect_by_extension(path)
    with open(path, "rb") as f:
        head = f.read(1024)
    by_signature = detect_from_bytes(head)
    if by_signature != by_extension:
        logger.warning(
            "%s: extension suggests %s but signature indicates %s", path.name, by_extension, by_signature
        )
    return by_signature


def require_raster(fmt: str) -> str:
    if fmt not in RASTER_FORMATS:
        raise FormatError(
            f"Unsupported raster format: {fmt}. Supported formats: {', '.join(RASTER_FORMATS)}",
            field="format",
        )
    return fmt
