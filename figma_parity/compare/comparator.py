"""Pixel comparison of a captured component against its reference image."""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from figma_parity.compare.pixel_diff import pixelmatch
from figma_parity.errors import ComparisonError, ThresholdPolicyError
from figma_parity.models.comparison import ComparisonResult, Dimensions
from figma_parity.models.config import ComparisonConfig
from figma_parity.utils.formats import detect_format, detect_from_bytes, require_raster

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]


def describe_source(source: ImageSource) -> dict:
    """Short metadata used in comparison error messages."""
    if isinstance(source, Image.Image):
        return {"source": "<image>", "size": f"{source.width}x{source.height}", "mode": source.mode}
    if isinstance(source, (bytes, bytearray)):
        return {"source": "<bytes>", "bytes": len(source)}
    path = Path(source)
    info: dict = {"source": str(path)}
    if path.exists():
        info["bytes"] = path.stat().st_size
    return info


def load_image(source: ImageSource, label: str) -> Image.Image:
    """Decode ``source`` into an RGBA image.

    Raises FormatError for unsupported formats and ComparisonError for
    missing or undecodable images.
    """
    if isinstance(source, Image.Image):
        return source.convert("RGBA")

    if isinstance(source, (bytes, bytearray)):
        require_raster(detect_from_bytes(bytes(source)))
        stream = io.BytesIO(source)
    else:
        path = Path(source)
        if not path.exists():
            raise ComparisonError(f"{label} image not found: {path}", **{label: str(path)})
        require_raster(detect_format(path))
        stream = open(path, "rb")

    try:
        with stream:
            img = Image.open(stream)
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError) as e:
        raise ComparisonError(f"Failed to decode {label} image: {e}", **{label: describe_source(source)}) from e


def normalize_dimensions(
    expected: Image.Image, actual: Image.Image, max_resize_factor: float = 8.0
) -> tuple[Image.Image, Image.Image]:
    """Bring both images to the common (max width, max height) size.

    The smaller image is scaled with nearest-neighbour so no new colours are
    introduced.
    """
    for label, img in (("expected", expected), ("actual", actual)):
        if img.width == 0 or img.height == 0:
            raise ComparisonError(f"{label} image has zero size ({img.width}x{img.height})")

    target = (max(expected.width, actual.width), max(expected.height, actual.height))

    def fit(img: Image.Image, label: str) -> Image.Image:
        if img.size == target:
            return img
        factor = max(target[0] / img.width, target[1] / img.height)
        if factor > max_resize_factor:
            raise ComparisonError(
                f"{label} image {img.width}x{img.height} would need a {factor:.1f}x resize to reach "
                f"{target[0]}x{target[1]} (limit {max_resize_factor:.1f}x)",
                solutions=[
                    "Check that the capture scale matches the reference export scale",
                    "Re-export the reference image at the component's real size",
                ],
            )
        logger.info(
            "Resizing %s image from %dx%d to %dx%d", label, img.width, img.height, target[0], target[1]
        )
        return img.resize(target, Image.Resampling.NEAREST)

    return fit(expected, "expected"), fit(actual, "actual")


class PixelComparator:
    """Runs perceptual pixel comparisons under the configured policy."""

    def __init__(self, config: ComparisonConfig | None = None):
        self.config = config or ComparisonConfig()

    def validate_threshold(self, threshold: float | None) -> float:
        """Resolve the effective threshold, rejecting values outside policy."""
        if threshold is None:
            return self.config.threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or math.isnan(threshold):
            raise ThresholdPolicyError(f"Threshold must be a number, got {threshold!r}", field="threshold")
        if not 0.0 <= threshold <= 1.0:
            raise ThresholdPolicyError(f"Threshold {threshold} is outside [0, 1]", field="threshold")
        if threshold > self.config.max_threshold:
            raise ThresholdPolicyError(
                f"Threshold {threshold} exceeds the maximum allowed {self.config.max_threshold}",
                field="threshold",
            )
        return float(threshold)

    def compare(
        self,
        actual: ImageSource,
        expected: ImageSource,
        threshold: float | None = None,
    ) -> ComparisonResult:
        threshold = self.validate_threshold(threshold)

        try:
            expected_img = load_image(expected, "expected")
            actual_img = load_image(actual, "actual")
        except ComparisonError as e:
            e.context.update(expected=describe_source(expected), actual=describe_source(actual))
            raise

        expected_img, actual_img = normalize_dimensions(
            expected_img, actual_img, self.config.max_resize_factor
        )
        expected_pixels = np.asarray(expected_img, dtype=np.uint8)
        actual_pixels = np.asarray(actual_img, dtype=np.uint8)

        diff = pixelmatch(
            expected_pixels,
            actual_pixels,
            threshold=threshold,
            include_aa=self.config.include_aa,
            alpha=self.config.alpha,
            diff_color=self.config.diff_color,
            diff_color_alt=self.config.diff_color_alt,
            aa_color=self.config.aa_color,
        )

        width, height = expected_img.size
        result = ComparisonResult(
            diff_pixel_count=diff.diff_count,
            total_pixel_count=width * height,
            dimensions=Dimensions(width=width, height=height),
            threshold=threshold,
            diff_mask=diff.diff_mask,
            expected_pixels=expected_pixels,
            actual_pixels=actual_pixels,
            diff_image=Image.fromarray(diff.output),
            antialiased_pixel_count=diff.antialiased_count,
        )
        logger.info(
            "Compared %dx%d: %d differing pixels, %.2f%% match (%s)",
            width, height, result.diff_pixel_count, result.match_percentage, result.quality_tier.value,
        )
        return result

    def compare_files(
        self,
        actual_path: str | Path,
        expected_path: str | Path,
        diff_path: str | Path,
        threshold: float | None = None,
    ) -> ComparisonResult:
        """Compare two image files and write the diff image to ``diff_path``."""
        result = self.compare(Path(actual_path), Path(expected_path), threshold)
        diff_path = Path(diff_path)
        try:
            diff_path.parent.mkdir(parents=True, exist_ok=True)
            result.diff_image.save(diff_path, format="PNG")
        except OSError as e:
            raise ComparisonError(f"Failed to write diff image {diff_path}: {e}") from e
        result.diff_image_path = diff_path
        logger.debug("Diff image written to %s", diff_path)
        return result
