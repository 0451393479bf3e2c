"""Clustering of differing pixels into connected regions."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy import ndimage

from figma_parity.models.capture import BoundingBox
from figma_parity.models.comparison import ComparisonResult, Priority

logger = logging.getLogger(__name__)

# 4-connectivity: diagonal neighbours belong to separate regions.
FOUR_CONNECTED = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)


@dataclass
class RegionStats:
    """Measurements of one connected block of differing pixels."""

    label: int
    bbox: BoundingBox
    pixel_count: int
    mean_color_delta: float
    expected_color: str
    actual_color: str
    image_area: int

    @property
    def fill_ratio(self) -> float:
        area = self.bbox.width * self.bbox.height
        return self.pixel_count / area if area else 0.0

    @property
    def area_ratio(self) -> float:
        """Share of the whole image covered by the bounding box."""
        return (self.bbox.width * self.bbox.height) / self.image_area if self.image_area else 0.0

    @property
    def aspect_ratio(self) -> float:
        return max(self.bbox.width, self.bbox.height) / max(1, min(self.bbox.width, self.bbox.height))


def color_distance(expected: np.ndarray, actual: np.ndarray) -> np.ndarray:
    """Euclidean RGB distance per pixel, 0 to ~441."""
    diff = expected[..., :3].astype(np.float64) - actual[..., :3].astype(np.float64)
    return np.sqrt((diff * diff).sum(axis=-1))


def _to_hex(rgb: np.ndarray) -> str:
    return "#{:02x}{:02x}{:02x}".format(*(int(c) for c in rgb))


def _dominant_color(pixels: np.ndarray) -> str:
    colors, counts = np.unique(pixels[:, :3], axis=0, return_counts=True)
    return _to_hex(colors[int(np.argmax(counts))])


def severity_for(pixel_count: int, mean_color_delta: float) -> Priority:
    if pixel_count > 1000 or mean_color_delta > 100:
        return Priority.HIGH
    if pixel_count > 100 or mean_color_delta > 50:
        return Priority.MEDIUM
    return Priority.LOW


def find_regions(result: ComparisonResult, min_pixels: int = 3) -> list[RegionStats]:
    """Label the diff mask and measure every region of at least ``min_pixels``.

    Regions come back in label order (top-to-bottom, left-to-right scan).
    """
    mask = result.diff_mask
    if not mask.any():
        return []

    labels, count = ndimage.label(mask, structure=FOUR_CONNECTED)
    flat = labels.ravel()
    sizes = np.bincount(flat, minlength=count + 1)
    distance = color_distance(result.expected_pixels, result.actual_pixels)
    distance_sums = np.bincount(flat, weights=distance.ravel(), minlength=count + 1)
    image_area = mask.shape[0] * mask.shape[1]

    regions: list[RegionStats] = []
    for index, slices in enumerate(ndimage.find_objects(labels), start=1):
        if slices is None or sizes[index] < min_pixels:
            continue
        rows, cols = slices
        member = labels[slices] == index
        regions.append(
            RegionStats(
                label=index,
                bbox=BoundingBox(
                    x=cols.start,
                    y=rows.start,
                    width=cols.stop - cols.start,
                    height=rows.stop - rows.start,
                ),
                pixel_count=int(sizes[index]),
                mean_color_delta=float(distance_sums[index] / sizes[index]),
                expected_color=_dominant_color(result.expected_pixels[slices][member]),
                actual_color=_dominant_color(result.actual_pixels[slices][member]),
                image_area=image_area,
            )
        )

    logger.debug("Found %d regions (%d below %d px dropped)", len(regions), count - len(regions), min_pixels)
    return regions
