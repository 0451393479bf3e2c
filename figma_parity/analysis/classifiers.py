"""Region cause heuristics.

Each heuristic decides whether a region looks like a particular kind of
defect. They are tried in order and the first match wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from figma_parity.analysis.regions import RegionStats
from figma_parity.models.capture import BoundingBox
from figma_parity.models.comparison import RegionCause
from figma_parity.models.config import AnalysisConfig


@dataclass
class ClassificationContext:
    config: AnalysisConfig = field(default_factory=AnalysisConfig)
    # Raster-space boxes of rendered text; None when the capture did not report them.
    text_boxes: Optional[list[BoundingBox]] = None


class RegionHeuristic:
    cause: RegionCause = RegionCause.UNKNOWN

    def matches(self, region: RegionStats, context: ClassificationContext) -> bool:
        raise NotImplementedError

    def describe(self, region: RegionStats) -> str:
        box = region.bbox
        return f"{region.pixel_count} differing pixels in {box.width}x{box.height} area at ({box.x}, {box.y})"


class MaterialHeuristic(RegionHeuristic):
    """Dense colour blocks: wrong image asset, icon or fill colour."""

    cause = RegionCause.MATERIAL

    def matches(self, region: RegionStats, context: ClassificationContext) -> bool:
        cfg = context.config
        if region.fill_ratio < cfg.material_min_fill:
            return False
        return region.pixel_count >= cfg.material_min_pixels or region.area_ratio >= cfg.material_min_area_ratio

    def describe(self, region: RegionStats) -> str:
        box = region.bbox
        return (
            f"Solid {box.width}x{box.height} area at ({box.x}, {box.y}) differs in colour: "
            f"expected {region.expected_color}, got {region.actual_color}"
        )


class FontHeuristic(RegionHeuristic):
    """Small sparse speckle on or around text glyphs."""

    cause = RegionCause.FONT

    def matches(self, region: RegionStats, context: ClassificationContext) -> bool:
        cfg = context.config
        if region.pixel_count > cfg.font_max_pixels or region.fill_ratio > cfg.font_max_fill:
            return False
        if context.text_boxes is None:
            return True
        return any(region.bbox.intersects(tb.expanded(cfg.text_box_margin)) for tb in context.text_boxes)

    def describe(self, region: RegionStats) -> str:
        box = region.bbox
        return f"Glyph rendering differs near ({box.x}, {box.y}) across {region.pixel_count} pixels"


class LayoutHeuristic(RegionHeuristic):
    """Outlines and thin strips left behind by shifted or resized boxes."""

    cause = RegionCause.LAYOUT
    min_strip_aspect = 4.0

    def matches(self, region: RegionStats, context: ClassificationContext) -> bool:
        return region.fill_ratio < context.config.material_min_fill or region.aspect_ratio >= self.min_strip_aspect

    def describe(self, region: RegionStats) -> str:
        box = region.bbox
        return (
            f"Edges around ({box.x}, {box.y}) spanning {box.width}x{box.height} moved; "
            f"likely a spacing or size change"
        )


DEFAULT_HEURISTICS: tuple[RegionHeuristic, ...] = (MaterialHeuristic(), FontHeuristic(), LayoutHeuristic())

_FALLBACK = RegionHeuristic()


def classify_region(
    region: RegionStats,
    context: ClassificationContext,
    heuristics: Sequence[RegionHeuristic] = DEFAULT_HEURISTICS,
) -> tuple[RegionCause, str]:
    """Return the cause and description from the first matching heuristic."""
    for heuristic in heuristics:
        if heuristic.matches(region, context):
            return heuristic.cause, heuristic.describe(region)
    return RegionCause.UNKNOWN, _FALLBACK.describe(region)
