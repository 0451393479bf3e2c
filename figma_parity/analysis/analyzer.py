"""Region and quality analysis of a pixel comparison."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from figma_parity.analysis.classifiers import (
    DEFAULT_HEURISTICS,
    ClassificationContext,
    RegionHeuristic,
    classify_region,
)
from figma_parity.analysis.quality import grade
from figma_parity.analysis.recommendations import build_recommendations
from figma_parity.analysis.regions import find_regions, severity_for
from figma_parity.models.capture import BoundingBox
from figma_parity.models.comparison import AnalysisResult, ComparisonResult, DifferenceRegion
from figma_parity.models.config import AnalysisConfig

logger = logging.getLogger(__name__)


class RegionAnalyzer:
    """Turns a diff mask into classified regions, a tier and recommendations."""

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        heuristics: Sequence[RegionHeuristic] = DEFAULT_HEURISTICS,
    ):
        self.config = config or AnalysisConfig()
        self.heuristics = tuple(heuristics)

    def analyze(
        self,
        result: ComparisonResult,
        text_boxes: Optional[list[BoundingBox]] = None,
    ) -> AnalysisResult:
        context = ClassificationContext(config=self.config, text_boxes=text_boxes)
        regions: list[DifferenceRegion] = []

        for stats in find_regions(result, self.config.min_region_pixels):
            cause, description = classify_region(stats, context, self.heuristics)
            regions.append(
                DifferenceRegion(
                    region_id=stats.label,
                    bbox=stats.bbox,
                    pixel_count=stats.pixel_count,
                    fill_ratio=round(stats.fill_ratio, 4),
                    mean_color_delta=round(stats.mean_color_delta, 2),
                    cause=cause,
                    severity=severity_for(stats.pixel_count, stats.mean_color_delta),
                    description=description,
                )
            )

        regions.sort(key=lambda r: (r.severity.order, -r.pixel_count, r.bbox.y, r.bbox.x))
        for index, region in enumerate(regions, start=1):
            region.region_id = index

        tier = grade(result.match_percentage)
        recommendations = build_recommendations(regions, tier)
        logger.info(
            "Analysis: %d regions, tier %s, %d recommendations", len(regions), tier.value, len(recommendations)
        )

        return AnalysisResult(
            regions=regions[: self.config.max_reported_regions],
            total_regions=len(regions),
            tier=tier,
            recommendations=recommendations,
        )


def analyze(
    result: ComparisonResult,
    text_boxes: Optional[list[BoundingBox]] = None,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    return RegionAnalyzer(config).analyze(result, text_boxes)
