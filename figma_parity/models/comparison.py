"""Comparison and analysis data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from figma_parity.models.capture import BoundingBox


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Dimensions(BaseModel):
    width: int
    height: int


class QualityTier(str, Enum):
    PERFECT = "perfect"
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"
    FAILING = "failing"

    @property
    def floor(self) -> float:
        return TIER_BREAKPOINTS.get(self, 0.0)

    @property
    def rank(self) -> int:
        """0 for the best tier, increasing as quality drops."""
        return list(QualityTier).index(self)

    @classmethod
    def from_match_percentage(cls, match_percentage: float) -> "QualityTier":
        for tier, floor in TIER_BREAKPOINTS.items():
            if match_percentage >= floor:
                return tier
        return cls.FAILING

    def at_least(self, other: "QualityTier") -> bool:
        return self.rank <= other.rank


TIER_BREAKPOINTS: dict[QualityTier, float] = {
    QualityTier.PERFECT: 98.0,
    QualityTier.EXCELLENT: 95.0,
    QualityTier.GOOD: 90.0,
    QualityTier.NEEDS_IMPROVEMENT: 80.0,
    QualityTier.POOR: 60.0,
}


class RegionCause(str, Enum):
    MATERIAL = "material"
    LAYOUT = "layout"
    FONT = "font"
    UNKNOWN = "unknown"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def order(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class DifferenceRegion(CamelModel):
    region_id: int
    bbox: BoundingBox
    pixel_count: int
    fill_ratio: float = 0.0
    mean_color_delta: float = 0.0
    cause: RegionCause = RegionCause.UNKNOWN
    severity: Priority = Priority.LOW
    description: str = ""


class Recommendation(CamelModel):
    priority: Priority
    category: str
    description: str
    suggested_fix: str = ""
    region_count: int = 0


class AnalysisResult(CamelModel):
    regions: list[DifferenceRegion] = Field(default_factory=list)
    # Before truncation to the reported maximum.
    total_regions: int = 0
    tier: QualityTier
    recommendations: list[Recommendation] = Field(default_factory=list)


@dataclass
class ComparisonResult:
    """Outcome of one pixel comparison.

    ``match_percentage`` and ``quality_tier`` are derived on every access
    from the pixel counts.
    """

    diff_pixel_count: int
    total_pixel_count: int
    dimensions: Dimensions
    threshold: float
    diff_mask: np.ndarray = field(repr=False)
    expected_pixels: np.ndarray = field(repr=False)
    actual_pixels: np.ndarray = field(repr=False)
    diff_image: Optional[Image.Image] = field(default=None, repr=False)
    diff_image_path: Optional[Path] = None
    antialiased_pixel_count: int = 0

    @property
    def match_percentage(self) -> float:
        if self.total_pixel_count == 0:
            return 100.0
        return 100.0 * (1.0 - self.diff_pixel_count / self.total_pixel_count)

    @property
    def quality_tier(self) -> QualityTier:
        return QualityTier.from_match_percentage(self.match_percentage)

    def summary(self) -> dict:
        return {
            "matchPercentage": round(self.match_percentage, 4),
            "diffPixels": self.diff_pixel_count,
            "totalPixels": self.total_pixel_count,
            "dimensions": self.dimensions.model_dump(),
            "qualityTier": self.quality_tier.value,
            "threshold": self.threshold,
        }
