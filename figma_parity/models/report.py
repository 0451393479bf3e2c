"""Report data structures written by the report emitter."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from figma_parity.models.comparison import (
    CamelModel,
    DifferenceRegion,
    Dimensions,
    QualityTier,
    Recommendation,
)


class ComparisonSummary(CamelModel):
    match_percentage: float
    diff_pixels: int
    total_pixels: int
    dimensions: Dimensions
    quality_tier: QualityTier
    threshold: float
    passed: bool


class ReportArtifacts(CamelModel):
    expected: Optional[str] = None
    actual: Optional[str] = None
    diff: Optional[str] = None


class ComparisonReport(CamelModel):
    component_name: str
    timestamp: str
    comparison: ComparisonSummary
    regions: list[DifferenceRegion] = Field(default_factory=list)
    total_regions: int = 0
    recommendations: list[Recommendation] = Field(default_factory=list)
    artifacts: ReportArtifacts = Field(default_factory=ReportArtifacts)
    quality_gate: QualityTier = QualityTier.PERFECT
