"""Remediation advice derived from classified regions and the quality tier."""

from __future__ import annotations

from collections import Counter
from typing import NamedTuple

from figma_parity.models.comparison import (
    DifferenceRegion,
    Priority,
    QualityTier,
    Recommendation,
    RegionCause,
)


class Guidance(NamedTuple):
    priority: Priority
    category: str
    description: str
    suggested_fix: str


CAUSE_GUIDANCE: dict[RegionCause, Guidance] = {
    RegionCause.MATERIAL: Guidance(
        Priority.HIGH,
        "material",
        "Image or colour fill differs from the design",
        "Re-export the asset from Figma at the capture scale and replace the file in the component",
    ),
    RegionCause.LAYOUT: Guidance(
        Priority.MEDIUM,
        "layout",
        "Element edges are offset from the design",
        "Adjust padding, margin or flex gap so boxes line up with the design spacing",
    ),
    RegionCause.FONT: Guidance(
        Priority.LOW,
        "font",
        "Text rendering differs from the design",
        "Verify font family, weight, size and line-height against the design",
    ),
    RegionCause.UNKNOWN: Guidance(
        Priority.LOW,
        "review",
        "Unclassified differences",
        "Inspect these areas in diff.png",
    ),
}

TIER_GUIDANCE: dict[QualityTier, Guidance] = {
    QualityTier.FAILING: Guidance(
        Priority.HIGH,
        "dimensions",
        "Overall match is very low",
        "Check the component's base width, height and capture scale before fixing details",
    ),
    QualityTier.POOR: Guidance(
        Priority.HIGH,
        "dimensions",
        "Overall match is low",
        "Check the component's base width, height and overall structure",
    ),
    QualityTier.NEEDS_IMPROVEMENT: Guidance(
        Priority.MEDIUM,
        "general",
        "Several areas deviate from the design",
        "Fix the largest difference regions first, then re-run the comparison",
    ),
    QualityTier.GOOD: Guidance(
        Priority.MEDIUM,
        "general",
        "Match is good but main difference areas remain",
        "Optimize the main difference regions listed above",
    ),
    QualityTier.EXCELLENT: Guidance(
        Priority.LOW,
        "general",
        "Match is excellent",
        "Fine-tune remaining details",
    ),
}


def build_recommendations(regions: list[DifferenceRegion], tier: QualityTier) -> list[Recommendation]:
    """One recommendation per cause present plus tier-level advice, high priority first."""
    counts = Counter(region.cause for region in regions)
    recommendations: list[Recommendation] = []

    for cause, guidance in CAUSE_GUIDANCE.items():
        if counts[cause]:
            recommendations.append(
                Recommendation(
                    priority=guidance.priority,
                    category=guidance.category,
                    description=f"{guidance.description} ({counts[cause]} region{'s' if counts[cause] != 1 else ''})",
                    suggested_fix=guidance.suggested_fix,
                    region_count=counts[cause],
                )
            )

    tier_guidance = TIER_GUIDANCE.get(tier)
    if tier_guidance:
        recommendations.append(
            Recommendation(
                priority=tier_guidance.priority,
                category=tier_guidance.category,
                description=tier_guidance.description,
                suggested_fix=tier_guidance.suggested_fix,
                region_count=len(regions),
            )
        )

    # sorted() is stable, so equal priorities keep insertion order.
    return sorted(recommendations, key=lambda r: r.priority.order)
