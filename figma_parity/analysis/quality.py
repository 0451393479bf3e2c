"""Quality tier grading."""

from __future__ import annotations

from figma_parity.models.comparison import QualityTier

TIER_LABELS = {
    QualityTier.PERFECT: "Perfect - visually indistinguishable from the design",
    QualityTier.EXCELLENT: "Excellent - minor detail differences",
    QualityTier.GOOD: "Good - noticeable differences in a few areas",
    QualityTier.NEEDS_IMPROVEMENT: "Needs improvement - several visible deviations",
    QualityTier.POOR: "Poor - large parts of the component differ",
    QualityTier.FAILING: "Failing - the component does not resemble the design",
}


def grade(match_percentage: float) -> QualityTier:
    return QualityTier.from_match_percentage(match_percentage)


def meets_gate(tier: QualityTier, gate: QualityTier | str) -> bool:
    """True when ``tier`` is at least as good as the gate tier."""
    return tier.at_least(QualityTier(gate))
