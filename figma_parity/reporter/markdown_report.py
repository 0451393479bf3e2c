"""Markdown report output."""

from __future__ import annotations

from pathlib import Path

from figma_parity.analysis.quality import TIER_LABELS
from figma_parity.models.comparison import Priority
from figma_parity.models.report import ComparisonReport

_PRIORITY_ICON = {Priority.HIGH: "🔴", Priority.MEDIUM: "🟡", Priority.LOW: "🟢"}


def _escape(text: str) -> str:
    return text.replace("|", "\\|")


def render_markdown_report(report: ComparisonReport) -> str:
    summary = report.comparison
    status = "PASS" if summary.passed else "FAIL"
    lines = [
        f"# Visual Comparison: {report.component_name}",
        "",
        f"_Generated {report.timestamp}_",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Match | {summary.match_percentage:.2f}% |",
        f"| Quality tier | {TIER_LABELS[summary.quality_tier]} |",
        f"| Quality gate | {report.quality_gate.value} ({status}) |",
        f"| Differing pixels | {summary.diff_pixels:,} / {summary.total_pixels:,} |",
        f"| Dimensions | {summary.dimensions.width}x{summary.dimensions.height} |",
        f"| Threshold | {summary.threshold} |",
        "",
    ]

    if report.recommendations:
        lines += ["## Recommendations", ""]
        for rec in report.recommendations:
            lines.append(f"- {_PRIORITY_ICON[rec.priority]} **{rec.priority.value}** [{rec.category}] {rec.description}")
            if rec.suggested_fix:
                lines.append(f"  - Fix: {rec.suggested_fix}")
        lines.append("")

    if report.regions:
        shown = len(report.regions)
        count = f"{shown} of {report.total_regions}" if shown < report.total_regions else str(shown)
        lines += [
            f"## Difference Regions ({count})",
            "",
            "| # | Cause | Severity | Pixels | Box | Description |",
            "|---|---|---|---|---|---|",
        ]
        for region in report.regions:
            box = region.bbox
            lines.append(
                f"| {region.region_id} | {region.cause.value} | {region.severity.value} | "
                f"{region.pixel_count} | {box.width}x{box.height} @ ({box.x}, {box.y}) | "
                f"{_escape(region.description)} |"
            )
        lines.append("")
    else:
        lines += ["No difference regions detected.", ""]

    artifacts = report.artifacts
    lines += ["## Artifacts", ""]
    for label, path in (("Expected", artifacts.expected), ("Actual", artifacts.actual), ("Diff", artifacts.diff)):
        if path:
            lines.append(f"- {label}: `{path}`")
    lines.append("")
    return "\n".join(lines)


def generate_markdown_report(report: ComparisonReport, output_path: Path) -> None:
    """Write a narrative Markdown report."""
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(render_markdown_report(report))
