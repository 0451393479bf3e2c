"""Report generation orchestration."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from figma_parity.analysis.quality import meets_gate
from figma_parity.errors import ComparisonError
from figma_parity.models.comparison import AnalysisResult, ComparisonResult, QualityTier
from figma_parity.models.config import ToolConfig
from figma_parity.models.report import ComparisonReport, ComparisonSummary, ReportArtifacts

from .json_report import generate_json_report
from .markdown_report import generate_markdown_report

logger = logging.getLogger(__name__)

JSON_REPORT_NAME = "comparison-report.json"
MARKDOWN_REPORT_NAME = "comparison-report.md"


class Reporter:
    """Generates comparison reports."""

    def __init__(self, config: ToolConfig):
        self.config = config

    def build_report(
        self,
        component_name: str,
        result: ComparisonResult,
        analysis: AnalysisResult,
        artifacts: ReportArtifacts | None = None,
    ) -> ComparisonReport:
        gate = QualityTier(self.config.quality_gate)
        return ComparisonReport(
            component_name=component_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            comparison=ComparisonSummary(
                match_percentage=round(result.match_percentage, 4),
                diff_pixels=result.diff_pixel_count,
                total_pixels=result.total_pixel_count,
                dimensions=result.dimensions,
                quality_tier=result.quality_tier,
                threshold=result.threshold,
                passed=meets_gate(result.quality_tier, gate),
            ),
            regions=analysis.regions,
            total_regions=analysis.total_regions,
            recommendations=analysis.recommendations,
            artifacts=artifacts or ReportArtifacts(),
            quality_gate=gate,
        )

    def generate_reports(self, report: ComparisonReport, output_dir: Path) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = Path(output_dir)
        generated = {}
        logger.debug("Report output directory: %s", out_dir)

        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            if "json" in self.config.report_formats:
                path = out_dir / JSON_REPORT_NAME
                generate_json_report(report, path)
                generated["json"] = str(path)
                logger.info("JSON report: %s", path)

            if "markdown" in self.config.report_formats:
                path = out_dir / MARKDOWN_REPORT_NAME
                generate_markdown_report(report, path)
                generated["markdown"] = str(path)
                logger.info("Markdown report: %s", path)
        except OSError as e:
            raise ComparisonError(f"Failed to write reports to {out_dir}: {e}", output_dir=str(out_dir)) from e

        return generated
