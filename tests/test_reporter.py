"""Tests for JSON and Markdown report generation."""

import json
from pathlib import Path

import pytest

from conftest import solid_image, with_square
from figma_parity.analysis.analyzer import analyze
from figma_parity.compare.comparator import PixelComparator
from figma_parity.errors import ComparisonError
from figma_parity.models.config import ToolConfig
from figma_parity.models.report import ReportArtifacts
from figma_parity.reporter.json_report import generate_json_report
from figma_parity.reporter.markdown_report import render_markdown_report
from figma_parity.reporter.reporter import JSON_REPORT_NAME, MARKDOWN_REPORT_NAME, Reporter


def _report(config: ToolConfig, differ: bool = True):
    expected = solid_image(100, 100)
    actual = with_square(expected, 40, 40, 10) if differ else expected.copy()
    result = PixelComparator().compare(actual, expected)
    analysis = analyze(result)
    artifacts = ReportArtifacts(expected="results/expected.png", actual="results/actual.png", diff="results/diff.png")
    return Reporter(config).build_report("PrimaryButton", result, analysis, artifacts)


class TestBuildReport:
    """Tests for Reporter.build_report."""

    def test_gate_failed_by_default(self):
        report = _report(ToolConfig())
        assert report.comparison.passed is False
        assert report.comparison.quality_tier.value == "excellent"
        assert report.total_regions == 1

    def test_looser_gate_passes(self):
        report = _report(ToolConfig(quality_gate="excellent"))
        assert report.comparison.passed is True
        assert report.quality_gate.value == "excellent"

    def test_timestamp_is_utc(self):
        assert _report(ToolConfig()).timestamp.endswith("+00:00")


class TestJsonReport:
    """Tests for generate_json_report."""

    def test_camel_case_keys(self, tmp_path: Path):
        output_file = tmp_path / "report.json"
        generate_json_report(_report(ToolConfig()), output_file)

        with open(output_file) as f:
            data = json.load(f)

        assert data["componentName"] == "PrimaryButton"
        assert data["comparison"]["matchPercentage"] == pytest.approx(99.0)
        assert data["comparison"]["qualityTier"] == "excellent"
        assert data["totalRegions"] == 1
        region = data["regions"][0]
        assert region["regionId"] == 1
        assert region["pixelCount"] == 100
        assert region["bbox"] == {"x": 40, "y": 40, "width": 10, "height": 10}
        assert data["recommendations"][0]["suggestedFix"]
        assert data["artifacts"]["diff"] == "results/diff.png"


class TestMarkdownReport:
    """Tests for render_markdown_report."""

    def test_summary_and_regions(self):
        text = render_markdown_report(_report(ToolConfig()))
        assert text.startswith("# Visual Comparison: PrimaryButton")
        assert "| Match | 99.00% |" in text
        assert "| Quality gate | perfect (FAIL) |" in text
        assert "| Differing pixels | 100 / 10,000 |" in text
        assert "## Difference Regions (1)" in text
        assert "| 1 | material | high | 100 | 10x10 @ (40, 40) |" in text
        assert "## Recommendations" in text
        assert "- Expected: `results/expected.png`" in text

    def test_no_regions(self):
        text = render_markdown_report(_report(ToolConfig(), differ=False))
        assert "No difference regions detected." in text
        assert "## Recommendations" not in text
        assert "perfect (PASS)" in text

    def test_truncated_region_count(self):
        report = _report(ToolConfig())
        report.total_regions = 3
        assert "## Difference Regions (1 of 3)" in render_markdown_report(report)


class TestGenerateReports:
    """Tests for Reporter.generate_reports."""

    def test_all_formats(self, tmp_path: Path):
        config = ToolConfig()
        paths = Reporter(config).generate_reports(_report(config), tmp_path / "out")
        assert paths == {
            "json": str(tmp_path / "out" / JSON_REPORT_NAME),
            "markdown": str(tmp_path / "out" / MARKDOWN_REPORT_NAME),
        }
        assert Path(paths["markdown"]).read_text(encoding="utf-8").startswith("# Visual Comparison")

    def test_json_only(self, tmp_path: Path):
        config = ToolConfig(report_formats=["json"])
        paths = Reporter(config).generate_reports(_report(config), tmp_path)
        assert list(paths) == ["json"]
        assert not (tmp_path / MARKDOWN_REPORT_NAME).exists()

    def test_unwritable_output_dir(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        config = ToolConfig()
        with pytest.raises(ComparisonError, match="Failed to write reports"):
            Reporter(config).generate_reports(_report(config), blocker / "out")
