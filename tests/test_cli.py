"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import solid_image, with_square
from figma_parity.cli import cli
from figma_parity.models.config import ToolConfig


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def bundled_browser(monkeypatch):
    monkeypatch.setattr("figma_parity.browser.session.bundled_chromium_present", lambda: True)


class TestInit:
    def test_creates_config(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["init", "--port", "3000"])
            assert result.exit_code == 0
            data = json.loads(Path("figma-parity.json").read_text())
            assert data["port"] == 3000
            assert "expected.png" in result.output

    def test_keeps_existing_config(self, runner, tmp_path: Path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("figma-parity.json").write_text("{}")
            result = runner.invoke(cli, ["init"], input="n\n")
            assert result.exit_code == 0
            assert Path("figma-parity.json").read_text() == "{}"


class TestCheck:
    def test_ready_without_probe(self, runner, temp_config_file, bundled_browser):
        result = runner.invoke(cli, ["check", "--no-probe", "--config", str(temp_config_file)])
        assert result.exit_code == 0
        assert "not probed" in result.output

    def test_missing_browser(self, runner, temp_config_file, monkeypatch):
        monkeypatch.setattr("figma_parity.browser.session.bundled_chromium_present", lambda: False)
        monkeypatch.setattr("figma_parity.browser.session.find_system_chrome", lambda: None)
        config = ToolConfig.load(temp_config_file)
        config.browser.executable_path = "/nonexistent/chrome"
        config.save(temp_config_file)

        result = runner.invoke(cli, ["check", "--no-probe", "--config", str(temp_config_file)])
        assert result.exit_code == 1
        assert "playwright install chromium" in result.output

    def test_missing_config_file(self, runner, tmp_path: Path):
        result = runner.invoke(cli, ["check", "--config", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "figma-parity init" in result.output


class TestCompare:
    def _write_images(self, results_dir: Path, differ: bool) -> None:
        expected = solid_image(100, 100)
        expected.save(results_dir / "expected.png")
        actual = with_square(expected, 40, 40, 10) if differ else expected
        actual.save(results_dir / "actual.png")

    def test_gate_passes(self, runner, temp_config_file, results_dir):
        self._write_images(results_dir, differ=False)
        result = runner.invoke(
            cli, ["compare", "PrimaryButton", "--skip-capture", "--config", str(temp_config_file)]
        )
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output
        assert (results_dir / "comparison-report.md").exists()

    def test_gate_fails(self, runner, temp_config_file, results_dir):
        self._write_images(results_dir, differ=True)
        result = runner.invoke(
            cli, ["compare", "PrimaryButton", "--skip-capture", "--no-report", "--config", str(temp_config_file)]
        )
        assert result.exit_code == 2
        assert "FAIL" in result.output
        assert not (results_dir / "comparison-report.json").exists()

    def test_threshold_policy(self, runner, temp_config_file, results_dir):
        self._write_images(results_dir, differ=True)
        result = runner.invoke(
            cli,
            ["compare", "PrimaryButton", "--skip-capture", "-t", "0.5", "--config", str(temp_config_file)],
        )
        assert result.exit_code == 1
        assert "threshold_policy" in result.output


class TestOptimize:
    def test_optimize(self, runner, temp_config_file, tmp_path: Path):
        path = tmp_path / "asset.png"
        solid_image(40, 40).save(path, compress_level=0)
        result = runner.invoke(cli, ["optimize", str(path), "--config", str(temp_config_file)])
        assert result.exit_code == 0, result.output
        assert "Optimized" in result.output

    def test_invalid_quality(self, runner, temp_config_file, tmp_path: Path):
        path = tmp_path / "asset.png"
        solid_image(4, 4).save(path)
        result = runner.invoke(cli, ["optimize", str(path), "-q", "0", "--config", str(temp_config_file)])
        assert result.exit_code == 1
        assert "Quality must be between 1 and 100" in result.output

    def test_invalid_resize_json(self, runner, temp_config_file, tmp_path: Path):
        path = tmp_path / "asset.png"
        solid_image(4, 4).save(path)
        result = runner.invoke(
            cli, ["optimize", str(path), "--resize", "{width", "--config", str(temp_config_file)]
        )
        assert result.exit_code == 2
