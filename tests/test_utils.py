"""Tests for deadline tracking, format detection and file helpers."""

import asyncio
from pathlib import Path

import pytest

from conftest import png_bytes, solid_image
from figma_parity.errors import FormatError, StageTimeoutError
from figma_parity.utils.files import format_size, write_atomic
from figma_parity.utils.formats import (
    detect_by_extension,
    detect_format,
    detect_from_bytes,
    require_raster,
)
from figma_parity.utils.timeouts import Deadline, run_stage


class TestDeadline:
    def test_budget_capped_by_stage(self):
        deadline = Deadline(60)
        assert deadline.budget("navigation", 10) == 10

    def test_budget_capped_by_remaining(self):
        deadline = Deadline(1)
        assert deadline.budget("navigation", 10) <= 1

    def test_exhausted_budget_raises(self):
        deadline = Deadline(0, "compare Card")
        with pytest.raises(StageTimeoutError) as exc_info:
            deadline.budget("capture", 5)
        assert exc_info.value.stage == "capture"
        assert "compare Card" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        async def work():
            return 42

        assert await Deadline(5).run("work", work(), 1) == 42

    @pytest.mark.asyncio
    async def test_run_times_out(self):
        with pytest.raises(StageTimeoutError) as exc_info:
            await Deadline(5).run("sleep", asyncio.sleep(1), 0.01)
        assert exc_info.value.stage == "sleep"

    @pytest.mark.asyncio
    async def test_run_closes_coroutine_when_exhausted(self):
        ran = []

        async def work():
            ran.append(True)

        with pytest.raises(StageTimeoutError):
            await Deadline(0).run("work", work())
        assert ran == []


class TestRunStage:
    @pytest.mark.asyncio
    async def test_slow_stage_logged(self, caplog):
        async def slow():
            await asyncio.sleep(0.85)
            return "done"

        with caplog.at_level("WARNING"):
            assert await run_stage("slow stage", slow(), 1.0) == "done"
        assert "Slow stage: slow stage" in caplog.text


class TestFormatDetection:
    def test_extensions(self):
        assert detect_by_extension("a.PNG") == "png"
        assert detect_by_extension("a.jpeg") == "jpeg"
        assert detect_by_extension("a.jpg") == "jpeg"
        assert detect_by_extension("a.webp") == "webp"
        assert detect_by_extension("a.svg") == "svg"

    def test_unknown_extension(self):
        with pytest.raises(FormatError, match="Unsupported image format: .gif"):
            detect_by_extension("a.gif")

    def test_signatures(self):
        assert detect_from_bytes(png_bytes(solid_image(2, 2))) == "png"
        assert detect_from_bytes(b"\xff\xd8\xff\xe0rest") == "jpeg"
        assert detect_from_bytes(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "webp"
        assert detect_from_bytes(b'<svg xmlns="http://www.w3.org/2000/svg"></svg>') == "svg"

    def test_unrecognized_signature(self):
        with pytest.raises(FormatError):
            detect_from_bytes(b"GIF89a....")

    def test_signature_wins_over_extension(self, tmp_path: Path, caplog):
        path = tmp_path / "mislabeled.jpg"
        path.write_bytes(png_bytes(solid_image(2, 2)))
        with caplog.at_level("WARNING"):
            assert detect_format(path) == "png"
        assert "signature indicates png" in caplog.text

    def test_require_raster_rejects_svg(self):
        with pytest.raises(FormatError):
            require_raster("svg")
        assert require_raster("webp") == "webp"


class TestFiles:
    def test_write_atomic_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "out.bin"
        write_atomic(b"data", target)
        assert target.read_bytes() == b"data"
        assert [p.name for p in target.parent.iterdir()] == ["out.bin"]

    def test_write_atomic_replaces(self, tmp_path: Path):
        target = tmp_path / "out.bin"
        target.write_bytes(b"old")
        write_atomic(b"new", target)
        assert target.read_bytes() == b"new"

    def test_format_size(self):
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2.00 KB"
        assert format_size(3 * 1024 * 1024) == "3.00 MB"
