"""Tests for raster asset optimization."""

from pathlib import Path

import pytest
from PIL import Image

from conftest import solid_image, with_square
from figma_parity.assets.optimizer import (
    OptimizeSettings,
    ResizeOptions,
    optimize_asset,
    resize_image,
    validate_settings,
)
from figma_parity.errors import FormatError, ParityValidationError


@pytest.fixture
def loose_png(tmp_path: Path) -> Path:
    """An uncompressed PNG with plenty of room to shrink."""
    path = tmp_path / "hero.png"
    with_square(solid_image(64, 32), 8, 8, 12, (10, 120, 200, 255)).save(path, format="PNG", compress_level=0)
    return path


class TestValidateSettings:
    @pytest.mark.parametrize(
        "settings, message",
        [
            (OptimizeSettings(quality=0), "Quality must be between 1 and 100"),
            (OptimizeSettings(quality=101), "Quality must be between 1 and 100"),
            (OptimizeSettings(compression_level=10), "PNG compression level must be between 0 and 9"),
            (OptimizeSettings(format="gif"), "Unsupported output format: gif"),
            (OptimizeSettings(resize=ResizeOptions(width=10, fit="stretch")), "Unsupported resize fit"),
            (OptimizeSettings(resize=ResizeOptions()), "width or a height"),
            (OptimizeSettings(resize=ResizeOptions(width=-5)), "Resize width must be positive"),
        ],
    )
    def test_rejected(self, settings, message):
        with pytest.raises(ParityValidationError, match=message):
            validate_settings(settings)

    def test_defaults_valid(self):
        validate_settings(OptimizeSettings())


class TestResize:
    @pytest.mark.parametrize(
        "fit, size",
        [
            ("contain", (40, 40)),
            ("cover", (40, 40)),
            ("fill", (40, 40)),
            ("inside", (40, 20)),
            ("outside", (80, 40)),
        ],
    )
    def test_fits(self, fit, size):
        img = solid_image(100, 50)
        assert resize_image(img, ResizeOptions(width=40, height=40, fit=fit)).size == size

    def test_single_side_keeps_aspect(self):
        img = solid_image(100, 50)
        assert resize_image(img, ResizeOptions(width=50)).size == (50, 25)
        assert resize_image(img, ResizeOptions(height=10, fit="fill")).size == (20, 10)

    def test_contain_pads_transparent(self):
        padded = resize_image(solid_image(100, 50), ResizeOptions(width=40, height=40))
        assert padded.getpixel((0, 0))[3] == 0
        assert padded.getpixel((20, 20))[3] == 255


class TestOptimizeAsset:
    def test_png_in_place(self, loose_png: Path):
        original_size = loose_png.stat().st_size
        result = optimize_asset(loose_png)

        assert result.output_path == str(loose_png.resolve())
        assert result.format == "png"
        assert result.original_size == original_size
        assert result.optimized_size == loose_png.stat().st_size
        assert result.optimized_size < original_size
        assert result.reduction_percentage > 0
        with Image.open(loose_png) as img:
            assert img.size == (64, 32)

    def test_convert_to_webp(self, loose_png: Path):
        result = optimize_asset(loose_png, settings=OptimizeSettings(format="webp", quality=80))
        output = Path(result.output_path)
        assert output.suffix == ".webp"
        assert output.read_bytes()[8:12] == b"WEBP"
        assert loose_png.exists()

    def test_jpeg_flattens_alpha(self, tmp_path: Path):
        source = tmp_path / "icon.png"
        solid_image(10, 10, (0, 0, 0, 0)).save(source)
        target = tmp_path / "out" / "icon.jpg"

        result = optimize_asset(source, target, OptimizeSettings(format="jpeg"))
        assert result.output_path == str(target.resolve())
        with Image.open(target) as img:
            assert img.mode == "RGB"
            r, g, b = img.getpixel((5, 5))
            assert min(r, g, b) > 245

    def test_resize(self, loose_png: Path, tmp_path: Path):
        settings = OptimizeSettings(resize=ResizeOptions(width=32))
        result = optimize_asset(loose_png, tmp_path / "small.png", settings)
        assert result.original_dimensions == (64, 32)
        assert result.optimized_dimensions == (32, 16)

    def test_missing_input(self, tmp_path: Path):
        with pytest.raises(ParityValidationError, match="Input file not found"):
            optimize_asset(tmp_path / "missing.png")

    def test_svg_rejected(self, tmp_path: Path):
        path = tmp_path / "logo.svg"
        path.write_text('<svg xmlns="http://www.w3.org/2000/svg"></svg>')
        with pytest.raises(FormatError):
            optimize_asset(path)

    def test_invalid_settings_leave_file_untouched(self, loose_png: Path):
        before = loose_png.read_bytes()
        with pytest.raises(ParityValidationError):
            optimize_asset(loose_png, settings=OptimizeSettings(quality=0))
        assert loose_png.read_bytes() == before

    def test_response_shape(self, loose_png: Path):
        settings = OptimizeSettings()
        response = optimize_asset(loose_png, settings=settings).to_response(settings)
        assert response["success"] is True
        assert response["optimization"]["originalDimensions"] == {"width": 64, "height": 32}
        assert response["settings"]["compressionLevel"] == 9
        assert response["settings"]["resize"] is None
        assert response["summary"]["percentageSaved"].endswith("%")
        assert response["summary"]["compressionRatio"].endswith("x")

    def test_corrupt_png_raises_format_error(self, tmp_path: Path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"garbage" * 10)
        with pytest.raises(FormatError, match="Failed to decode broken.png") as exc_info:
            optimize_asset(path)
        assert exc_info.value.field == "inputPath"
        assert isinstance(exc_info.value.__cause__, OSError)
