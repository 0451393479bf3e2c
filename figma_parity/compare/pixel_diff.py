"""Perceptual per-pixel image difference.

Vectorized port of the pixelmatch algorithm: colour distance is measured in
YIQ space (Kotsarenko & Ramos, "Measuring perceived color difference using
YIQ NTSC transmission color space in mobile applications"), and pixels that
look like anti-aliasing (Vysniauskas, "Anti-aliased Pixel and Intensity Slope
Detector") are excluded from the count.

Images are ``(height, width, 4)`` uint8 RGBA arrays of identical shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from figma_parity.errors import ComparisonError

# Largest possible YIQ delta between two colours.
MAX_YIQ_DELTA = 35215.0

# (dx, dy), x outer and y inner, so ties resolve to the first neighbour found.
NEIGHBOUR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
)

RGB = tuple[int, int, int]


@dataclass
class PixelDiff:
    diff_mask: np.ndarray
    aa_mask: np.ndarray
    delta: np.ndarray
    output: Optional[np.ndarray] = None

    @property
    def diff_count(self) -> int:
        return int(self.diff_mask.sum())

    @property
    def antialiased_count(self) -> int:
        return int(self.aa_mask.sum())


def _blend(channel: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Composite a channel over white."""
    return 255.0 + (channel - 255.0) * alpha


def _blended_rgb(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgba = pixels.astype(np.float64)
    alpha = rgba[..., 3] / 255.0
    return _blend(rgba[..., 0], alpha), _blend(rgba[..., 1], alpha), _blend(rgba[..., 2], alpha)


def _rgb2y(r, g, b):
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _rgb2i(r, g, b):
    return r * 0.59597799 - g * 0.27417610 - b * 0.32180189


def _rgb2q(r, g, b):
    return r * 0.21147017 - g * 0.52261711 + b * 0.31114694


def brightness(pixels: np.ndarray) -> np.ndarray:
    return _rgb2y(*_blended_rgb(pixels))


def color_delta(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Squared YIQ distance per pixel.

    Negative where ``first`` is brighter than ``second``; exactly 0 where the
    RGBA values are identical.
    """
    r1, g1, b1 = _blended_rgb(first)
    r2, g2, b2 = _blended_rgb(second)
    y1 = _rgb2y(r1, g1, b1)
    y2 = _rgb2y(r2, g2, b2)
    y = y1 - y2
    i = _rgb2i(r1, g1, b1) - _rgb2i(r2, g2, b2)
    q = _rgb2q(r1, g1, b1) - _rgb2q(r2, g2, b2)
    delta = 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q
    delta = np.where(y1 > y2, -delta, delta)
    delta[np.all(first == second, axis=-1)] = 0.0
    return delta


def _border_mask(height: int, width: int) -> np.ndarray:
    mask = np.zeros((height, width), dtype=bool)
    mask[0, :] = mask[-1, :] = True
    mask[:, 0] = mask[:, -1] = True
    return mask


def _neighbour_equal(packed: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """True where the pixel equals its (dx, dy) neighbour; False off the edge."""
    h, w = packed.shape
    out = np.zeros((h, w), dtype=bool)
    rows = slice(max(-dy, 0), h - max(dy, 0))
    cols = slice(max(-dx, 0), w - max(dx, 0))
    n_rows = slice(max(dy, 0), h + min(dy, 0))
    n_cols = slice(max(dx, 0), w + min(dx, 0))
    out[rows, cols] = packed[rows, cols] == packed[n_rows, n_cols]
    return out


def has_many_siblings(pixels: np.ndarray) -> np.ndarray:
    """Per pixel: more than two identical neighbours (edges count as one)."""
    h, w = pixels.shape[:2]
    packed = np.ascontiguousarray(pixels, dtype=np.uint8).view(np.uint32)[..., 0]
    counts = _border_mask(h, w).astype(np.int32)
    for dx, dy in NEIGHBOUR_OFFSETS:
        counts += _neighbour_equal(packed, dx, dy)
    return counts > 2


def _antialiased(
    luma: np.ndarray,
    siblings: np.ndarray,
    other_siblings: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
) -> np.ndarray:
    """Anti-aliasing test for the candidate pixels at (ys, xs)."""
    h, w = luma.shape
    center = luma[ys, xs]
    zeroes = ((xs == 0) | (xs == w - 1) | (ys == 0) | (ys == h - 1)).astype(np.int32)
    min_delta = np.zeros(len(ys))
    max_delta = np.zeros(len(ys))
    min_x, min_y = xs.copy(), ys.copy()
    max_x, max_y = xs.copy(), ys.copy()

    for dx, dy in NEIGHBOUR_OFFSETS:
        nx = xs + dx
        ny = ys + dy
        valid = (nx >= 0) & (nx < w) & (ny >= 0) & (ny < h)
        delta = center - luma[np.clip(ny, 0, h - 1), np.clip(nx, 0, w - 1)]
        zeroes += valid & (delta == 0)

        darker = valid & (delta < min_delta)
        min_delta = np.where(darker, delta, min_delta)
        min_x = np.where(darker, nx, min_x)
        min_y = np.where(darker, ny, min_y)

        brighter = valid & (delta > max_delta)
        max_delta = np.where(brighter, delta, max_delta)
        max_x = np.where(brighter, nx, max_x)
        max_y = np.where(brighter, ny, max_y)

    # Three or more equal neighbours, or no gradient on one side: not AA.
    sloped = (zeroes <= 2) & (min_delta != 0) & (max_delta != 0)
    darkest_flat = siblings[min_y, min_x] & other_siblings[min_y, min_x]
    brightest_flat = siblings[max_y, max_x] & other_siblings[max_y, max_x]
    return sloped & (darkest_flat | brightest_flat)


def render_diff(
    base: np.ndarray,
    delta: np.ndarray,
    diff_mask: np.ndarray,
    aa_mask: np.ndarray,
    alpha: float = 0.1,
    diff_color: RGB = (255, 0, 0),
    diff_color_alt: Optional[RGB] = None,
    aa_color: RGB = (255, 255, 0),
) -> np.ndarray:
    """Faded greyscale copy of ``base`` with changed pixels painted in."""
    rgba = base.astype(np.float64)
    luma = _rgb2y(rgba[..., 0], rgba[..., 1], rgba[..., 2])
    grey = _blend(luma, alpha * rgba[..., 3] / 255.0)

    out = np.empty(base.shape[:2] + (4,), dtype=np.uint8)
    out[..., :3] = np.clip(grey, 0, 255).astype(np.uint8)[..., None]
    out[..., 3] = 255
    out[aa_mask, :3] = aa_color
    if diff_color_alt is not None:
        darker = diff_mask & (delta < 0)
        out[diff_mask & ~darker, :3] = diff_color
        out[darker, :3] = diff_color_alt
    else:
        out[diff_mask, :3] = diff_color
    return out


def pixelmatch(
    expected: np.ndarray,
    actual: np.ndarray,
    threshold: float = 0.1,
    include_aa: bool = False,
    alpha: float = 0.1,
    diff_color: RGB = (255, 0, 0),
    diff_color_alt: Optional[RGB] = None,
    aa_color: RGB = (255, 255, 0),
    draw: bool = True,
) -> PixelDiff:
    """Compare two RGBA arrays and return the per-pixel verdicts.

    ``threshold`` is the perceptual sensitivity in [0, 1]; smaller is stricter.
    A pixel differs when its YIQ delta exceeds ``35215 * threshold**2`` and it
    is not classified as anti-aliasing (unless ``include_aa`` is set).
    """
    if expected.shape != actual.shape:
        raise ComparisonError(
            f"Image sizes do not match: {expected.shape[1]}x{expected.shape[0]} "
            f"vs {actual.shape[1]}x{actual.shape[0]}"
        )
    h, w = expected.shape[:2]
    max_delta = MAX_YIQ_DELTA * threshold * threshold

    delta = color_delta(expected, actual)
    candidates = np.abs(delta) > max_delta
    aa_mask = np.zeros((h, w), dtype=bool)

    if not include_aa and candidates.any():
        ys, xs = np.nonzero(candidates)
        expected_siblings = has_many_siblings(expected)
        actual_siblings = has_many_siblings(actual)
        aa = _antialiased(brightness(expected), expected_siblings, actual_siblings, ys, xs) | _antialiased(
            brightness(actual), actual_siblings, expected_siblings, ys, xs
        )
        aa_mask[ys[aa], xs[aa]] = True

    diff_mask = candidates & ~aa_mask
    result = PixelDiff(diff_mask=diff_mask, aa_mask=aa_mask, delta=delta)
    if draw:
        result.output = render_diff(
            expected, delta, diff_mask, aa_mask,
            alpha=alpha, diff_color=diff_color, diff_color_alt=diff_color_alt, aa_color=aa_color,
        )
    return result
