from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass

import numpy as np

from blockart.errors import QuantizationCancelled
from blockart.palettes.palette import Palette
from blockart.pipeline.average import average_row, check_block_size, check_buffer
from blockart.pipeline.index import PaletteIndex
from blockart.pipeline.usage import UsageAccumulator, UsageEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionSummary:
    original_width: int
    original_height: int
    grid_width: int
    grid_height: int
    original_pixels: int
    block_count: int
    block_size: int
    usage: tuple[UsageEntry, ...]

    def to_dict(self) -> dict:
        return {
            "original_width": self.original_width,
            "original_height": self.original_height,
            "grid_width": self.grid_width,
            "grid_height": self.grid_height,
            "original_pixels": self.original_pixels,
            "block_count": self.block_count,
            "block_size": self.block_size,
            "usage": [entry.to_dict() for entry in self.usage],
        }


@dataclass(frozen=True)
class QuantizeResult:
    image: np.ndarray
    usage: tuple[UsageEntry, ...]
    summary: ConversionSummary


def grid_shape(width: int, height: int, block_size: int) -> tuple[int, int]:
    """Number of blocks across and down, counting clipped edge blocks."""
    block_size = check_block_size(block_size)
    return math.ceil(width / block_size), math.ceil(height / block_size)


def summarize(
    width: int, height: int, block_size: int, usage: tuple[UsageEntry, ...]
) -> ConversionSummary:
    grid_w, grid_h = grid_shape(width, height, block_size)
    return ConversionSummary(
        original_width=width,
        original_height=height,
        grid_width=grid_w,
        grid_height=grid_h,
        original_pixels=width * height,
        block_count=grid_w * grid_h,
        block_size=block_size,
        usage=usage,
    )


def _check_cancelled(cancel: threading.Event | None, deadline: float | None) -> None:
    if cancel is not None and cancel.is_set():
        raise QuantizationCancelled("Conversion cancelled")
    if deadline is not None and time.monotonic() > deadline:
        raise QuantizationCancelled("Conversion exceeded its deadline")


def quantize(
    image: np.ndarray,
    palette: Palette,
    block_size: int,
    cancel: threading.Event | None = None,
    deadline: float | None = None,
) -> QuantizeResult:
    """Replace every block of the image with its nearest palette color.

    Blocks are visited in row-major order starting at (0, 0). Each block is
    averaged (floor division over the pixels it actually covers), matched to
    the nearest swatch, counted, and written to the output with the swatch
    RGB and the averaged alpha.

    Args:
        image: H x W x 4 uint8 RGBA. Not modified.
        palette: Palette to draw colors from.
        block_size: Block edge length in pixels, >= 1.
        cancel: Optional event; checked before each block row.
        deadline: Optional time.monotonic() value; checked before each block row.

    Returns:
        QuantizeResult with a fresh output buffer, sorted usage and summary.
    """
    block_size = check_block_size(block_size)
    check_buffer(image)
    index = PaletteIndex(palette)

    h, w = image.shape[:2]
    grid_w, grid_h = grid_shape(w, h, block_size)
    logger.debug(
        "Quantizing %dx%d image into %dx%d blocks against %d colors",
        w, h, grid_w, grid_h, len(palette),
    )
    start = time.monotonic()

    output = np.empty_like(image)
    usage = UsageAccumulator(palette)
    palette_rgb = palette.rgb_array
    starts = np.arange(0, w, block_size)
    widths = np.minimum(starts + block_size, w) - starts

    for y0 in range(0, h, block_size):
        _check_cancelled(cancel, deadline)

        means = average_row(image, y0, block_size)  # grid_w x 4
        nearest = index.nearest_indices(means[:, :3])

        row_colors = np.empty((grid_w, 4), dtype=np.uint8)
        row_colors[:, :3] = palette_rgb[nearest]
        row_colors[:, 3] = means[:, 3]

        for rgb in row_colors[:, :3]:
            usage.increment(tuple(rgb))

        # Stretch block colors across the clipped block widths, then the band height
        output[y0:y0 + block_size] = np.repeat(row_colors, widths, axis=0)[np.newaxis]

    entries = usage.finalize()
    logger.debug(
        "Quantized %d blocks to %d colors in %.1f ms",
        usage.total, len(entries), (time.monotonic() - start) * 1000,
    )
    return QuantizeResult(image=output, usage=entries, summary=summarize(w, h, block_size, entries))
