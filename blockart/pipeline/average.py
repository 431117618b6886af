from __future__ import annotations

import numpy as np

from blockart.errors import InvalidBlockSize


def check_block_size(block_size) -> int:
    """Reject anything that is not an integer >= 1. Never clamps."""
    if isinstance(block_size, bool) or not isinstance(block_size, (int, np.integer)):
        raise InvalidBlockSize(f"block_size must be an integer, got {block_size!r}")
    if block_size < 1:
        raise InvalidBlockSize(f"block_size must be >= 1, got {block_size}")
    return int(block_size)


def check_buffer(buffer: np.ndarray) -> np.ndarray:
    """Validate an H x W x 4 uint8 RGBA buffer."""
    if not isinstance(buffer, np.ndarray):
        raise ValueError(f"Expected a numpy array, got {type(buffer).__name__}")
    if buffer.ndim != 3 or buffer.shape[2] != 4:
        raise ValueError(f"Expected an H x W x 4 RGBA buffer, got shape {buffer.shape}")
    if buffer.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 buffer, got {buffer.dtype}")
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise ValueError(f"Buffer has no pixels: shape {buffer.shape}")
    return buffer


def average(buffer: np.ndarray, x0: int, y0: int, block_size: int) -> tuple[int, int, int, int]:
    """Mean RGBA of the block whose top-left corner is (x0, y0).

    The block is clipped to the buffer bounds, and the channel sums are
    floor-divided by the number of pixels actually covered.

    Args:
        buffer: H x W x 4 uint8 RGBA.
        x0, y0: Block origin, must lie inside the buffer.
        block_size: Nominal block edge length.

    Returns:
        (r, g, b, a) integer averages.
    """
    block_size = check_block_size(block_size)
    h, w = buffer.shape[:2]
    if not (0 <= x0 < w and 0 <= y0 < h):
        raise ValueError(f"Block origin ({x0}, {y0}) outside {w}x{h} buffer")

    region = buffer[y0:y0 + block_size, x0:x0 + block_size]
    count = region.shape[0] * region.shape[1]
    sums = region.reshape(-1, buffer.shape[2]).sum(axis=0, dtype=np.int64)
    r, g, b, a = (int(v) for v in sums // count)
    return r, g, b, a


def average_row(buffer: np.ndarray, y0: int, block_size: int) -> np.ndarray:
    """Mean RGBA for every block of the block row starting at y0.

    Returns:
        ceil(W / block_size) x 4 int64 array, left to right.
    """
    block_size = check_block_size(block_size)
    h, w = buffer.shape[:2]
    if not 0 <= y0 < h:
        raise ValueError(f"Block row {y0} outside buffer of height {h}")

    band = buffer[y0:y0 + block_size]
    starts = np.arange(0, w, block_size)
    column_sums = band.sum(axis=0, dtype=np.int64)  # W x 4
    sums = np.add.reduceat(column_sums, starts, axis=0)

    widths = np.minimum(starts + block_size, w) - starts
    counts = widths * band.shape[0]
    return sums // counts[:, np.newaxis]
