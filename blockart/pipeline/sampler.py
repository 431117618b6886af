from __future__ import annotations

import math

import numpy as np

from blockart.palettes.palette import Palette, Swatch


def sample_at(image: np.ndarray, x: int, y: int, palette: Palette) -> Swatch | None:
    """Exact palette match for the pixel at (x, y).

    Unlike quantization this does not search for the nearest color: a pixel
    whose RGB is not exactly a palette color gives None.
    """
    h, w = image.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        raise IndexError(f"Pixel ({x}, {y}) outside {w}x{h} image")
    return palette.find_exact(image[y, x, :3])


def sample_at_display(
    image: np.ndarray,
    x: float,
    y: float,
    display_width: float,
    display_height: float,
    palette: Palette,
) -> Swatch | None:
    """Sample a point given in the coordinates of a scaled display of the image."""
    if display_width <= 0 or display_height <= 0:
        raise ValueError("Display size must be positive")
    h, w = image.shape[:2]
    px = math.floor(x * (w / display_width))
    py = math.floor(y * (h / display_height))
    return sample_at(image, px, py, palette)
