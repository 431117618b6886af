from __future__ import annotations

import numpy as np

from blockart.errors import PaletteEmpty
from blockart.palettes.palette import Palette, Swatch


def _squared_distances(colors: np.ndarray, palette_rgb: np.ndarray) -> np.ndarray:
    """Squared Euclidean RGB distance between every color and every swatch.

    colors: (N, 3), palette_rgb: (P, 3). Returns (N, P) int64.
    """
    diffs = colors[:, np.newaxis, :].astype(np.int64) - palette_rgb[np.newaxis, :, :]
    return np.sum(diffs * diffs, axis=-1)


class PaletteIndex:
    """Nearest-color lookup over a fixed palette.

    The search is a linear scan. Squared distance is used in place of the
    Euclidean distance since both give the same ordering. On exact ties the
    earliest swatch in palette order wins.
    """

    def __init__(self, palette: Palette):
        if len(palette) == 0:
            raise PaletteEmpty(f"Palette {palette.slug or '<unnamed>'} has no colors")
        self.palette = palette
        self._rgb = palette.rgb_array

    def __len__(self) -> int:
        return len(self.palette)

    def nearest_color(self, r: int, g: int, b: int) -> Swatch:
        r, g, b = int(r), int(g), int(b)
        best = 0
        best_dist = None
        for i, (pr, pg, pb) in enumerate(s.rgb for s in self.palette):
            dist = (r - pr) ** 2 + (g - pg) ** 2 + (b - pb) ** 2
            if best_dist is None or dist < best_dist:
                best, best_dist = i, dist
        return self.palette[best]

    def nearest_indices(self, colors: np.ndarray) -> np.ndarray:
        """Vectorized nearest_color: palette index for each row of ``colors``.

        Args:
            colors: N x 3 (or N x 4, alpha ignored) integer array.

        Returns:
            (N,) array of palette indices. np.argmin returns the first
            minimum, which keeps the earliest-swatch tie-break.
        """
        colors = np.asarray(colors)
        if colors.ndim != 2 or colors.shape[1] < 3:
            raise ValueError(f"Expected an N x 3 color array, got shape {colors.shape}")
        if colors.shape[0] == 0:
            return np.zeros(0, dtype=np.intp)
        distances = _squared_distances(colors[:, :3], self._rgb)
        return np.argmin(distances, axis=-1)
