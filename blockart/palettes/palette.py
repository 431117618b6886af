from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, Iterator, Sequence, overload

import numpy as np

from blockart.errors import PaletteEmpty

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Swatch:
    """A named palette color."""

    name: str
    rgb: RGB

    def __post_init__(self) -> None:
        if len(self.rgb) != 3:
            raise ValueError(f"Swatch {self.name!r}: rgb must have 3 channels, got {self.rgb}")
        for channel in self.rgb:
            if not isinstance(channel, (int, np.integer)) or not 0 <= channel <= 255:
                raise ValueError(f"Swatch {self.name!r}: channel {channel!r} out of range")
        object.__setattr__(self, "rgb", tuple(int(c) for c in self.rgb))

    @property
    def hex(self) -> str:
        r, g, b = self.rgb
        return f"#{r:02x}{g:02x}{b:02x}"

    def to_dict(self) -> dict:
        return {"name": self.name, "rgb": list(self.rgb), "hex": self.hex}


class Palette(Sequence[Swatch]):
    """Immutable ordered collection of swatches.

    Order matters: nearest-color ties and exact-match lookups both resolve
    to the earliest swatch.
    """

    def __init__(self, swatches: Iterable[Swatch], slug: str = "", name: str = ""):
        self._swatches: tuple[Swatch, ...] = tuple(swatches)
        self.slug = slug
        self.name = name or slug

    @classmethod
    def from_records(cls, records: Iterable[dict], slug: str = "", name: str = "") -> "Palette":
        """Build a palette from ``{"name": ..., "rgb": [r, g, b]}`` records."""
        return cls(
            (Swatch(name=rec["name"], rgb=tuple(rec["rgb"])) for rec in records),
            slug=slug,
            name=name,
        )

    def __len__(self) -> int:
        return len(self._swatches)

    def __iter__(self) -> Iterator[Swatch]:
        return iter(self._swatches)

    @overload
    def __getitem__(self, index: int) -> Swatch: ...

    @overload
    def __getitem__(self, index: slice) -> "Palette": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Palette(self._swatches[index], slug=self.slug, name=self.name)
        return self._swatches[index]

    def __repr__(self) -> str:
        return f"Palette(slug={self.slug!r}, colors={len(self)})"

    @cached_property
    def rgb_array(self) -> np.ndarray:
        """(P, 3) int64 array of swatch colors in palette order."""
        if not self._swatches:
            raise PaletteEmpty(f"Palette {self.slug or '<unnamed>'} has no colors")
        return np.array([s.rgb for s in self._swatches], dtype=np.int64)

    @cached_property
    def _exact(self) -> dict[RGB, Swatch]:
        lookup: dict[RGB, Swatch] = {}
        for swatch in self._swatches:
            # First occurrence wins for duplicated colors
            lookup.setdefault(swatch.rgb, swatch)
        return lookup

    def find_exact(self, rgb) -> Swatch | None:
        """Return the first swatch whose RGB equals ``rgb`` exactly, or None."""
        return self._exact.get(tuple(int(c) for c in rgb))
