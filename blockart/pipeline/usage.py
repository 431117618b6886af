from __future__ import annotations

from dataclasses import dataclass

from blockart.palettes.palette import RGB, Palette, Swatch


@dataclass(frozen=True)
class UsageEntry:
    swatch: Swatch
    count: int

    def to_dict(self) -> dict:
        return {**self.swatch.to_dict(), "count": self.count}


class UsageAccumulator:
    """Tallies how many blocks resolved to each palette color.

    Keys are RGB tuples. Insertion order is the order in which each color was
    first produced, and it is what breaks ties when counts are equal.
    """

    def __init__(self, palette: Palette):
        self.palette = palette
        self._counts: dict[RGB, int] = {}

    def increment(self, rgb_key: RGB, n: int = 1) -> None:
        key = (int(rgb_key[0]), int(rgb_key[1]), int(rgb_key[2]))
        self._counts[key] = self._counts.get(key, 0) + n

    def merge(self, other: "UsageAccumulator") -> None:
        """Fold a partial tally into this one.

        Colors already seen here keep their position; new colors from
        ``other`` follow in its first-seen order.
        """
        for key, count in other._counts.items():
            self.increment(key, count)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def __len__(self) -> int:
        return len(self._counts)

    def finalize(self) -> tuple[UsageEntry, ...]:
        """Usage entries sorted by count, most used first."""
        entries = []
        for key, count in self._counts.items():
            swatch = self.palette.find_exact(key)
            if swatch is None:
                raise KeyError(f"Color {key} is not in palette {self.palette.slug or '<unnamed>'}")
            entries.append(UsageEntry(swatch=swatch, count=count))
        # sorted() is stable, so equal counts stay in first-seen order
        return tuple(sorted(entries, key=lambda e: e.count, reverse=True))
