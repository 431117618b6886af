from __future__ import annotations

import json
import logging
from pathlib import Path

from blockart.palettes.palette import Palette

logger = logging.getLogger(__name__)

PALETTE_DIR = Path(__file__).parent / "data"

_palette_cache: dict | None = None


def load_palette_file(path: str | Path) -> Palette:
    """Load a single palette resource file."""
    with open(path) as f:
        data = json.load(f)
    return Palette.from_records(data["colors"], slug=data["slug"], name=data.get("name", ""))


def _load_all() -> dict:
    """Load all palette JSON files from the data directory."""
    global _palette_cache
    if _palette_cache is not None:
        return _palette_cache

    palettes = {}
    for path in sorted(PALETTE_DIR.glob("*.json")):
        with open(path) as f:
            data = json.load(f)
        slug = data["slug"]
        palettes[slug] = {
            "data": data,
            "palette": Palette.from_records(data["colors"], slug=slug, name=data.get("name", "")),
        }
        logger.debug("Loaded palette %s (%d colors)", slug, len(data["colors"]))
    _palette_cache = palettes
    return palettes


def get_palette(slug: str) -> Palette | None:
    """Get a single palette by slug. Returns None if not found."""
    entry = _load_all().get(slug)
    if entry is None:
        return None
    return entry["palette"]


def list_palettes() -> list[dict]:
    """Return all palettes in API response format."""
    result = []
    for entry in _load_all().values():
        data = entry["data"]
        palette = entry["palette"]
        result.append({
            "slug": data["slug"],
            "name": palette.name,
            "colors": len(palette),
            "hex": [swatch.hex for swatch in palette],
            "names": [swatch.name for swatch in palette],
            "tags": data.get("tags", []),
        })
    return result
