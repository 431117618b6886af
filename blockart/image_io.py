from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from blockart.errors import BufferDecodeFailure


def _to_rgba_array(im: Image.Image) -> np.ndarray:
    im = ImageOps.exif_transpose(im)
    return np.array(im.convert("RGBA"), dtype=np.uint8)


def decode_rgba(data: bytes) -> np.ndarray:
    """Decode image bytes into an H x W x 4 uint8 RGBA array."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            return _to_rgba_array(im)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise BufferDecodeFailure(f"Could not decode image: {e}") from e


def load_image_rgba(path: str | Path) -> np.ndarray:
    try:
        with Image.open(path) as im:
            return _to_rgba_array(im)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise BufferDecodeFailure(f"Could not decode {path}: {e}") from e


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGBA array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="PNG")
    return buffer.getvalue()


def save_png_rgba(path: str | Path, image: np.ndarray) -> None:
    Path(path).write_bytes(encode_png(image))
