from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

import numpy as np
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from blockart.config import settings
from blockart.errors import BufferDecodeFailure, PaletteEmpty, QuantizationCancelled
from blockart.image_io import decode_rgba, encode_png
from blockart.palettes.loader import get_palette, list_palettes
from blockart.palettes.palette import Palette
from blockart.pipeline.quantize import QuantizeResult, quantize
from blockart.pipeline.sampler import sample_at

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle handler."""
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    palette = get_palette(settings.default_palette)
    if palette is None:
        logger.warning("Default palette %s not found", settings.default_palette)
    else:
        logger.info("Default palette %s loaded (%d colors)", palette.slug, len(palette))

    logger.info("Block art converter ready")

    yield

    logger.info("Shutting down")


app = FastAPI(
    title="Block Art Converter",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Concurrency control
_semaphore = asyncio.Semaphore(settings.max_concurrent_requests)


def _invalid(message: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"error": "invalid_parameter", "message": message},
    )


def _resolve_palette(palette_name: Optional[str]) -> Palette:
    slug = palette_name or settings.default_palette
    palette = get_palette(slug)
    if palette is None:
        raise _invalid(f"Unknown palette: {slug}")
    return palette


async def _read_image(image: UploadFile) -> np.ndarray:
    content_type = image.content_type or ""
    if not content_type.startswith("image/") and "octet-stream" not in content_type:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "invalid_format",
                "message": "Unsupported upload type. Send an image file.",
            },
        )

    image_data = await image.read()
    if len(image_data) > settings.max_image_size:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "image_too_large",
                "message": f"Image exceeds {settings.max_image_size // (1024 * 1024)}MB limit.",
            },
        )

    try:
        return decode_rgba(image_data)
    except BufferDecodeFailure:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "invalid_format",
                "message": "Could not decode image.",
            },
        )


async def _convert(image: UploadFile, block_size: int, palette_name: Optional[str]) -> QuantizeResult:
    if block_size < 1:
        raise _invalid("block_size must be at least 1")
    palette = _resolve_palette(palette_name)
    pixels = await _read_image(image)

    try:
        async with _semaphore:
            deadline = time.monotonic() + settings.conversion_timeout_s
            return await asyncio.get_running_loop().run_in_executor(
                None,
                partial(quantize, pixels, palette, block_size, deadline=deadline),
            )
    except QuantizationCancelled:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "conversion_timeout",
                "message": f"Conversion took longer than {settings.conversion_timeout_s:g}s.",
            },
        )
    except PaletteEmpty as e:
        logger.error("Palette %s is empty", palette.slug)
        raise HTTPException(
            status_code=500,
            detail={"error": "palette_empty", "message": str(e)},
        )
    except Exception as e:
        logger.error("Conversion failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "conversion_failed",
                "message": f"Pipeline error: {str(e)}",
            },
        )


@app.get("/api/health")
async def health():
    return {
        "status": "healthy",
        "version": VERSION,
    }


@app.get("/api/palettes")
async def palettes():
    return {"palettes": list_palettes()}


@app.post("/api/convert")
async def convert(
    image: UploadFile = File(...),
    block_size: int = Form(settings.default_block_size),
    palette_name: Optional[str] = Form(None),
):
    start_time = time.time()
    result = await _convert(image, block_size, palette_name)
    processing_ms = int((time.time() - start_time) * 1000)

    summary = result.summary
    return Response(
        content=encode_png(result.image),
        media_type="image/png",
        headers={
            "X-Blockart-Grid": f"{summary.grid_width}x{summary.grid_height}",
            "X-Blockart-Blocks": str(summary.block_count),
            "X-Blockart-Colors": str(len(summary.usage)),
            "X-Blockart-Processing-Ms": str(processing_ms),
        },
    )


@app.post("/api/convert/summary")
async def convert_summary(
    image: UploadFile = File(...),
    block_size: int = Form(settings.default_block_size),
    palette_name: Optional[str] = Form(None),
):
    result = await _convert(image, block_size, palette_name)
    return result.summary.to_dict()


@app.post("/api/sample")
async def sample(
    image: UploadFile = File(...),
    x: int = Form(...),
    y: int = Form(...),
    palette_name: Optional[str] = Form(None),
):
    palette = _resolve_palette(palette_name)
    pixels = await _read_image(image)
    try:
        swatch = sample_at(pixels, x, y, palette)
    except IndexError as e:
        raise _invalid(str(e))
    return {"swatch": swatch.to_dict() if swatch is not None else None}
