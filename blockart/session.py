from __future__ import annotations

import enum
import logging
import threading

import numpy as np

from blockart.errors import SessionStateError
from blockart.palettes.palette import Palette, Swatch
from blockart.pipeline.average import check_buffer
from blockart.pipeline.quantize import ConversionSummary, QuantizeResult, quantize
from blockart.pipeline.sampler import sample_at

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    CONVERTED = "converted"


class ConverterSession:
    """Front-end conversion flow driven by discrete events.

    EMPTY --select--> LOADED --convert--> CONVERTED
    Selecting a new image from any state drops the previous result, and
    reset returns to EMPTY.
    """

    def __init__(self, palette: Palette):
        self.palette = palette
        self.state = SessionState.EMPTY
        self.image: np.ndarray | None = None
        self.image_name: str | None = None
        self.result: QuantizeResult | None = None

    def select(self, image: np.ndarray, name: str | None = None) -> None:
        check_buffer(image)
        self.image = image
        self.image_name = name
        self.result = None
        self.state = SessionState.LOADED
        logger.debug("Selected %s (%dx%d)", name, image.shape[1], image.shape[0])

    def convert(self, block_size: int, cancel: threading.Event | None = None) -> QuantizeResult:
        if self.state is SessionState.EMPTY:
            raise SessionStateError("No image selected")
        result = quantize(self.image, self.palette, block_size, cancel=cancel)
        self.result = result
        self.state = SessionState.CONVERTED
        return result

    @property
    def summary(self) -> ConversionSummary | None:
        return self.result.summary if self.result is not None else None

    def sample(self, x: int, y: int) -> Swatch | None:
        if self.state is not SessionState.CONVERTED:
            raise SessionStateError("Nothing converted yet")
        return sample_at(self.result.image, x, y, self.palette)

    def reset(self) -> None:
        self.image = None
        self.image_name = None
        self.result = None
        self.state = SessionState.EMPTY
