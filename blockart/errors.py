from __future__ import annotations


class BlockartError(Exception):
    """Base class for conversion failures."""
    pass


class PaletteEmpty(BlockartError):
    """Raised when a color lookup is attempted on a palette with no swatches."""
    pass


class InvalidBlockSize(BlockartError, ValueError):
    """Raised when the block size is not a positive integer."""
    pass


class BufferDecodeFailure(BlockartError):
    """Raised when uploaded bytes cannot be decoded into an RGBA buffer."""
    pass


class QuantizationCancelled(BlockartError):
    """Raised when a conversion is aborted between block rows.

    Any partially written output is discarded.
    """
    pass


class SessionStateError(BlockartError):
    """Raised when a session event arrives in a state that cannot handle it."""
    pass
