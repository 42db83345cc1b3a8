"""Pixel transform pipeline for premultiplied BGRA rasters."""

from .errors import (
    ProcessingError, InvalidDimension, InvalidKernel, CorruptBuffer, ProcessingCancelled
)
from .raster import (
    RasterImage, Kernel, AdjustmentParams, ScaleSpec, MirrorAxis, from_pil, to_pil
)
from .stages import resize, mirror, adjust_color, convolve, sharpen
from .pipeline import ProcessingPipeline, process

__all__ = [
    "ProcessingError", "InvalidDimension", "InvalidKernel", "CorruptBuffer", "ProcessingCancelled",
    "RasterImage", "Kernel", "AdjustmentParams", "ScaleSpec", "MirrorAxis", "from_pil", "to_pil",
    "resize", "mirror", "adjust_color", "convolve", "sharpen",
    "ProcessingPipeline", "process",
]
