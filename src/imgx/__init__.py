"""imgx - premultiplied BGRA raster transforms."""

from .processing import (
    ProcessingError, InvalidDimension, InvalidKernel, CorruptBuffer, ProcessingCancelled,
    RasterImage, Kernel, AdjustmentParams, ScaleSpec, MirrorAxis, from_pil, to_pil,
    resize, mirror, adjust_color, convolve, sharpen,
    ProcessingPipeline, process,
)

__version__ = "0.1.0"

__all__ = [
    "ProcessingError", "InvalidDimension", "InvalidKernel", "CorruptBuffer", "ProcessingCancelled",
    "RasterImage", "Kernel", "AdjustmentParams", "ScaleSpec", "MirrorAxis", "from_pil", "to_pil",
    "resize", "mirror", "adjust_color", "convolve", "sharpen",
    "ProcessingPipeline", "process",
]
