"""Processing stages for the transform pipeline."""

from .resize import ResizeStage, resize
from .mirror import MirrorStage, mirror
from .adjust import AdjustmentStage, adjust_color
from .convolve import SharpenStage, convolve, sharpen

__all__ = [
    "ResizeStage", "MirrorStage", "AdjustmentStage", "SharpenStage",
    "resize", "mirror", "adjust_color", "convolve", "sharpen",
]
