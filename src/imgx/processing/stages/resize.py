"""Resize processing stage."""

import logging
import threading
from typing import Optional

import numpy as np

from ...config.settings import SETTINGS
from ..errors import InvalidDimension
from ..parallel import run_row_bands
from ..raster import A, RasterImage, ScaleSpec


def _axis_samples(src_len: int, dst_len: int):
    """Map destination indices onto source floor/ceil indices and fractions.

    Sample ``i`` lands on ``i * (src_len - 1) / dst_len``; the ceil neighbour
    is clamped to the last valid index.
    """
    positions = np.arange(dst_len, dtype=np.float64) * ((src_len - 1) / dst_len)
    lower = np.floor(positions).astype(np.intp)
    upper = np.minimum(lower + 1, src_len - 1)
    fraction = positions - lower
    return lower, upper, fraction


def _unpremultiply(pixels: np.ndarray) -> np.ndarray:
    """Return float BGRA with color divided by alpha where alpha > 0."""
    values = pixels.astype(np.float64)
    alpha = values[:, :, A:A + 1]
    np.divide(values[:, :, :A], alpha / 255.0, out=values[:, :, :A], where=alpha > 0)
    return values


def resize(src: RasterImage,
           target_width: int,
           target_height: int,
           unpremultiply: bool = False,
           cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Bilinearly resample ``src`` to ``target_width`` x ``target_height``.

    Each output pixel is a horizontal lerp across two neighbour columns
    followed by a vertical lerp across the two row results, for every
    channel. Both lerps truncate to whole byte values. By default all four
    stored channels are interpolated as-is; with ``unpremultiply`` the color
    channels are unpremultiplied first and repremultiplied by the
    interpolated alpha afterwards.

    Raises:
        InvalidDimension: target width or height is not positive.
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidDimension(
            f"Target size must be positive, got {target_width}x{target_height}"
        )

    if (target_width, target_height) == src.size:
        return src.copy()

    source = _unpremultiply(src.pixels) if unpremultiply else src.pixels
    x_lo, x_hi, x_frac = _axis_samples(src.width, target_width)
    y_lo, y_hi, y_frac = _axis_samples(src.height, target_height)
    x_frac = x_frac[None, :, None]

    output = np.empty((target_height, target_width, 4), dtype=np.uint8)

    def _resize_rows(y0: int, y1: int) -> None:
        upper_rows = source[y_lo[y0:y1]].astype(np.float64, copy=False)
        lower_rows = source[y_hi[y0:y1]].astype(np.float64, copy=False)

        # Each lerp result is truncated to a whole byte value
        top = np.floor(upper_rows[:, x_lo] * (1.0 - x_frac) + upper_rows[:, x_hi] * x_frac)
        bottom = np.floor(lower_rows[:, x_lo] * (1.0 - x_frac) + lower_rows[:, x_hi] * x_frac)

        fy = y_frac[y0:y1, None, None]
        values = top * (1.0 - fy) + bottom * fy

        if unpremultiply:
            values[:, :, :A] *= values[:, :, A:A + 1] / 255.0

        output[y0:y1] = np.floor(np.clip(values, 0, 255))

    run_row_bands(target_height, target_width, _resize_rows, cancel_event)
    return src.with_pixels(output)


class ResizeStage:
    """Handles geometric resizing."""

    def __init__(self):
        self.settings = SETTINGS["processing"]
        self.logger = logging.getLogger(__name__)
        self.unpremultiply = self.settings.RESIZE_UNPREMULTIPLY

    def process(self, image: RasterImage, **kwargs) -> RasterImage:
        """Resize image to the requested scale.

        Args:
            image: Input raster
            **kwargs: ``scale`` (ScaleSpec), ``unpremultiply``, ``cancel_event``

        Returns:
            Resized raster
        """
        scale = kwargs.get("scale") or ScaleSpec.from_factor(self.settings.SCALE_FACTOR)
        unpremultiply = kwargs.get("unpremultiply", self.unpremultiply)
        target_width, target_height = scale.target_size(image.width, image.height)

        self.logger.debug(f"Resizing from {image.size} to target {(target_width, target_height)}")
        if unpremultiply:
            self.logger.debug("Interpolating unpremultiplied color channels")

        result = resize(image, target_width, target_height,
                        unpremultiply=unpremultiply,
                        cancel_event=kwargs.get("cancel_event"))

        self.logger.debug(f"Resize completed: {image.size} -> {result.size}")
        return result

    def is_active(self, image: RasterImage, **kwargs) -> bool:
        """A resize to the image's own size is skipped."""
        scale = kwargs.get("scale") or ScaleSpec.from_factor(self.settings.SCALE_FACTOR)
        return scale.target_size(image.width, image.height) != image.size

    def get_stage_name(self) -> str:
        """Get the name of this processing stage."""
        return "resize"

    def configure(self, **kwargs) -> None:
        """Configure this stage with new parameters."""
        if "unpremultiply" in kwargs:
            self.unpremultiply = bool(kwargs["unpremultiply"])
