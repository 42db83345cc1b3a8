"""Adjustment processing stage for saturation, brightness, and contrast."""

import logging
import threading
from typing import Optional

import numpy as np

from ...config.settings import SETTINGS
from ..parallel import run_row_bands
from ..raster import A, AdjustmentParams, RasterImage

# Rec.709 luma weights in stored B, G, R order
LUMA_BGR = np.array([0.0722, 0.7152, 0.2126], dtype=np.float64)


def adjust_color(src: RasterImage,
                 saturation: float = 100,
                 brightness: int = 0,
                 contrast: int = 0,
                 cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Apply saturation, contrast and brightness in a single pass.

    Color math runs on unpremultiplied values so that translucent pixels
    are not pulled toward black: desaturate toward Rec.709 luma, then
    ``(c - 0.5) * contrast_factor + 0.5 + brightness/100``, then
    repremultiply. Pixels with zero alpha keep their stored color. Results
    are clamped to [0, 1] and rounded to the nearest byte; alpha is never
    modified.
    """
    params = AdjustmentParams(saturation=saturation, brightness=brightness, contrast=contrast)
    sat_factor = params.saturation_factor
    contrast_factor = params.contrast_factor
    bright_offset = params.brightness_offset

    source = src.pixels
    output = np.empty_like(source)

    def _adjust_rows(y0: int, y1: int) -> None:
        rows = source[y0:y1]
        color = rows[:, :, :A].astype(np.float64) / 255.0
        alpha = rows[:, :, A:A + 1].astype(np.float64) / 255.0
        opaque = alpha > 0

        straight = np.divide(color, alpha, out=color.copy(), where=opaque)

        gray = straight @ LUMA_BGR
        straight = gray[:, :, None] + (straight - gray[:, :, None]) * sat_factor
        straight = (straight - 0.5) * contrast_factor + 0.5 + bright_offset

        adjusted = np.where(opaque, straight * alpha, color)
        output[y0:y1, :, :A] = np.rint(np.clip(adjusted, 0.0, 1.0) * 255.0)
        output[y0:y1, :, A] = rows[:, :, A]

    run_row_bands(src.height, src.width, _adjust_rows, cancel_event)
    return src.with_pixels(output)


class AdjustmentStage:
    """Handles saturation, brightness, and contrast adjustments."""

    def __init__(self):
        self.settings = SETTINGS["processing"]
        self.logger = logging.getLogger(__name__)
        self.adjustment = AdjustmentParams(
            saturation=self.settings.SATURATION,
            brightness=self.settings.BRIGHTNESS,
            contrast=self.settings.CONTRAST,
        )

    def process(self, image: RasterImage, **kwargs) -> RasterImage:
        """Apply the combined color adjustment.

        Args:
            image: Input raster
            **kwargs: ``adjustment`` (AdjustmentParams), ``cancel_event``

        Returns:
            Adjusted raster
        """
        adjustment = kwargs.get("adjustment") or self.adjustment

        if adjustment.is_identity:
            self.logger.debug("Color adjustment at identity, skipping")
            return image

        adjusted_image = adjust_color(
            image,
            saturation=adjustment.saturation,
            brightness=adjustment.brightness,
            contrast=adjustment.contrast,
            cancel_event=kwargs.get("cancel_event"),
        )
        self.logger.debug(
            f"Applied saturation {adjustment.saturation}, brightness {adjustment.brightness}, "
            f"contrast {adjustment.contrast}"
        )
        return adjusted_image

    def is_active(self, image: RasterImage, **kwargs) -> bool:
        adjustment = kwargs.get("adjustment") or self.adjustment
        return not adjustment.is_identity

    def get_stage_name(self) -> str:
        """Get the name of this processing stage."""
        return "adjust"

    def configure(self, **kwargs) -> None:
        """Configure this stage with new parameters."""
        self.adjustment = AdjustmentParams(
            saturation=kwargs.get("saturation", self.adjustment.saturation),
            brightness=kwargs.get("brightness", self.adjustment.brightness),
            contrast=kwargs.get("contrast", self.adjustment.contrast),
        )
