"""Convolution and sharpening processing stage."""

import logging
import threading
from typing import Optional

import cv2
import numpy as np

from ...config.settings import SETTINGS
from ..parallel import run_row_bands
from ..raster import A, Kernel, RasterImage


def convolve(src: RasterImage,
             kernel: Kernel,
             cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Convolve the color channels of ``src`` with ``kernel``.

    Output (x, y) is the sum of ``kernel[ky][kx] * src[y+ky-half][x+kx-half]``
    with out-of-range coordinates clamped to the nearest edge pixel. Each
    color channel is filtered independently, clamped to [0, 255] and
    truncated; alpha is copied unchanged.

    Raises:
        InvalidKernel: ``kernel`` is not a valid square odd-sized kernel.
    """
    if not isinstance(kernel, Kernel):
        kernel = Kernel(kernel)

    half = kernel.half
    weights = np.array(kernel.weights)
    source = src.pixels
    output = np.empty_like(source)
    last_row = src.height - 1

    def _convolve_rows(y0: int, y1: int) -> None:
        # Band plus `half` halo rows on each side, replicated at the image edges
        rows = np.clip(np.arange(y0 - half, y1 + half), 0, last_row)
        band = source[rows, :, :A].astype(np.float64)

        filtered = cv2.filter2D(band, -1, weights, borderType=cv2.BORDER_REPLICATE)
        filtered = filtered[half:half + (y1 - y0)]

        output[y0:y1, :, :A] = np.floor(np.clip(filtered, 0, 255))
        output[y0:y1, :, A] = source[y0:y1, :, A]

    run_row_bands(src.height, src.width, _convolve_rows, cancel_event)
    return src.with_pixels(output)


def sharpen(src: RasterImage,
            strength: float,
            cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Convolve with the 3x3 sharpen kernel scaled by ``strength``."""
    return convolve(src, Kernel.sharpen(strength), cancel_event=cancel_event)


class SharpenStage:
    """Handles kernel sharpening."""

    def __init__(self):
        self.settings = SETTINGS["processing"]
        self.logger = logging.getLogger(__name__)
        self.strength = self.settings.SHARPEN_STRENGTH

    def process(self, image: RasterImage, **kwargs) -> RasterImage:
        """Sharpen the image.

        Args:
            image: Input raster
            **kwargs: ``strength``, optional ``kernel`` override, ``cancel_event``

        Returns:
            Sharpened raster
        """
        strength = kwargs.get("strength")
        if strength is None:
            strength = self.strength
        kernel = kwargs.get("kernel")

        if kernel is None and strength <= 0:
            self.logger.debug("Sharpen strength is zero, skipping")
            return image

        if kernel is None:
            kernel = Kernel.sharpen(strength)
        elif not isinstance(kernel, Kernel):
            kernel = Kernel(kernel)

        sharpened_image = convolve(image, kernel, cancel_event=kwargs.get("cancel_event"))
        self.logger.debug(f"Applied {kernel.size}x{kernel.size} kernel with strength {strength}")
        return sharpened_image

    def is_active(self, image: RasterImage, **kwargs) -> bool:
        strength = kwargs.get("strength")
        if strength is None:
            strength = self.strength
        return kwargs.get("kernel") is not None or strength > 0

    def get_stage_name(self) -> str:
        """Get the name of this processing stage."""
        return "sharpen"

    def configure(self, **kwargs) -> None:
        """Configure this stage with new parameters."""
        if "strength" in kwargs:
            self.strength = float(kwargs["strength"])
