"""Mirror processing stage."""

import logging
import threading
from typing import Optional

import numpy as np

from ...config.settings import SETTINGS
from ..parallel import run_row_bands
from ..raster import MirrorAxis, RasterImage


def mirror(src: RasterImage,
           axis: MirrorAxis,
           cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Reflect ``src`` across the given axis.

    Horizontal maps destination (x, y) to source (width-1-x, y); vertical
    maps it to (x, height-1-y). Pixels are copied verbatim.
    """
    axis = MirrorAxis.parse(axis)
    source = src.pixels
    output = np.empty_like(source)
    last_row = src.height - 1

    def _mirror_rows(y0: int, y1: int) -> None:
        if axis is MirrorAxis.HORIZONTAL:
            output[y0:y1] = source[y0:y1, ::-1]
        else:
            output[y0:y1] = source[last_row - y0::-1][:y1 - y0]

    run_row_bands(src.height, src.width, _mirror_rows, cancel_event)
    return src.with_pixels(output)


class MirrorStage:
    """Handles horizontal and vertical reflection."""

    def __init__(self):
        self.settings = SETTINGS["processing"]
        self.logger = logging.getLogger(__name__)
        self.axis = MirrorAxis.parse(self.settings.MIRROR_AXIS)

    def process(self, image: RasterImage, **kwargs) -> RasterImage:
        """Mirror the image.

        Args:
            image: Input raster
            **kwargs: ``axis`` (MirrorAxis or "h"/"v"), ``cancel_event``

        Returns:
            Mirrored raster
        """
        axis = MirrorAxis.parse(kwargs.get("axis", self.axis))
        if axis is None:
            self.logger.debug("No mirror axis requested")
            return image

        self.logger.debug(f"Mirroring {image.size} along {axis.name.lower()} axis")
        return mirror(image, axis, cancel_event=kwargs.get("cancel_event"))

    def is_active(self, image: RasterImage, **kwargs) -> bool:
        return kwargs.get("axis", self.axis) is not None

    def get_stage_name(self) -> str:
        """Get the name of this processing stage."""
        return "mirror"

    def configure(self, **kwargs) -> None:
        """Configure this stage with new parameters."""
        if "axis" in kwargs:
            self.axis = MirrorAxis.parse(kwargs["axis"])
