"""Utility modules for imgx."""

import logging
from typing import Optional, Union

from ..config.settings import SETTINGS
from .testing import (
    RasterFactory, compare_rasters, validate_pipeline, benchmark_processing_pipeline
)


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Setup root logging from the system settings.

    Args:
        level: Explicit level overriding ``LOG_LEVEL`` and ``DEBUG_MODE``
    """
    system = SETTINGS["system"]
    if level is None:
        level = logging.DEBUG if system.DEBUG_MODE else system.LOG_LEVEL

    logging.basicConfig(level=level, format=system.LOG_FORMAT)
    logging.getLogger().setLevel(level)


__all__ = [
    "configure_logging",
    "RasterFactory", "compare_rasters", "validate_pipeline", "benchmark_processing_pipeline"
]
