"""Exceptions raised by the transform stages."""


class ProcessingError(Exception):
    """Base class for every failure that aborts a pipeline run."""


class InvalidDimension(ProcessingError, ValueError):
    """Target width or height is not a positive integer."""


class InvalidKernel(ProcessingError, ValueError):
    """Convolution kernel is not a square matrix with an odd positive side."""


class CorruptBuffer(ProcessingError):
    """Pixel buffer does not hold exactly stride * height bytes."""


class ProcessingCancelled(ProcessingError):
    """A stage was cancelled between row bands; no partial image is returned."""
