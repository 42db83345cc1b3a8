"""Raster buffer and parameter value types shared by every stage.

Pixels are stored as 8-bit BGRA with alpha premultiplied into B, G and R.
Every ``RasterImage`` owns a read-only numpy array; stages always allocate a
new array for their output and never write into their input.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

from .errors import CorruptBuffer, InvalidDimension, InvalidKernel

CHANNELS = 4

# Channel indices in the stored BGRA order
B, G, R, A = 0, 1, 2, 3

Dpi = Tuple[float, float]


class RasterImage:
    """Immutable premultiplied BGRA image."""

    __slots__ = ("_pixels", "_dpi")

    def __init__(self, pixels: np.ndarray, dpi: Optional[Dpi] = None, copy: bool = True):
        """Wrap a ``(height, width, 4)`` uint8 array.

        Args:
            pixels: BGRA premultiplied pixel array
            dpi: Optional (x, y) resolution carried through transforms
            copy: When False a C-contiguous ``pixels`` is adopted as-is and
                marked read-only, which also freezes the caller's array.
                Only pass False for freshly allocated buffers.
        """
        if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise CorruptBuffer(
                f"Expected uint8 array of shape (height, width, 4), got {pixels.dtype} {pixels.shape}"
            )
        height, width = pixels.shape[:2]
        if width <= 0 or height <= 0:
            raise InvalidDimension(f"Image dimensions must be positive, got {width}x{height}")

        # copy=False hands the array over; the caller must not keep writing to it
        owned = np.array(pixels, order="C", copy=True) if copy else np.ascontiguousarray(pixels)
        owned.flags.writeable = False

        self._pixels = owned
        self._dpi = tuple(dpi) if dpi is not None else None

    @classmethod
    def from_bytes(cls, width: int, height: int, buffer: Union[bytes, bytearray, memoryview],
                   dpi: Optional[Dpi] = None) -> "RasterImage":
        """Build an image from a packed BGRA buffer of exactly ``width * 4 * height`` bytes."""
        if width <= 0 or height <= 0:
            raise InvalidDimension(f"Image dimensions must be positive, got {width}x{height}")

        expected = width * CHANNELS * height
        if len(buffer) != expected:
            raise CorruptBuffer(
                f"Buffer holds {len(buffer)} bytes, expected {expected} for {width}x{height}"
            )

        pixels = np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(height, width, CHANNELS)
        return cls(pixels, dpi)

    @classmethod
    def from_array(cls, pixels: np.ndarray, dpi: Optional[Dpi] = None) -> "RasterImage":
        """Build an image from a ``(height, width, 4)`` array, copying it."""
        return cls(np.asarray(pixels), dpi)

    @classmethod
    def blank(cls, width: int, height: int, bgra: Tuple[int, int, int, int] = (0, 0, 0, 0),
              dpi: Optional[Dpi] = None) -> "RasterImage":
        """Build a uniformly filled image."""
        if width <= 0 or height <= 0:
            raise InvalidDimension(f"Image dimensions must be positive, got {width}x{height}")
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = np.asarray(bgra, dtype=np.uint8)
        return cls(pixels, dpi)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def stride(self) -> int:
        """Bytes per row."""
        return self.width * CHANNELS

    @property
    def dpi(self) -> Optional[Dpi]:
        return self._dpi

    @property
    def pixels(self) -> np.ndarray:
        """Read-only ``(height, width, 4)`` view of the buffer."""
        return self._pixels

    def tobytes(self) -> bytes:
        return self._pixels.tobytes()

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the stored (B, G, R, A) values at column ``x``, row ``y``."""
        return tuple(int(v) for v in self._pixels[y, x])

    def channel(self, index: int) -> np.ndarray:
        """Return a read-only ``(height, width)`` view of one channel."""
        return self._pixels[:, :, index]

    def with_pixels(self, pixels: np.ndarray) -> "RasterImage":
        """Wrap a freshly allocated array as a new image with this image's DPI.

        The array is taken over, not copied, and is frozen read-only.
        """
        return RasterImage(pixels, self._dpi, copy=False)

    def copy(self) -> "RasterImage":
        return RasterImage(self._pixels.copy(), self._dpi)

    def check_integrity(self) -> None:
        """Raise ``CorruptBuffer`` if the buffer length disagrees with the dimensions."""
        if self._pixels.nbytes != self.stride * self.height:
            raise CorruptBuffer(
                f"Buffer holds {self._pixels.nbytes} bytes, expected {self.stride * self.height}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._pixels, other._pixels)

    __hash__ = None

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height}, dpi={self._dpi})"


def from_pil(image: Image.Image) -> RasterImage:
    """Convert a decoded Pillow image into a premultiplied BGRA raster.

    Pillow's ``RGBa`` mode is premultiplied RGBA, so only the R and B planes
    have to be swapped afterwards.
    """
    dpi = image.info.get("dpi")
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    premultiplied = np.frombuffer(image.convert("RGBa").tobytes(), dtype=np.uint8)
    premultiplied = premultiplied.reshape(image.height, image.width, CHANNELS)
    bgra = premultiplied[:, :, [2, 1, 0, 3]]

    return RasterImage(bgra, tuple(float(d) for d in dpi) if dpi else None, copy=False)


def to_pil(raster: RasterImage) -> Image.Image:
    """Convert a raster into a straight-alpha ``RGBA`` Pillow image for encoding."""
    rgba = np.ascontiguousarray(raster.pixels[:, :, [2, 1, 0, 3]])
    image = Image.frombuffer("RGBa", raster.size, rgba.tobytes(), "raw", "RGBa", 0, 1)
    image = image.convert("RGBA")
    if raster.dpi is not None:
        image.info["dpi"] = raster.dpi
    return image


class Kernel:
    """Immutable square convolution kernel with an odd side length."""

    __slots__ = ("_weights",)

    def __init__(self, weights):
        matrix = np.array(weights, dtype=np.float64)

        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise InvalidKernel(f"Kernel must be a square matrix, got shape {matrix.shape}")
        size = matrix.shape[0]
        if size <= 0 or size % 2 == 0:
            raise InvalidKernel(f"Kernel side length must be odd and positive, got {size}")
        if not np.all(np.isfinite(matrix)):
            raise InvalidKernel("Kernel weights must be finite")

        matrix.flags.writeable = False
        self._weights = matrix

    @classmethod
    def identity(cls, size: int = 3) -> "Kernel":
        if size <= 0 or size % 2 == 0:
            raise InvalidKernel(f"Kernel side length must be odd and positive, got {size}")
        weights = np.zeros((size, size), dtype=np.float64)
        weights[size // 2, size // 2] = 1.0
        return cls(weights)

    @classmethod
    def sharpen(cls, strength: float = 1.0) -> "Kernel":
        """Identity-plus-edge-enhance kernel multiplied by ``strength``."""
        return cls([[0, -1, 0],
                    [-1, 5, -1],
                    [0, -1, 0]]).scaled(strength)

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def size(self) -> int:
        return self._weights.shape[0]

    @property
    def half(self) -> int:
        return self.size // 2

    def scaled(self, strength: float) -> "Kernel":
        return Kernel(self._weights * float(strength))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Kernel):
            return NotImplemented
        return np.array_equal(self._weights, other._weights)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Kernel({self._weights.tolist()})"


@dataclass(frozen=True)
class AdjustmentParams:
    """Combined color grading parameters.

    saturation is a percentage (0 = grayscale, 100 = unchanged, unbounded
    above); brightness is additive and contrast multiplicative, both in
    -100..100.
    """
    saturation: int = 100
    brightness: int = 0
    contrast: int = 0

    def __post_init__(self):
        if not -100 <= self.brightness <= 100:
            raise ValueError(f"Brightness must be in -100..100, got {self.brightness}")
        if not -100 <= self.contrast <= 100:
            raise ValueError(f"Contrast must be in -100..100, got {self.contrast}")

    @property
    def is_identity(self) -> bool:
        return self.saturation == 100 and self.brightness == 0 and self.contrast == 0

    @property
    def saturation_factor(self) -> float:
        return max(0, self.saturation) / 100.0

    @property
    def brightness_offset(self) -> float:
        return self.brightness / 100.0

    @property
    def contrast_factor(self) -> float:
        factor = (100.0 + self.contrast) / 100.0
        return factor * factor


@dataclass(frozen=True)
class ScaleSpec:
    """Either an explicit target size or a factor applied to both axes."""
    factor: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def __post_init__(self):
        explicit = self.width is not None or self.height is not None
        if explicit == (self.factor is not None):
            raise ValueError("ScaleSpec needs either a factor or an explicit width and height")
        if explicit and (self.width is None or self.height is None):
            raise ValueError("ScaleSpec needs both width and height")
        if self.factor is not None and not (math.isfinite(self.factor) and self.factor > 0):
            raise InvalidDimension(f"Scale factor must be positive, got {self.factor}")

    @classmethod
    def from_factor(cls, factor: float) -> "ScaleSpec":
        return cls(factor=float(factor))

    @classmethod
    def from_size(cls, width: int, height: int) -> "ScaleSpec":
        return cls(width=int(width), height=int(height))

    def target_size(self, src_width: int, src_height: int) -> Tuple[int, int]:
        """Resolve the output size for a source image, rounding half to even."""
        if self.factor is not None:
            target = (int(round(src_width * self.factor)), int(round(src_height * self.factor)))
        else:
            target = (self.width, self.height)

        if target[0] <= 0 or target[1] <= 0:
            raise InvalidDimension(f"Target size must be positive, got {target[0]}x{target[1]}")
        return target


class MirrorAxis(Enum):
    HORIZONTAL = "h"
    VERTICAL = "v"

    @classmethod
    def parse(cls, value: Union[str, "MirrorAxis", None]) -> Optional["MirrorAxis"]:
        """Parse ``h``/``v``/``horizontal``/``vertical``; an empty token means horizontal."""
        if value is None or isinstance(value, MirrorAxis):
            return value

        token = value.strip().lower()
        if token in ("", "h", "horizontal"):
            return cls.HORIZONTAL
        if token in ("v", "vertical"):
            return cls.VERTICAL
        raise ValueError(f"Unknown mirror axis: {value}")
