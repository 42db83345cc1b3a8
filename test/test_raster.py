"""Tests for raster value types, the Pillow boundary and row scheduling."""

import os
import sys
import threading
import unittest
from unittest import mock

import numpy as np
from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from imgx.config.settings import SETTINGS, load_environment_settings, validate_jpeg_quality
from imgx.processing import (
    AdjustmentParams, CorruptBuffer, InvalidDimension, InvalidKernel, Kernel, MirrorAxis,
    ProcessingCancelled, RasterImage, ScaleSpec, from_pil, to_pil
)
from imgx.processing.parallel import run_row_bands, split_rows


class TestRasterImage(unittest.TestCase):
    """Test the immutable BGRA buffer."""

    def test_from_bytes(self):
        """Test building an image from packed bytes."""
        buffer = bytes(range(2 * 3 * 4))
        image = RasterImage.from_bytes(2, 3, buffer, dpi=(96.0, 96.0))

        self.assertEqual(image.size, (2, 3))
        self.assertEqual(image.stride, 8)
        self.assertEqual(image.tobytes(), buffer)
        self.assertEqual(image.pixel(1, 0), (4, 5, 6, 7))
        self.assertEqual(image.pixel(0, 2), (16, 17, 18, 19))
        self.assertEqual(image.dpi, (96.0, 96.0))

    def test_buffer_length_must_match(self):
        """Test buffer length validation."""
        with self.assertRaises(CorruptBuffer):
            RasterImage.from_bytes(2, 2, bytes(15))
        with self.assertRaises(CorruptBuffer):
            RasterImage.from_bytes(2, 2, bytes(17))

    def test_dimensions_must_be_positive(self):
        """Test dimension validation."""
        with self.assertRaises(InvalidDimension):
            RasterImage.from_bytes(0, 2, b"")
        with self.assertRaises(InvalidDimension):
            RasterImage.blank(3, 0)

    def test_wrong_array_shape(self):
        """Test array shape and dtype validation."""
        with self.assertRaises(CorruptBuffer):
            RasterImage.from_array(np.zeros((2, 2, 3), dtype=np.uint8))
        with self.assertRaises(CorruptBuffer):
            RasterImage.from_array(np.zeros((2, 2, 4), dtype=np.float32))

    def test_pixels_are_read_only(self):
        """Test pixel array is read-only."""
        image = RasterImage.blank(2, 2, (1, 2, 3, 4))
        with self.assertRaises(ValueError):
            image.pixels[0, 0, 0] = 9

    def test_from_array_copies(self):
        """Test from_array copies its input."""
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        image = RasterImage.from_array(source)
        source[0, 0] = 255
        self.assertEqual(image.pixel(0, 0), (0, 0, 0, 0))

    def test_adopted_array_is_frozen(self):
        """Test an adopted array becomes read-only."""
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        image = RasterImage(source, copy=False)
        self.assertTrue(np.shares_memory(image.pixels, source))
        self.assertFalse(source.flags.writeable)

    def test_copy_does_not_alias(self):
        """Test copies do not share memory."""
        image = RasterImage.blank(2, 2, (1, 2, 3, 255))
        duplicate = image.copy()
        self.assertEqual(image, duplicate)
        self.assertFalse(np.shares_memory(image.pixels, duplicate.pixels))

    def test_equality(self):
        """Test image equality."""
        first = RasterImage.blank(2, 2, (1, 2, 3, 255))
        self.assertEqual(first, RasterImage.blank(2, 2, (1, 2, 3, 255), dpi=(72.0, 72.0)))
        self.assertNotEqual(first, RasterImage.blank(2, 2, (1, 2, 4, 255)))
        self.assertNotEqual(first, RasterImage.blank(1, 4, (1, 2, 3, 255)))

    def test_channel_view(self):
        """Test single channel access."""
        image = RasterImage.blank(3, 2, (10, 20, 30, 40))
        self.assertEqual(image.channel(2).shape, (2, 3))
        self.assertTrue(np.all(image.channel(3) == 40))


class TestPillowBoundary(unittest.TestCase):
    """Test conversion to and from decoded Pillow images."""

    def test_opaque_channel_order(self):
        """Test RGBA to BGRA channel order."""
        image = Image.new('RGBA', (2, 1), (255, 10, 0, 255))
        raster = from_pil(image)
        self.assertEqual(raster.pixel(0, 0), (0, 10, 255, 255))

    def test_rgb_input_becomes_opaque(self):
        """Test RGB input gets full alpha."""
        raster = from_pil(Image.new('RGB', (3, 2), (1, 2, 3)))
        self.assertEqual(raster.size, (3, 2))
        self.assertEqual(raster.pixel(2, 1), (3, 2, 1, 255))

    def test_translucent_input_is_premultiplied(self):
        """Test translucent input is premultiplied."""
        raster = from_pil(Image.new('RGBA', (1, 1), (200, 100, 50, 128)))
        b, g, r, a = raster.pixel(0, 0)
        self.assertEqual(a, 128)
        self.assertAlmostEqual(r, 200 * 128 / 255, delta=1)
        self.assertAlmostEqual(g, 100 * 128 / 255, delta=1)
        self.assertAlmostEqual(b, 50 * 128 / 255, delta=1)

    def test_opaque_round_trip(self):
        """Test opaque pixels survive conversion."""
        rng = np.random.default_rng(3)
        rgb = rng.integers(0, 256, size=(5, 7, 3), dtype=np.uint8)
        image = Image.fromarray(rgb, 'RGB').convert('RGBA')

        restored = to_pil(from_pil(image))
        self.assertEqual(restored.mode, 'RGBA')
        self.assertEqual(restored.tobytes(), image.tobytes())

    def test_dpi_passes_through(self):
        """Test resolution passes through conversion."""
        image = Image.new('RGB', (2, 2))
        image.info['dpi'] = (300, 300)
        raster = from_pil(image)
        self.assertEqual(raster.dpi, (300.0, 300.0))
        self.assertEqual(to_pil(raster).info['dpi'], (300.0, 300.0))


class TestParameterTypes(unittest.TestCase):
    """Test kernel, adjustment, scale and mirror parameter types."""

    def test_kernel_rejects_even_size(self):
        """Test even kernel sizes are rejected."""
        with self.assertRaises(InvalidKernel):
            Kernel([[1, 0], [0, 1]])

    def test_kernel_rejects_bad_shapes(self):
        """Test non-square kernels are rejected."""
        with self.assertRaises(InvalidKernel):
            Kernel(np.zeros((0, 0)))
        with self.assertRaises(InvalidKernel):
            Kernel([[1, 2, 3]])
        with self.assertRaises(InvalidKernel):
            Kernel([1, 2, 3])
        with self.assertRaises(InvalidKernel):
            Kernel.identity(4)

    def test_kernel_rejects_non_finite(self):
        """Test non-finite weights are rejected."""
        with self.assertRaises(InvalidKernel):
            Kernel([[float('nan')]])

    def test_sharpen_kernel_scaling(self):
        """Test sharpen kernel weights."""
        kernel = Kernel.sharpen(2.0)
        self.assertEqual(kernel.size, 3)
        self.assertEqual(kernel.half, 1)
        np.testing.assert_array_equal(kernel.weights,
                                      [[0, -2, 0], [-2, 10, -2], [0, -2, 0]])

    def test_kernel_is_immutable(self):
        """Test kernel weights are read-only."""
        kernel = Kernel.identity(3)
        with self.assertRaises(ValueError):
            kernel.weights[0, 0] = 1.0
        self.assertEqual(kernel.scaled(1.0), kernel)

    def test_adjustment_ranges(self):
        """Test adjustment parameter ranges."""
        with self.assertRaises(ValueError):
            AdjustmentParams(brightness=101)
        with self.assertRaises(ValueError):
            AdjustmentParams(contrast=-101)
        # Saturation is only clamped at use
        self.assertEqual(AdjustmentParams(saturation=-20).saturation_factor, 0.0)
        self.assertEqual(AdjustmentParams(saturation=250).saturation_factor, 2.5)

    def test_adjustment_factors(self):
        """Test derived adjustment factors."""
        self.assertTrue(AdjustmentParams().is_identity)
        self.assertFalse(AdjustmentParams(saturation=0).is_identity)
        self.assertEqual(AdjustmentParams(contrast=100).contrast_factor, 4.0)
        self.assertEqual(AdjustmentParams(contrast=-100).contrast_factor, 0.0)
        self.assertEqual(AdjustmentParams(brightness=-50).brightness_offset, -0.5)

    def test_scale_from_factor(self):
        """Test target size from a factor."""
        self.assertEqual(ScaleSpec.from_factor(2).target_size(3, 5), (6, 10))
        # Half-way values round to even
        self.assertEqual(ScaleSpec.from_factor(0.5).target_size(3, 5), (2, 2))

    def test_scale_from_size(self):
        """Test explicit target size."""
        self.assertEqual(ScaleSpec.from_size(7, 9).target_size(100, 1), (7, 9))

    def test_scale_rejects_non_positive(self):
        """Test non-positive scales are rejected."""
        with self.assertRaises(InvalidDimension):
            ScaleSpec.from_factor(0)
        with self.assertRaises(InvalidDimension):
            ScaleSpec.from_factor(-1.5)
        with self.assertRaises(InvalidDimension):
            ScaleSpec.from_factor(0.01).target_size(10, 10)
        with self.assertRaises(InvalidDimension):
            ScaleSpec.from_size(0, 4).target_size(2, 2)

    def test_scale_needs_one_form(self):
        """Test scale requires exactly one form."""
        with self.assertRaises(ValueError):
            ScaleSpec()
        with self.assertRaises(ValueError):
            ScaleSpec(factor=2.0, width=3, height=3)
        with self.assertRaises(ValueError):
            ScaleSpec(width=3)

    def test_mirror_axis_parse(self):
        """Test mirror axis token parsing."""
        self.assertIs(MirrorAxis.parse('h'), MirrorAxis.HORIZONTAL)
        self.assertIs(MirrorAxis.parse('V'), MirrorAxis.VERTICAL)
        self.assertIs(MirrorAxis.parse('vertical'), MirrorAxis.VERTICAL)
        self.assertIs(MirrorAxis.parse(''), MirrorAxis.HORIZONTAL)
        self.assertIsNone(MirrorAxis.parse(None))
        with self.assertRaises(ValueError):
            MirrorAxis.parse('diagonal')


class TestRowScheduling(unittest.TestCase):
    """Test row band partitioning and cancellation."""

    def test_split_rows(self):
        """Test row band partitioning."""
        self.assertEqual(split_rows(10, 4), [(0, 4), (4, 8), (8, 10)])
        self.assertEqual(split_rows(3, 32), [(0, 3)])

    def test_parallel_bands_cover_every_row_once(self):
        """Test threaded bands cover every row once."""
        bands = []
        run_row_bands(300, 300, lambda y0, y1: bands.append((y0, y1)),
                      workers=4, chunk_size=16)
        self.assertEqual(sorted(bands), split_rows(300, 16))

    def test_cancelled_before_start(self):
        """Test cancellation before the first band."""
        cancel_event = threading.Event()
        cancel_event.set()
        calls = []

        with self.assertRaises(ProcessingCancelled):
            run_row_bands(10, 10, lambda y0, y1: calls.append(y0), cancel_event=cancel_event)
        self.assertEqual(calls, [])

    def test_cancelled_between_bands(self):
        """Test cancellation between bands."""
        cancel_event = threading.Event()
        calls = []

        def worker(y0, y1):
            calls.append(y0)
            cancel_event.set()

        with self.assertRaises(ProcessingCancelled):
            run_row_bands(10, 10, worker, cancel_event=cancel_event, chunk_size=2)
        self.assertEqual(calls, [0])

    def test_worker_errors_propagate(self):
        """Test worker errors propagate."""
        def worker(y0, y1):
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            run_row_bands(300, 300, worker, workers=4)


class TestSettings(unittest.TestCase):
    """Test configuration loading."""

    def test_defaults_are_identity(self):
        """Test default settings are identity values."""
        processing = SETTINGS["processing"]
        self.assertEqual(processing.SATURATION, 100)
        self.assertEqual(processing.BRIGHTNESS, 0)
        self.assertEqual(processing.CONTRAST, 0)
        self.assertEqual(processing.SHARPEN_STRENGTH, 0.0)
        self.assertIsNone(processing.MIRROR_AXIS)

    def test_environment_overrides(self):
        """Test environment variable overrides."""
        env = {
            "IMGX_WORKERS": "3",
            "IMGX_LOG_LEVEL": "debug",
            "IMGX_DEBUG": "true",
            "IMGX_JPEG_QUALITY": "90",
            "IMGX_RESIZE_UNPREMULTIPLY": "TRUE",
        }
        with mock.patch.dict(os.environ, env):
            overrides = load_environment_settings()

        self.assertEqual(overrides["WORKERS"], 3)
        self.assertEqual(overrides["LOG_LEVEL"], "DEBUG")
        self.assertTrue(overrides["DEBUG_MODE"])
        self.assertEqual(overrides["JPEG_QUALITY"], 90)
        self.assertTrue(overrides["RESIZE_UNPREMULTIPLY"])

    def test_jpeg_quality_range(self):
        """Test JPEG quality validation."""
        self.assertEqual(validate_jpeg_quality(1), 1)
        self.assertEqual(validate_jpeg_quality("100"), 100)
        with self.assertRaises(ValueError):
            validate_jpeg_quality(0)
        with self.assertRaises(ValueError):
            validate_jpeg_quality(101)


if __name__ == '__main__':
    unittest.main(verbosity=2)
