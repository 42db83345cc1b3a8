"""Testing and validation utilities for imgx."""

import logging
import time
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..processing.raster import A, RasterImage


class RasterFactory:
    """Builds synthetic premultiplied BGRA rasters for tests and benchmarks."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def solid(self, width: int, height: int,
              bgra: Tuple[int, int, int, int] = (255, 255, 255, 255)) -> RasterImage:
        """Uniform image; ``bgra`` is taken as already premultiplied."""
        return RasterImage.blank(width, height, bgra)

    def horizontal_gradient(self, width: int = 64, height: int = 48) -> RasterImage:
        """Opaque gray ramp from black on the left to white on the right."""
        ramp = np.rint(np.linspace(0, 255, width)).astype(np.uint8)
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :, :A] = ramp[None, :, None]
        pixels[:, :, A] = 255
        return RasterImage(pixels, copy=False)

    def checkerboard(self, width: int = 64, height: int = 64, square_size: int = 8) -> RasterImage:
        """Opaque black and white squares."""
        ys, xs = np.mgrid[0:height, 0:width]
        white = ((xs // square_size + ys // square_size) % 2 == 0)
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        pixels[white, :A] = 255
        pixels[:, :, A] = 255
        return RasterImage(pixels, copy=False)

    def color_noise(self, width: int = 32, height: int = 32, opaque: bool = False) -> RasterImage:
        """Random straight colors with random alpha, stored premultiplied."""
        straight = self.rng.integers(0, 256, size=(height, width, 3))
        if opaque:
            alpha = np.full((height, width, 1), 255)
        else:
            alpha = self.rng.integers(0, 256, size=(height, width, 1))

        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :, :A] = np.rint(straight * alpha / 255.0)
        pixels[:, :, A] = alpha[:, :, 0]
        return RasterImage(pixels, copy=False)

    def translucent_edge(self, width: int = 32, height: int = 16,
                         bgr: Tuple[int, int, int] = (40, 80, 200)) -> RasterImage:
        """Opaque color on the left half fading to fully transparent on the right."""
        alpha = np.clip(np.linspace(2.0, -1.0, width), 0.0, 1.0)
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :, :A] = np.rint(np.asarray(bgr)[None, None, :] * alpha[None, :, None])
        pixels[:, :, A] = np.rint(alpha * 255.0)[None, :]
        return RasterImage(pixels, copy=False)


def compare_rasters(first: RasterImage, second: RasterImage) -> Dict[str, float]:
    """Compare two same-sized rasters.

    Returns:
        Dictionary with ``mse``, ``psnr``, ``max_abs_diff`` and per-channel MSE
    """
    if first.size != second.size:
        raise ValueError(f"Cannot compare {first.size} with {second.size}")

    diff = first.pixels.astype(np.float64) - second.pixels.astype(np.float64)
    mse = float(np.mean(diff ** 2))
    psnr = float("inf") if mse == 0 else float(20 * np.log10(255.0 / np.sqrt(mse)))

    metrics = {
        "mse": mse,
        "psnr": psnr,
        "max_abs_diff": float(np.max(np.abs(diff))),
    }
    for index, name in enumerate("bgra"):
        metrics[f"mse_{name}"] = float(np.mean(diff[:, :, index] ** 2))
    return metrics


def validate_pipeline(pipeline, test_images: List[RasterImage], **process_kwargs) -> Dict[str, Dict]:
    """Run every test image through ``pipeline`` and collect invariant checks.

    Args:
        pipeline: ProcessingPipeline instance
        test_images: Input rasters
        **process_kwargs: Forwarded to ``pipeline.process``

    Returns:
        Dictionary with validation results for each test image
    """
    logger = logging.getLogger(__name__)
    results = {}

    for i, test_image in enumerate(test_images):
        logger.info(f"Validating with test image {i+1}/{len(test_images)}")

        snapshot = test_image.tobytes()
        processed = pipeline.process(test_image, **process_kwargs)
        results[f"test_image_{i+1}"] = {
            "input_size": test_image.size,
            "output_size": processed.size,
            "buffer_ok": len(processed.tobytes()) == processed.stride * processed.height,
            "input_untouched": test_image.tobytes() == snapshot,
            "processing_times": pipeline.get_stage_timings(),
        }

    return results


def benchmark_processing_pipeline(pipeline, test_image: RasterImage,
                                  iterations: int = 5, **process_kwargs) -> Dict[str, float]:
    """Benchmark processing pipeline performance.

    Args:
        pipeline: ProcessingPipeline instance
        test_image: Input raster
        iterations: Number of iterations to average

    Returns:
        Dictionary with benchmark results
    """
    logger = logging.getLogger(__name__)
    times = []

    for i in range(iterations):
        start_time = time.time()
        pipeline.process(test_image, **process_kwargs)
        iteration_time = time.time() - start_time
        times.append(iteration_time)
        logger.debug(f"Iteration {i+1}: {iteration_time:.3f}s")

    return {
        'mean_time': float(np.mean(times)),
        'std_time': float(np.std(times)),
        'min_time': float(np.min(times)),
        'max_time': float(np.max(times)),
        'iterations': iterations
    }
