"""Image processing pipeline coordinator."""

import time
import logging
import threading
from typing import List, Dict, Any, Optional, Protocol, Union
from abc import abstractmethod

from ..config.settings import SETTINGS, validate_jpeg_quality
from .errors import ProcessingError
from .raster import AdjustmentParams, MirrorAxis, RasterImage, ScaleSpec
from .stages import ResizeStage, MirrorStage, AdjustmentStage, SharpenStage


class ProcessingStage(Protocol):
    """Protocol for processing stage implementations."""

    @abstractmethod
    def process(self, image: RasterImage, **kwargs) -> RasterImage:
        """Process an image through this stage."""
        ...

    @abstractmethod
    def is_active(self, image: RasterImage, **kwargs) -> bool:
        """Whether the stage would change the image with these parameters."""
        ...

    @abstractmethod
    def get_stage_name(self) -> str:
        """Get the name of this processing stage."""
        ...


class ProcessingPipeline:
    """Coordinates the transform pipeline.

    Stages run in a fixed order (resize, mirror, adjust, sharpen), each one
    finishing before the next starts. Stages whose parameters are at their
    identity value are skipped and pass the image through untouched.
    """

    def __init__(self):
        self.settings = SETTINGS["processing"]
        self.system_settings = SETTINGS["system"]
        self.logger = logging.getLogger(__name__)

        # Initialize processing stages
        self.stages: List[ProcessingStage] = [
            ResizeStage(),
            MirrorStage(),
            AdjustmentStage(),
            SharpenStage()
        ]

        self.stage_results: Dict[str, RasterImage] = {}
        self.stage_timings: Dict[str, float] = {}

    def process(self,
                image: RasterImage,
                scale: Optional[ScaleSpec] = None,
                mirror_axis: Union[MirrorAxis, str, None] = None,
                adjustment: Optional[AdjustmentParams] = None,
                sharpen_strength: Optional[float] = None,
                cancel_event: Optional[threading.Event] = None) -> RasterImage:
        """Process an image through the complete pipeline.

        Args:
            image: Input raster
            scale: Target size or factor; defaults to the configured factor
            mirror_axis: Optional reflection axis
            adjustment: Optional saturation/brightness/contrast
            sharpen_strength: Sharpen kernel multiplier, 0 disables
            cancel_event: Checked between row bands of every stage

        Returns:
            Processed raster

        Raises:
            ProcessingError: any stage failure; nothing partial is returned
        """
        image.check_integrity()

        stage_kwargs = {
            "resize": {"scale": scale},
            "mirror": {"axis": mirror_axis} if mirror_axis is not None else {},
            "adjust": {"adjustment": adjustment},
            "sharpen": {"strength": sharpen_strength},
        }

        current_image = image
        self.stage_results.clear()
        self.stage_timings.clear()

        self.logger.info(f"Starting pipeline processing for image {current_image.size}")
        pipeline_start = time.time()

        # Store original image
        self.stage_results["original"] = image

        # Process through each stage
        for stage in self.stages:
            stage_name = stage.get_stage_name()
            kwargs = stage_kwargs.get(stage_name, {})

            stage_start = time.time()
            try:
                if not stage.is_active(current_image, **kwargs):
                    self.logger.debug(f"Skipping stage: {stage_name}")
                    continue

                self.logger.debug(f"Processing stage: {stage_name}")
                current_image = stage.process(current_image, cancel_event=cancel_event, **kwargs)
            except (ProcessingError, ValueError) as e:
                self.logger.error(f"Stage {stage_name} failed: {e}")
                raise
            stage_time = time.time() - stage_start

            current_image.check_integrity()
            self.stage_timings[stage_name] = stage_time
            self.stage_results[stage_name] = current_image

            if self.system_settings.DISPLAY_PROCESSING_TIME:
                self.logger.info(f"{stage_name} completed in {stage_time:.3f}s")

        total_time = time.time() - pipeline_start
        self.logger.info(f"Pipeline processing completed in {total_time:.3f}s")

        return current_image

    def get_stage_result(self, stage_name: str) -> Optional[RasterImage]:
        """Get the result of a specific processing stage.

        Args:
            stage_name: Name of the stage to retrieve

        Returns:
            Raster from that stage, or None if it did not run
        """
        return self.stage_results.get(stage_name)

    def get_all_stage_results(self) -> Dict[str, RasterImage]:
        """Get results from all stages that ran, plus the original."""
        return self.stage_results.copy()

    def get_stage_timings(self) -> Dict[str, float]:
        """Get execution time in seconds for each stage that ran."""
        return self.stage_timings.copy()

    def configure_stage(self, stage_name: str, **kwargs) -> bool:
        """Configure a specific processing stage.

        Args:
            stage_name: Name of the stage to configure
            **kwargs: Stage-specific configuration parameters

        Returns:
            True if stage was configured successfully
        """
        for stage in self.stages:
            if stage.get_stage_name() == stage_name:
                if hasattr(stage, 'configure'):
                    stage.configure(**kwargs)
                    self.logger.info(f"Configured stage {stage_name}")
                    return True
                else:
                    self.logger.warning(f"Stage {stage_name} does not support configuration")
                    return False

        self.logger.error(f"Stage {stage_name} not found")
        return False

    def get_pipeline_info(self) -> Dict[str, Any]:
        """Get information about the processing pipeline.

        Returns:
            Dictionary with pipeline configuration and stage information
        """
        resize_stage, mirror_stage, adjust_stage, sharpen_stage = self.stages
        axis = mirror_stage.axis

        return {
            "stages": [stage.get_stage_name() for stage in self.stages],
            "settings": {
                "scale_factor": self.settings.SCALE_FACTOR,
                "resize_unpremultiply": resize_stage.unpremultiply,
                "mirror_axis": axis.name.lower() if axis is not None else None,
                "saturation": adjust_stage.adjustment.saturation,
                "brightness": adjust_stage.adjustment.brightness,
                "contrast": adjust_stage.adjustment.contrast,
                "sharpen_strength": sharpen_stage.strength,
                "jpeg_quality": validate_jpeg_quality(self.settings.JPEG_QUALITY),
            },
            "last_processing_times": self.stage_timings
        }


def process(image: RasterImage,
            scale: Optional[ScaleSpec] = None,
            mirror_axis: Union[MirrorAxis, str, None] = None,
            adjustment: Optional[AdjustmentParams] = None,
            sharpen_strength: Optional[float] = None,
            cancel_event: Optional[threading.Event] = None) -> RasterImage:
    """Run ``image`` through a fresh ``ProcessingPipeline``."""
    return ProcessingPipeline().process(
        image,
        scale=scale,
        mirror_axis=mirror_axis,
        adjustment=adjustment,
        sharpen_strength=sharpen_strength,
        cancel_event=cancel_event,
    )
