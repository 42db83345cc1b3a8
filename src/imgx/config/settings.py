"""Configuration settings for the imgx transform pipeline."""

from typing import Dict, Any, Optional
import os


class ProcessingSettings:
    """Pixel pipeline settings."""

    # Resize settings
    SCALE_FACTOR: float = 2.0          # applied to both axes when no size is given
    RESIZE_UNPREMULTIPLY: bool = False  # False = interpolate stored channels as-is

    # Color settings (identity values disable the stage)
    SATURATION: int = 100   # percent, 0 = grayscale, >100 = oversaturated
    BRIGHTNESS: int = 0     # -100..100
    CONTRAST: int = 0       # -100..100

    # Sharpen settings
    SHARPEN_STRENGTH: float = 0.0  # 0 = off, suggested range 1-3

    # Mirror settings
    MIRROR_AXIS: Optional[str] = None  # "h", "v" or None

    # Encoder hand-off (never used by pixel code)
    JPEG_QUALITY: int = 85  # 1-100

    # Row parallelism
    WORKERS: Optional[int] = None      # None = os.cpu_count()
    ROW_CHUNK_SIZE: int = 32           # rows per work item, cancellation checked between items
    PARALLEL_MIN_PIXELS: int = 65_536  # smaller images run on the calling thread


class SystemSettings:
    """System and debugging settings."""

    # Debugging
    DEBUG_MODE: bool = False
    DISPLAY_PROCESSING_TIME: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def validate_jpeg_quality(quality: int) -> int:
    """Return ``quality`` if it is a valid JPEG quality (1-100)."""
    quality = int(quality)
    if not 1 <= quality <= 100:
        raise ValueError(f"JPEG quality must be in 1..100, got {quality}")
    return quality


# Environment-specific overrides
def load_environment_settings() -> Dict[str, Any]:
    """Load settings from environment variables."""
    env_settings = {}

    if os.getenv("IMGX_WORKERS"):
        env_settings["WORKERS"] = max(1, int(os.getenv("IMGX_WORKERS")))

    if os.getenv("IMGX_LOG_LEVEL"):
        env_settings["LOG_LEVEL"] = os.getenv("IMGX_LOG_LEVEL").upper()

    if os.getenv("IMGX_DEBUG"):
        env_settings["DEBUG_MODE"] = os.getenv("IMGX_DEBUG").lower() == "true"

    if os.getenv("IMGX_JPEG_QUALITY"):
        env_settings["JPEG_QUALITY"] = validate_jpeg_quality(os.getenv("IMGX_JPEG_QUALITY"))

    if os.getenv("IMGX_RESIZE_UNPREMULTIPLY"):
        env_settings["RESIZE_UNPREMULTIPLY"] = os.getenv("IMGX_RESIZE_UNPREMULTIPLY").lower() == "true"

    return env_settings


def apply_environment_settings(settings: Dict[str, Any], env_settings: Dict[str, Any]) -> None:
    """Copy environment overrides onto the matching settings objects."""
    for key, value in env_settings.items():
        for section in ("processing", "system"):
            if hasattr(settings[section], key):
                setattr(settings[section], key, value)


# Global settings instance
SETTINGS = {
    "processing": ProcessingSettings(),
    "system": SystemSettings(),
    "env": load_environment_settings()
}

apply_environment_settings(SETTINGS, SETTINGS["env"])
