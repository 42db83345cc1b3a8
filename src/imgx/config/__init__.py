"""Configuration for imgx."""

from .settings import SETTINGS

__all__ = ["SETTINGS"]
