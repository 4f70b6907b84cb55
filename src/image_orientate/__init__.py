"""Bake EXIF orientation into image pixels and strip the tag."""

__version__ = "1.0.0"

from .core.image_orientate import ImageOrientate, process
from .core.orientation import Orientation, Transform

__all__ = ["ImageOrientate", "Orientation", "Transform", "process", "__version__"]
