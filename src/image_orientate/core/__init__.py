# Core logic package
# pyexiv2-backed modules (metadata_io, lossless_jpeg_handle, image_pipeline)
# are imported from their own modules so the resolver loads without it.

from .orientation import (
    ImageHandle,
    Orientation,
    OrientationResolution,
    ORIENTATION_TRANSFORMS,
    ResolutionKind,
    Transform,
    orientation_from_byte,
    resolve_orientation,
    transform_for,
)
from .image_orientate import ImageOrientate, process
from .image_handle import PillowImageHandle
from .image_file_ops import ImageFileOperations
from .file_scanner import collect_image_paths, is_supported_image

__all__ = [
    # orientation
    "ImageHandle",
    "Orientation",
    "OrientationResolution",
    "ORIENTATION_TRANSFORMS",
    "ResolutionKind",
    "Transform",
    "orientation_from_byte",
    "resolve_orientation",
    "transform_for",
    # image_orientate
    "ImageOrientate",
    "process",
    # image_handle
    "PillowImageHandle",
    # image_file_ops
    "ImageFileOperations",
    # file_scanner
    "collect_image_paths",
    "is_supported_image",
]
