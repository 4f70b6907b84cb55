"""
Orientation tag interpretation and transform selection.

The EXIF orientation tag records how the camera was held relative to the
scene. Each of the eight values maps to exactly one rotate/flip that brings
the stored pixels upright; value 1 (top-left) needs nothing.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Protocol

from PIL import Image

from image_orientate.app_settings import ORIENTATION_TAG_ID

logger = logging.getLogger(__name__)


class Orientation(IntEnum):
    """All valid orientation tag values.

    Names read as <row 0 position>-<column 0 position> of the stored image.
    """

    TOP_LEFT = 1
    TOP_RIGHT = 2
    BOTTOM_RIGHT = 3
    BOTTOM_LEFT = 4
    LEFT_TOP = 5
    RIGHT_TOP = 6
    RIGHT_BOTTOM = 7
    LEFT_BOTTOM = 8


class Transform(Enum):
    """Pixel-buffer operations. Rotations are clockwise; the flip comes after."""

    IDENTITY = "identity"
    FLIP_HORIZONTAL = "flip-horizontal"
    ROTATE_180 = "rotate-180"
    ROTATE_180_FLIP_HORIZONTAL = "rotate-180-flip-horizontal"
    ROTATE_90_FLIP_HORIZONTAL = "rotate-90-flip-horizontal"
    ROTATE_90 = "rotate-90"
    ROTATE_270_FLIP_HORIZONTAL = "rotate-270-flip-horizontal"
    ROTATE_270 = "rotate-270"

    @property
    def pillow_method(self) -> Optional[Image.Transpose]:
        """Equivalent single Image.transpose() method (None for IDENTITY)."""
        return _PILLOW_METHODS.get(self)

    @property
    def jpegtran_args(self) -> List[str]:
        """jpegtran switches performing this transform losslessly."""
        return list(_JPEGTRAN_ARGS.get(self, []))


# Pillow's ROTATE_* constants are counter-clockwise
_PILLOW_METHODS: Dict[Transform, Image.Transpose] = {
    Transform.FLIP_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    Transform.ROTATE_180: Image.Transpose.ROTATE_180,
    Transform.ROTATE_180_FLIP_HORIZONTAL: Image.Transpose.FLIP_TOP_BOTTOM,
    Transform.ROTATE_90_FLIP_HORIZONTAL: Image.Transpose.TRANSPOSE,
    Transform.ROTATE_90: Image.Transpose.ROTATE_270,
    Transform.ROTATE_270_FLIP_HORIZONTAL: Image.Transpose.TRANSVERSE,
    Transform.ROTATE_270: Image.Transpose.ROTATE_90,
}

_JPEGTRAN_ARGS: Dict[Transform, List[str]] = {
    Transform.FLIP_HORIZONTAL: ["-flip", "horizontal"],
    Transform.ROTATE_180: ["-rotate", "180"],
    Transform.ROTATE_180_FLIP_HORIZONTAL: ["-flip", "vertical"],
    Transform.ROTATE_90_FLIP_HORIZONTAL: ["-transpose"],
    Transform.ROTATE_90: ["-rotate", "90"],
    Transform.ROTATE_270_FLIP_HORIZONTAL: ["-transverse"],
    Transform.ROTATE_270: ["-rotate", "270"],
}

# Fixed bijection over the seven non-identity orientations
ORIENTATION_TRANSFORMS: Dict[Orientation, Transform] = {
    Orientation.TOP_RIGHT: Transform.FLIP_HORIZONTAL,
    Orientation.BOTTOM_RIGHT: Transform.ROTATE_180,
    Orientation.BOTTOM_LEFT: Transform.ROTATE_180_FLIP_HORIZONTAL,
    Orientation.LEFT_TOP: Transform.ROTATE_90_FLIP_HORIZONTAL,
    Orientation.RIGHT_TOP: Transform.ROTATE_90,
    Orientation.RIGHT_BOTTOM: Transform.ROTATE_270_FLIP_HORIZONTAL,
    Orientation.LEFT_BOTTOM: Transform.ROTATE_270,
}


class ImageHandle(Protocol):
    """What the resolver needs from an image: tag access and a pixel transform."""

    def get_metadata_tag(self, tag_id: int) -> Optional[bytes]:
        """Raw tag value, or None when the tag is not present."""
        ...

    def remove_metadata_tag(self, tag_id: int) -> bool:
        """Delete a tag. Returns False when the deletion was rejected."""
        ...

    def apply_transform(self, transform: Transform) -> None:
        """Rotate/flip the pixel buffer in place."""
        ...


class ResolutionKind(Enum):
    IDENTITY = "identity"
    TRANSFORM = "transform"
    MISSING = "missing"  # no orientation tag set
    INVALID = "invalid"  # tag set, but not one of the eight values


@dataclass(frozen=True)
class OrientationResolution:
    """Outcome of reading an image's orientation tag."""

    kind: ResolutionKind
    orientation: Optional[Orientation] = None
    transform: Optional[Transform] = None
    raw_value: Optional[int] = None

    @property
    def needs_transform(self) -> bool:
        return self.kind is ResolutionKind.TRANSFORM

    @classmethod
    def missing(cls) -> "OrientationResolution":
        return cls(kind=ResolutionKind.MISSING)

    @classmethod
    def invalid(cls, raw_value: Optional[int]) -> "OrientationResolution":
        return cls(kind=ResolutionKind.INVALID, raw_value=raw_value)

    @classmethod
    def for_orientation(cls, orientation: Orientation) -> "OrientationResolution":
        transform = transform_for(orientation)
        if transform is None:
            return cls(
                kind=ResolutionKind.IDENTITY,
                orientation=orientation,
                raw_value=int(orientation),
            )
        return cls(
            kind=ResolutionKind.TRANSFORM,
            orientation=orientation,
            transform=transform,
            raw_value=int(orientation),
        )


def orientation_from_byte(value: Optional[int]) -> Optional[Orientation]:
    """Map a tag byte to an Orientation, or None if it is not one of 1-8."""
    if value is None:
        return None
    try:
        return Orientation(value)
    except ValueError:
        return None


def transform_for(orientation: Orientation) -> Optional[Transform]:
    """Transform that uprights `orientation`; None for TOP_LEFT."""
    return ORIENTATION_TRANSFORMS.get(orientation)


def resolve_orientation(image: ImageHandle) -> OrientationResolution:
    """
    Read the orientation tag of `image` and decide what, if anything, to do.

    A missing tag and an out-of-range value both mean "no orientation data";
    neither is treated as an error.
    """
    raw = image.get_metadata_tag(ORIENTATION_TAG_ID)
    if raw is None:
        return OrientationResolution.missing()

    # the first element represents the orientation
    first_byte = raw[0] if len(raw) > 0 else None
    orientation = orientation_from_byte(first_byte)
    if orientation is None:
        return OrientationResolution.invalid(first_byte)

    return OrientationResolution.for_orientation(orientation)
