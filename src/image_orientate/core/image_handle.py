import os
import re
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from PIL import Image

from image_orientate.app_settings import ORIENTATION_TAG_ID, get_jpeg_quality
from image_orientate.core.orientation import (
    Transform,
    orientation_from_byte,
    transform_for,
)

logger = logging.getLogger(__name__)

_HEIF_LOCK = threading.Lock()
_HEIF_REGISTERED = False


# Written by the TIFF encoder itself; stale copies would describe the old layout
_TIFF_LAYOUT_TAGS = (
    256, 257, 258, 259, 262, 273, 277, 278, 279, 284, 317, 320,
    322, 323, 324, 325, 338, 339, 347, 530, 531, 532,
)
_TIFF_XMP_TAG = 700
_XMP_KWARG_FORMATS = {"JPEG", "WEBP"}
_XMP_ORIENTATION_PATTERNS = (
    r'tiff:Orientation="[0-9]"',
    r"<tiff:Orientation>[0-9]</tiff:Orientation>",
)


def strip_xmp_orientation(xmp: Any) -> Any:
    """Remove the tiff:Orientation attribute or element from an XMP packet."""
    for pattern in _XMP_ORIENTATION_PATTERNS:
        if isinstance(xmp, str):
            xmp = re.sub(pattern, "", xmp)
        elif isinstance(xmp, tuple):
            xmp = tuple(re.sub(pattern.encode(), b"", v) for v in xmp)
        else:
            xmp = re.sub(pattern.encode(), b"", bytes(xmp))
    return xmp


def ensure_heif_opener_registered() -> None:
    """Register pillow-heif with Pillow once so HEIC/HEIF files can be opened."""
    global _HEIF_REGISTERED

    with _HEIF_LOCK:
        if _HEIF_REGISTERED:
            return
        from pillow_heif import register_heif_opener

        register_heif_opener()
        _HEIF_REGISTERED = True
        logger.debug("pillow-heif opener registered")


def encode_tag_value(value: Any) -> Optional[bytes]:
    """
    Encode a decoded EXIF value back to raw bytes.

    Integers become little-endian unsigned SHORTs, so the first byte of an
    orientation value is the value itself.
    """
    if value is None:
        return None
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (tuple, list)):
        if not value:
            return b""
        return encode_tag_value(value[0])
    try:
        number = int(value)
    except (ValueError, TypeError):
        logger.debug(f"Cannot encode EXIF value {value!r}")
        return b""
    return (number & 0xFFFF).to_bytes(2, "little")


class PillowImageHandle:
    """
    Image handle over a decoded Pillow image and its EXIF block.

    Transforms replace the wrapped image; tag edits go to the EXIF snapshot,
    which is written back by save().

    Some decoders (Pillow's TIFF plugin) apply the orientation tag while
    loading and drop it. open() puts the tag back and remembers the transform
    the decoder already did, so apply_transform() only detaches the pixels
    for it.
    """

    def __init__(self, image: Image.Image, source_path: Optional[str] = None):
        self.image = image
        self.source_path = source_path
        self.format = image.format
        self.info: Dict[str, Any] = dict(image.info)
        self.exif = image.getexif()
        self.decoded_transform: Optional[Transform] = None

    @classmethod
    @contextmanager
    def open(cls, image_path: str) -> Iterator["PillowImageHandle"]:
        """Decode `image_path` fully and yield a handle over it."""
        ensure_heif_opener_registered()
        with Image.open(image_path) as img:
            declared = img.getexif().get(ORIENTATION_TAG_ID)
            img.load()
            handle = cls(img, source_path=image_path)
            if declared is not None and ORIENTATION_TAG_ID not in handle.exif:
                handle._restore_decoded_orientation(declared)
            yield handle

    def _restore_decoded_orientation(self, declared: Any) -> None:
        raw = encode_tag_value(declared)
        orientation = orientation_from_byte(raw[0] if raw else None)
        if orientation is None:
            return
        self.exif[ORIENTATION_TAG_ID] = declared
        self.decoded_transform = transform_for(orientation)
        logger.debug(
            f"Decoder already applied orientation {int(orientation)} "
            f"to '{os.path.basename(self.source_path or '')}'"
        )

    @property
    def size(self):
        return self.image.size

    def get_metadata_tag(self, tag_id: int) -> Optional[bytes]:
        if tag_id not in self.exif:
            return None
        return encode_tag_value(self.exif.get(tag_id))

    def remove_metadata_tag(self, tag_id: int) -> bool:
        if tag_id not in self.exif:
            return False
        del self.exif[tag_id]
        return True

    def apply_transform(self, transform: Transform) -> None:
        if transform is self.decoded_transform:
            # Pixels are upright already; copy them off the source file
            self.decoded_transform = None
            self.image = self.image.copy()
            return
        method = transform.pillow_method
        if method is None:
            return
        self.image = self.image.transpose(method)

    def _exif_bytes(self, image_format: Optional[str]) -> bytes:
        if image_format != "TIFF":
            return self.exif.tobytes()
        # TIFF keeps its layout in the same IFD; the encoder writes fresh values
        exif = Image.Exif()
        exif.load(self.exif.tobytes())
        for tag_id in _TIFF_LAYOUT_TAGS:
            if tag_id in exif:
                del exif[tag_id]
        if _TIFF_XMP_TAG in exif:
            exif[_TIFF_XMP_TAG] = strip_xmp_orientation(exif[_TIFF_XMP_TAG])
        return exif.tobytes()

    def _save_kwargs(
        self, image_format: Optional[str], quality: Optional[int] = None
    ) -> Dict[str, Any]:
        save_kwargs: Dict[str, Any] = {}
        if image_format == "JPEG":
            save_kwargs["quality"] = quality or get_jpeg_quality()
            save_kwargs["optimize"] = True
        elif image_format == "PNG":
            save_kwargs["optimize"] = True
        elif image_format in ["HEIF", "HEIC"]:
            # pillow-heif picks quality itself
            pass

        icc_profile = self.info.get("icc_profile")
        if icc_profile:
            save_kwargs["icc_profile"] = icc_profile

        xmp = self.info.get("xmp")
        if xmp and image_format in _XMP_KWARG_FORMATS:
            save_kwargs["xmp"] = strip_xmp_orientation(xmp)

        # Carry the edited EXIF block; it no longer holds the orientation tag
        if len(self.exif) or "exif" in self.info:
            save_kwargs["exif"] = self._exif_bytes(image_format)
        return save_kwargs

    def save(
        self,
        output_path: str,
        image_format: Optional[str] = None,
        quality: Optional[int] = None,
    ) -> None:
        """Encode to `output_path` in the source format unless told otherwise."""
        image_format = image_format or self.format
        # Pillow reports camera JPEGs carrying preview images as MPO
        if image_format == "MPO":
            image_format = "JPEG"
        if image_format is None:
            raise ValueError(
                f"Unknown image format for '{os.path.basename(output_path)}'"
            )

        self.image.save(
            output_path,
            format=image_format,
            **self._save_kwargs(image_format, quality),
        )
        logger.debug(
            f"Saved '{os.path.basename(output_path)}' as {image_format} "
            f"({self.image.size[0]}x{self.image.size[1]})"
        )
