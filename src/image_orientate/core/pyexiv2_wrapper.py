"""
Locked access to pyexiv2

libexiv2 keeps global state, so every image opened here holds a single
module lock from open until close.
"""

import os
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import pyexiv2

logger = logging.getLogger(__name__)

# Held from open to close of each image
_PYEXIV2_LOCK = threading.Lock()


class PyExiv2Error(Exception):
    """Raised when pyexiv2 access cannot even start."""


class PyExiv2ImageWrapper:
    """
    Locked wrapper around pyexiv2.Image.

    Only the calls image-orientate needs are exposed: reading and editing
    EXIF/XMP, where a value of None deletes the key.
    """

    def __init__(self, image_path: str, encoding: str = "utf-8"):
        self.image_path = image_path
        self.encoding = encoding
        self._img = None

    def __enter__(self):
        _PYEXIV2_LOCK.acquire()
        try:
            self._img = pyexiv2.Image(self.image_path, encoding=self.encoding)
            return self
        except Exception as e:
            logger.debug(f"pyexiv2 could not open '{self.image_path}': {e}")
            _PYEXIV2_LOCK.release()
            raise

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if self._img is not None:
                self._img.close()
        finally:
            self._img = None
            _PYEXIV2_LOCK.release()

    def _require_open(self):
        if self._img is None:
            raise PyExiv2Error("Image not opened")
        return self._img

    def get_mime_type(self) -> str:
        return self._require_open().get_mime_type()

    def read_exif(self) -> Optional[Dict[str, Any]]:
        return self._require_open().read_exif()

    def read_xmp(self) -> Optional[Dict[str, Any]]:
        return self._require_open().read_xmp()

    def modify_exif(self, exif_dict: Dict[str, Any]) -> None:
        self._require_open().modify_exif(exif_dict)

    def modify_xmp(self, xmp_dict: Dict[str, Any]) -> None:
        self._require_open().modify_xmp(xmp_dict)


@contextmanager
def safe_pyexiv2_image(
    image_path: str, encoding: str = "utf-8"
) -> Iterator[PyExiv2ImageWrapper]:
    """
    Context manager for locked pyexiv2.Image access.

    Example:
        with safe_pyexiv2_image(image_path) as img:
            exif_data = img.read_exif()
    """
    if not os.path.isfile(image_path):
        raise PyExiv2Error(f"No such file: {image_path}")
    wrapper = PyExiv2ImageWrapper(image_path, encoding)
    with wrapper as img:
        yield img
