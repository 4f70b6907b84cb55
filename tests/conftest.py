import os
from typing import List, Optional, Tuple

import pytest
from PIL import Image

ORIENTATION_TAG = 0x0112
MAKE_TAG = 0x010F


def write_image(
    path: str,
    size: Tuple[int, int] = (16, 8),
    orientation: Optional[int] = None,
    image_format: str = "JPEG",
    make: Optional[str] = None,
) -> str:
    """Write a test image with an optional orientation tag."""
    img = Image.new("RGB", size, color=(200, 30, 30))
    # Mark the top-left corner so rotations are observable
    img.paste((20, 200, 20), (0, 0, max(1, size[0] // 4), max(1, size[1] // 4)))

    exif = Image.Exif()
    if orientation is not None:
        exif[ORIENTATION_TAG] = orientation
    if make is not None:
        exif[MAKE_TAG] = make

    save_kwargs = {}
    if len(exif):
        save_kwargs["exif"] = exif.tobytes()
    if image_format == "JPEG":
        save_kwargs["quality"] = 90
    img.save(path, format=image_format, **save_kwargs)
    return path


def read_orientation(path: str) -> Optional[int]:
    with Image.open(path) as img:
        return img.getexif().get(ORIENTATION_TAG)


def read_size(path: str) -> Tuple[int, int]:
    with Image.open(path) as img:
        return img.size


@pytest.fixture
def make_image(tmp_path):
    """Factory fixture creating images inside tmp_path."""
    created: List[str] = []

    def _make(
        name: str = "photo.jpg",
        size: Tuple[int, int] = (16, 8),
        orientation: Optional[int] = None,
        image_format: str = "JPEG",
        make: Optional[str] = None,
    ) -> str:
        path = os.path.join(str(tmp_path), name)
        write_image(path, size, orientation, image_format, make)
        created.append(path)
        return path

    return _make
