"""
Lossless JPEG handle.

Transforms the file on disk with jpegtran, which rearranges DCT blocks
instead of decoding and re-encoding the pixels, and edits the orientation
tag with pyexiv2.
"""

import os
import logging
import subprocess
from typing import Dict, List, Optional

from image_orientate.app_settings import (
    JPEGTRAN_PROBE_TIMEOUT_SECONDS,
    JPEGTRAN_TIMEOUT_SECONDS,
    ORIENTATION_TAG_ID,
    get_jpegtran_path,
)
from image_orientate.core.image_file_ops import ImageFileOperations
from image_orientate.core.image_handle import encode_tag_value
from image_orientate.core.metadata_io import MetadataIO
from image_orientate.core.orientation import Transform

logger = logging.getLogger(__name__)

_AVAILABILITY_CACHE: Dict[str, bool] = {}


class LosslessTransformError(Exception):
    """jpegtran could not perform a transform."""

    pass


def jpegtran_available(jpegtran_path: Optional[str] = None) -> bool:
    """Check if jpegtran can be run (result cached per binary)."""
    jpegtran_path = jpegtran_path or get_jpegtran_path()
    if jpegtran_path in _AVAILABILITY_CACHE:
        return _AVAILABILITY_CACHE[jpegtran_path]

    try:
        # jpegtran prints its version and waits on stdin; feed it nothing
        result = subprocess.run(
            [jpegtran_path, "-version"],
            input=b"",
            capture_output=True,
            timeout=JPEGTRAN_PROBE_TIMEOUT_SECONDS,
        )
        available = result.returncode == 0
    except (
        subprocess.SubprocessError,
        FileNotFoundError,
        PermissionError,
    ):
        available = False

    logger.info(f"jpegtran availability ({jpegtran_path}): {available}")
    _AVAILABILITY_CACHE[jpegtran_path] = available
    return available


class LosslessJpegHandle:
    """Image handle backed directly by a JPEG file."""

    def __init__(self, image_path: str, jpegtran_path: Optional[str] = None):
        self.image_path = image_path
        self.jpegtran_path = jpegtran_path or get_jpegtran_path()
        self.transform_error: Optional[LosslessTransformError] = None

    def _build_command(self, transform: Transform) -> List[str]:
        return [
            self.jpegtran_path,
            "-copy",
            "all",
            "-perfect",
            *transform.jpegtran_args,
            self.image_path,
        ]

    def get_metadata_tag(self, tag_id: int) -> Optional[bytes]:
        if tag_id != ORIENTATION_TAG_ID:
            return None
        return encode_tag_value(MetadataIO.read_exif_orientation(self.image_path))

    def remove_metadata_tag(self, tag_id: int) -> bool:
        if tag_id != ORIENTATION_TAG_ID:
            return False
        return MetadataIO.remove_exif_orientation(self.image_path)

    def apply_transform(self, transform: Transform) -> None:
        """
        Rewrite the file with `transform` applied.

        Raises:
            LosslessTransformError: if jpegtran fails; the file is untouched.
        """
        if transform is Transform.IDENTITY:
            return
        try:
            self._run_jpegtran(transform)
            self.transform_error = None
        except LosslessTransformError as e:
            self.transform_error = e
            raise

    def _run_jpegtran(self, transform: Transform) -> None:
        filename = os.path.basename(self.image_path)
        temp_path = ImageFileOperations.make_sibling_temp_path(self.image_path)
        try:
            with open(temp_path, "wb") as out:
                result = subprocess.run(
                    self._build_command(transform),
                    stdout=out,
                    stderr=subprocess.PIPE,
                    timeout=JPEGTRAN_TIMEOUT_SECONDS,
                )
            if result.returncode != 0 or os.path.getsize(temp_path) == 0:
                stderr = result.stderr.decode(errors="replace").strip()
                raise LosslessTransformError(
                    f"jpegtran {transform.value} failed for '{filename}': {stderr}"
                )

            success, msg = ImageFileOperations.replace_file(temp_path, self.image_path)
            if not success:
                raise LosslessTransformError(msg)
            logger.debug(f"Lossless {transform.value} applied to '{filename}'")
        except (subprocess.SubprocessError, OSError) as e:
            raise LosslessTransformError(
                f"jpegtran {transform.value} failed for '{filename}': {e}"
            ) from e
        finally:
            ImageFileOperations.discard_temp_file(temp_path)
