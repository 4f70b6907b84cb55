"""
Image Pipeline
File-level driver: opens an image, lets ImageOrientate decide and transform,
and writes the file back only when the pixels changed.
"""

import os
import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from image_orientate.app_settings import LOSSLESS_JPEG_EXTENSIONS
from image_orientate.core.file_scanner import is_supported_image
from image_orientate.core.image_file_ops import ImageFileOperations
from image_orientate.core.image_handle import PillowImageHandle
from image_orientate.core.image_orientate import ImageOrientate
from image_orientate.core.lossless_jpeg_handle import (
    LosslessJpegHandle,
    jpegtran_available,
)
from image_orientate.core.metadata_io import MetadataIO
from image_orientate.core.orientation import (
    ImageHandle,
    Orientation,
    OrientationResolution,
    resolve_orientation,
)

logger = logging.getLogger(__name__)

METHOD_STANDARD = "standard"
METHOD_LOSSLESS = "lossless JPEG"
JPEG_MIME_TYPE = "image/jpeg"


def _transform_name(resolution: OrientationResolution) -> str:
    if resolution.transform is None:
        return "orientation transform"
    return resolution.transform.value


class OutcomeStatus(Enum):
    ALTERED = "altered"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class FileOutcome:
    """What happened to one file."""

    path: str
    status: OutcomeStatus
    message: str = ""
    orientation: Optional[Orientation] = None
    method: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED


class ImagePipeline:
    """
    Orientates image files in place.

    Args:
        lossless: Use jpegtran for JPEGs when it is installed, falling back
            to re-encoding with Pillow if jpegtran cannot do the transform.
        dry_run: Only report what would happen; never write.
        jpegtran_path: jpegtran binary, defaults to the configured one.
        quality: JPEG quality when re-encoding, defaults to the configured one.
    """

    def __init__(
        self,
        lossless: bool = False,
        dry_run: bool = False,
        jpegtran_path: Optional[str] = None,
        quality: Optional[int] = None,
    ):
        self.lossless = lossless
        self.dry_run = dry_run
        self.jpegtran_path = jpegtran_path
        self.quality = quality

    def _use_lossless(self, image_path: str) -> bool:
        if not self.lossless:
            return False
        if os.path.splitext(image_path)[1].lower() not in LOSSLESS_JPEG_EXTENSIONS:
            return False
        # Go by the contents; the extension may lie
        if MetadataIO.read_mime_type(image_path) != JPEG_MIME_TYPE:
            logger.debug(f"'{os.path.basename(image_path)}' is not a JPEG, re-encoding")
            return False
        return jpegtran_available(self.jpegtran_path)

    @staticmethod
    def _resolve_quietly(handle: ImageHandle) -> OrientationResolution:
        try:
            return resolve_orientation(handle)
        except Exception as e:
            logger.debug(f"Could not resolve orientation for reporting: {e}")
            return OrientationResolution.missing()

    def orientate_file(self, image_path: str) -> FileOutcome:
        """Process one file. Never raises; failures become FAILED outcomes."""
        filename = os.path.basename(image_path)
        if not os.path.isfile(image_path):
            return FileOutcome(
                image_path,
                OutcomeStatus.FAILED,
                f"Couldn't read the image at {image_path}.",
            )
        if not is_supported_image(image_path):
            return FileOutcome(
                image_path,
                OutcomeStatus.SKIPPED,
                f"Unsupported file type: {filename}",
            )

        start_time = time.perf_counter()
        try:
            if self.dry_run:
                outcome = self._preview(image_path)
            else:
                outcome = None
                if self._use_lossless(image_path):
                    outcome = self._orientate_lossless(image_path)
                if outcome is None:
                    outcome = self._orientate_standard(image_path)
        except FileNotFoundError:
            return FileOutcome(
                image_path,
                OutcomeStatus.FAILED,
                f"Couldn't read the image at {image_path}.",
            )
        except Exception as e:
            logger.debug(f"Failed to orientate '{filename}': {e}", exc_info=True)
            return FileOutcome(
                image_path,
                OutcomeStatus.FAILED,
                f"Unable to process '{image_path}': {e}.",
            )

        logger.debug(
            f"'{filename}' {outcome.status.value} in {time.perf_counter() - start_time:.4f}s"
        )
        return outcome

    def orientate_files(self, image_paths: Iterable[str]) -> List[FileOutcome]:
        """Process files one after the other, continuing past failures."""
        return [self.orientate_file(path) for path in image_paths]

    def _preview(self, image_path: str) -> FileOutcome:
        with PillowImageHandle.open(image_path) as handle:
            resolution = self._resolve_quietly(handle)
        if resolution.needs_transform:
            return FileOutcome(
                image_path,
                OutcomeStatus.ALTERED,
                f"Would apply {resolution.transform.value}",
                orientation=resolution.orientation,
            )
        return FileOutcome(
            image_path,
            OutcomeStatus.UNCHANGED,
            "No transform needed",
            orientation=resolution.orientation,
        )

    def _orientate_standard(self, image_path: str) -> FileOutcome:
        filename = os.path.basename(image_path)
        with PillowImageHandle.open(image_path) as handle:
            resolution = self._resolve_quietly(handle)
            altered = ImageOrientate.process(handle)

        if not altered:
            return FileOutcome(
                image_path,
                OutcomeStatus.UNCHANGED,
                "No transform needed",
                orientation=resolution.orientation,
            )

        # The transformed image is detached from the closed source file
        temp_path = ImageFileOperations.make_sibling_temp_path(image_path)
        try:
            handle.save(temp_path, quality=self.quality)
            success, msg = ImageFileOperations.replace_file(temp_path, image_path)
            if not success:
                raise OSError(msg)
        finally:
            ImageFileOperations.discard_temp_file(temp_path)

        message = f"Applied {_transform_name(resolution)} to {filename}"
        logger.info(message)
        return FileOutcome(
            image_path,
            OutcomeStatus.ALTERED,
            message,
            orientation=resolution.orientation,
            method=METHOD_STANDARD,
        )

    def _orientate_lossless(self, image_path: str) -> Optional[FileOutcome]:
        """Returns None when jpegtran failed and Pillow should take over."""
        filename = os.path.basename(image_path)
        handle = LosslessJpegHandle(image_path, self.jpegtran_path)
        resolution = self._resolve_quietly(handle)

        if ImageOrientate.process(handle):
            message = f"Applied {_transform_name(resolution)} to {filename} losslessly"
            logger.info(message)
            return FileOutcome(
                image_path,
                OutcomeStatus.ALTERED,
                message,
                orientation=resolution.orientation,
                method=METHOD_LOSSLESS,
            )

        if handle.transform_error is not None:
            logger.warning(
                f"Lossless transform failed for '{filename}', re-encoding instead: "
                f"{handle.transform_error}"
            )
            return None

        return FileOutcome(
            image_path,
            OutcomeStatus.UNCHANGED,
            "No transform needed",
            orientation=resolution.orientation,
        )
