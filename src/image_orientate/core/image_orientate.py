import logging

from image_orientate.app_settings import ORIENTATION_TAG_ID
from image_orientate.core.orientation import (
    ImageHandle,
    OrientationResolution,
    ResolutionKind,
    resolve_orientation,
)

logger = logging.getLogger(__name__)


class ImageOrientate:
    """
    Physically rotates an image based on its EXIF orientation tag.

    Some viewers honour the tag and others ignore it. Rotating the pixels and
    then removing the tag makes every viewer show the same thing.
    """

    @staticmethod
    def process(image: ImageHandle) -> bool:
        """
        Apply the transform demanded by the image's orientation tag.

        Images with no tag, an invalid tag or the top-left orientation are left
        untouched. Never raises.

        Returns:
            bool: True if the pixel buffer was altered.
        """
        try:
            resolution = resolve_orientation(image)
        except Exception as e:
            logger.warning(f"Could not read orientation tag: {e}")
            return False

        if not resolution.needs_transform:
            ImageOrientate._log_untouched(resolution)
            return False

        try:
            image.apply_transform(resolution.transform)
        except Exception as e:
            logger.warning(
                f"Could not apply {resolution.transform.value} "
                f"for orientation {resolution.orientation.name}: {e}"
            )
            return False

        # otherwise supporting viewers will re-apply the rotation we just did
        ImageOrientate._remove_orientation_tag(image)
        return True

    @staticmethod
    def _remove_orientation_tag(image: ImageHandle) -> None:
        """Best-effort removal; the pixels are already rotated either way."""
        try:
            removed = image.remove_metadata_tag(ORIENTATION_TAG_ID)
        except Exception as e:
            logger.debug(f"Orientation tag removal raised, image still altered: {e}")
            return
        if not removed:
            logger.debug("Orientation tag removal rejected, image still altered")

    @staticmethod
    def _log_untouched(resolution: OrientationResolution) -> None:
        if resolution.kind is ResolutionKind.INVALID:
            logger.debug(
                f"Ignoring invalid orientation value {resolution.raw_value!r}"
            )
        elif resolution.kind is ResolutionKind.MISSING:
            logger.debug("No orientation tag set")


def process(image: ImageHandle) -> bool:
    """Module-level shortcut for ImageOrientate.process."""
    return ImageOrientate.process(image)
