import os
import logging
from typing import Optional

from image_orientate.app_settings import EXIF_ORIENTATION_KEY, XMP_ORIENTATION_KEY
from image_orientate.core.pyexiv2_wrapper import safe_pyexiv2_image

logger = logging.getLogger(__name__)


def _is_file_missing_error(exception: Exception, file_path: str) -> bool:
    """True if the exception indicates a missing or inaccessible file."""
    msg = str(exception)
    return (
        ("No such file" in msg)
        or ("errno = 2" in msg)
        or (not os.path.isfile(file_path))
    )


class MetadataIO:
    """Thin facade over pyexiv2 for the orientation tag of an image file.

    Reads return None and writes return False on failure; errors are logged
    here and never raised.
    """

    @staticmethod
    def _log_failure(action: str, operational_path: str, e: Exception) -> None:
        if _is_file_missing_error(e, operational_path):
            logger.warning(f"File missing while {action}: {operational_path} ({e})")
        else:
            logger.error(
                f"Error {action} for {os.path.basename(operational_path)}: {e}",
                exc_info=True,
            )

    @staticmethod
    def read_exif_orientation(operational_path: str) -> Optional[int]:
        """Raw EXIF orientation value if the tag is present, else None.

        The value is returned as stored, so out-of-range values survive.
        """
        try:
            with safe_pyexiv2_image(operational_path) as img:
                exif = img.read_exif() or {}
                val = exif.get(EXIF_ORIENTATION_KEY)
                if val is None:
                    return None
                # Multi-valued tags come back space separated
                return int(str(val).split()[0])
        except (ValueError, IndexError) as e:
            logger.warning(
                f"Unreadable EXIF orientation in {os.path.basename(operational_path)}: {e}"
            )
            return None
        except Exception as e:
            MetadataIO._log_failure("reading EXIF orientation", operational_path, e)
            return None

    @staticmethod
    def set_exif_orientation(operational_path: str, orientation: int) -> bool:
        """Write the EXIF orientation tag. Returns True if succeeded."""
        try:
            with safe_pyexiv2_image(operational_path) as img:
                img.modify_exif({EXIF_ORIENTATION_KEY: str(int(orientation))})
                return True
        except Exception as e:
            MetadataIO._log_failure("setting EXIF orientation", operational_path, e)
            return False

    @staticmethod
    def remove_exif_orientation(operational_path: str) -> bool:
        """
        Delete the EXIF orientation tag, and its XMP mirror when present.

        Returns:
            bool: True if the EXIF tag existed and was deleted.
        """
        try:
            with safe_pyexiv2_image(operational_path) as img:
                exif = img.read_exif() or {}
                if EXIF_ORIENTATION_KEY not in exif:
                    return False
                img.modify_exif({EXIF_ORIENTATION_KEY: None})

                try:
                    xmp = img.read_xmp() or {}
                    if XMP_ORIENTATION_KEY in xmp:
                        img.modify_xmp({XMP_ORIENTATION_KEY: None})
                except Exception as e:
                    logger.debug(
                        f"Could not remove XMP orientation for {os.path.basename(operational_path)}: {e}"
                    )
                return True
        except Exception as e:
            MetadataIO._log_failure("removing EXIF orientation", operational_path, e)
            return False

    @staticmethod
    def read_mime_type(operational_path: str) -> Optional[str]:
        """MIME type exiv2 detects from the file contents, or None."""
        try:
            with safe_pyexiv2_image(operational_path) as img:
                return img.get_mime_type()
        except Exception as e:
            logger.debug(
                f"Could not detect MIME type of {os.path.basename(operational_path)}: {e}"
            )
            return None
