import os
import shutil
import logging
import tempfile
from typing import Tuple

logger = logging.getLogger(__name__)


class ImageFileOperations:
    """Handles file system operations for image files."""

    @staticmethod
    def make_sibling_temp_path(target_path: str) -> str:
        """
        Creates an empty temporary file next to `target_path`.

        Keeping it in the same directory makes the later replace a rename
        on the same filesystem. The extension is kept so encoders can infer
        the format.
        """
        directory = os.path.dirname(os.path.abspath(target_path))
        _, ext = os.path.splitext(target_path)
        fd, temp_path = tempfile.mkstemp(
            suffix=ext, prefix=".orientate-", dir=directory
        )
        os.close(fd)
        return temp_path

    @staticmethod
    def discard_temp_file(temp_path: str) -> None:
        if os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError as e:
                logger.warning(f"Could not delete temporary file '{temp_path}': {e}")

    @staticmethod
    def replace_file(source_path: str, destination_path: str) -> Tuple[bool, str]:
        """
        Moves `source_path` over `destination_path`.

        Both paths normally share a directory, so this is an atomic rename;
        otherwise the move copies across filesystems.

        Returns:
            tuple: (bool, str) indicating success and a message.
        """
        if not os.path.isfile(source_path):
            return False, f"Source file not found: {source_path}"
        same_dir = os.path.dirname(os.path.abspath(source_path)) == os.path.dirname(
            os.path.abspath(destination_path)
        )
        try:
            if same_dir:
                os.replace(source_path, destination_path)
            else:
                shutil.move(source_path, destination_path)
        except OSError as e:
            error_msg = (
                f"Error replacing file '{os.path.basename(destination_path)}': {e}"
            )
            logger.error(error_msg, exc_info=True)
            return False, error_msg
        logger.debug(f"Replaced '{os.path.basename(destination_path)}'")
        return True, "File replaced successfully."
