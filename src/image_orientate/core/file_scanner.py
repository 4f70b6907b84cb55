import os
import logging
from typing import Iterable, List

from image_orientate.app_settings import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


def is_supported_image(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in SUPPORTED_EXTENSIONS


def _scan_directory(directory_path: str, recursive: bool) -> List[str]:
    found: List[str] = []
    if recursive:
        for root, dirs, files in os.walk(directory_path):
            dirs.sort()
            for filename in sorted(files):
                if is_supported_image(filename):
                    found.append(os.path.join(root, filename))
    else:
        for filename in sorted(os.listdir(directory_path)):
            full_path = os.path.join(directory_path, filename)
            if os.path.isfile(full_path) and is_supported_image(filename):
                found.append(full_path)
    logger.debug(f"Found {len(found)} image(s) in '{directory_path}'")
    return found


def collect_image_paths(paths: Iterable[str], recursive: bool = False) -> List[str]:
    """
    Expand command-line paths into the list of files to process.

    Files are kept as given, in order, whatever their extension; the pipeline
    reports unsupported ones. Directories contribute their supported images.
    """
    collected: List[str] = []
    for path in paths:
        if os.path.isdir(path):
            collected.extend(_scan_directory(path, recursive))
        else:
            collected.append(path)
    return collected
