"""
Application Settings Module
Constants and environment-driven settings for image-orientate.
"""

import os

# --- Environment Keys ---
ENABLE_FILE_LOGGING_ENV = "IMAGE_ORIENTATE_ENABLE_FILE_LOGGING"
LOG_FILE_PATH_ENV = "IMAGE_ORIENTATE_LOG_FILE"
JPEGTRAN_PATH_ENV = "IMAGE_ORIENTATE_JPEGTRAN"  # Override the jpegtran binary
JPEG_QUALITY_ENV = "IMAGE_ORIENTATE_JPEG_QUALITY"

# --- EXIF Constants ---
ORIENTATION_TAG_ID = 0x112  # EXIF property under which orientation is stored
EXIF_ORIENTATION_KEY = "Exif.Image.Orientation"  # pyexiv2 key for the same tag
XMP_ORIENTATION_KEY = "Xmp.tiff.Orientation"

# --- Default Values ---
DEFAULT_JPEGTRAN_PATH = "jpegtran"
DEFAULT_JPEG_QUALITY = 95  # Quality used when re-encoding JPEGs with Pillow
DEFAULT_LOG_FILE_PATH = os.path.join(
    os.path.expanduser("~"), ".image_orientate_logs", "image_orientate.log"
)

# --- Processing Constants ---
JPEGTRAN_TIMEOUT_SECONDS = 30  # Timeout for a single jpegtran invocation
JPEGTRAN_PROBE_TIMEOUT_SECONDS = 5  # Timeout for the `jpegtran -version` probe

# Formats that can carry an EXIF orientation tag and be re-encoded by Pillow
SUPPORTED_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".tif",
    ".tiff",
    ".webp",
    ".heic",
    ".heif",
}
LOSSLESS_JPEG_EXTENSIONS = {".jpg", ".jpeg"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes"}


def is_file_logging_enabled() -> bool:
    """File logging is opt-in via IMAGE_ORIENTATE_ENABLE_FILE_LOGGING=true."""
    return _env_flag(ENABLE_FILE_LOGGING_ENV)


def get_log_file_path() -> str:
    return os.environ.get(LOG_FILE_PATH_ENV) or DEFAULT_LOG_FILE_PATH


def get_jpegtran_path() -> str:
    return os.environ.get(JPEGTRAN_PATH_ENV) or DEFAULT_JPEGTRAN_PATH


def get_jpeg_quality() -> int:
    """JPEG re-encoding quality (1-95), defaulting to DEFAULT_JPEG_QUALITY."""
    raw = os.environ.get(JPEG_QUALITY_ENV)
    if not raw:
        return DEFAULT_JPEG_QUALITY
    try:
        quality = int(raw)
    except (ValueError, TypeError):
        return DEFAULT_JPEG_QUALITY
    return max(1, min(95, quality))
