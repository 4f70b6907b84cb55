import os
import sys
import time
import logging
import argparse
from typing import List, Optional, Sequence

from image_orientate import __version__
from image_orientate.app_settings import (
    DEFAULT_JPEG_QUALITY,
    ENABLE_FILE_LOGGING_ENV,
    JPEG_QUALITY_ENV,
    get_log_file_path,
    is_file_logging_enabled,
)
from image_orientate.core.file_scanner import collect_image_paths
from image_orientate.core.image_pipeline import (
    FileOutcome,
    ImagePipeline,
    OutcomeStatus,
)

logger = logging.getLogger(__name__)


def _jpeg_quality(value: str) -> int:
    quality = int(value)
    if not 1 <= quality <= 95:
        raise argparse.ArgumentTypeError(f"quality must be 1-95, got {quality}")
    return quality


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-orientate",
        description=(
            "Rotate/flip images according to their EXIF orientation tag and "
            "remove the tag, so every viewer shows them the same way."
        ),
    )
    parser.add_argument(
        "paths", nargs="+", help="Image files or folders to orientate in place"
    )
    parser.add_argument(
        "--lossless",
        action="store_true",
        help="Use jpegtran for JPEGs when available instead of re-encoding",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report which files would be altered",
    )
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Descend into sub-folders of folder arguments",
    )
    parser.add_argument(
        "--quality",
        type=_jpeg_quality,
        default=None,
        help="JPEG quality (1-95) when re-encoding; defaults to "
        f"${JPEG_QUALITY_ENV} or {DEFAULT_JPEG_QUALITY}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log each file as it is handled"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def setup_logging(verbose: bool = False) -> None:
    """Console logging to stderr plus optional file logging."""
    root_logger = logging.getLogger()

    # Remove any existing handlers
    for handler in root_logger.handlers[:]:  # Iterate over a copy
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)-8s - [%(name)s] - [%(filename)s:%(lineno)d] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if is_file_logging_enabled():
        log_file_path = get_log_file_path()
        try:
            os.makedirs(os.path.dirname(log_file_path) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file_path, mode="a")
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)
            root_logger.setLevel(logging.DEBUG)
            logging.info(f"File logging enabled: {log_file_path}")
        except OSError as e_file_log:
            logging.error(
                f"Failed to initialize file logging: {e_file_log}", exc_info=True
            )
    else:
        logging.debug(f"File logging disabled. To enable, set {ENABLE_FILE_LOGGING_ENV}=true.")

    # --- Suppress verbose third-party loggers ---
    logging.getLogger("PIL").setLevel(logging.INFO)
    logging.getLogger("PIL.PngImagePlugin").setLevel(logging.INFO)
    logging.getLogger("PIL.TiffImagePlugin").setLevel(logging.INFO)
    logging.getLogger("PIL.Image").setLevel(logging.INFO)


def report(outcomes: List[FileOutcome], dry_run: bool = False) -> None:
    """Failures go to stderr, a one-line summary to stdout."""
    for outcome in outcomes:
        if outcome.failed:
            print(outcome.message, file=sys.stderr)
        elif dry_run and outcome.status is OutcomeStatus.ALTERED:
            print(f"{outcome.path}: {outcome.message}")

    altered = sum(1 for o in outcomes if o.status is OutcomeStatus.ALTERED)
    failed = sum(1 for o in outcomes if o.failed)
    verb = "Would orientate" if dry_run else "Orientated"
    summary = f"{verb} {altered} of {len(outcomes)} image(s)"
    if failed:
        summary += f", {failed} failed"
    print(summary)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main command-line entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    start_time = time.perf_counter()
    image_paths = collect_image_paths(args.paths, recursive=args.recursive)
    pipeline = ImagePipeline(
        lossless=args.lossless, dry_run=args.dry_run, quality=args.quality
    )
    outcomes = pipeline.orientate_files(image_paths)
    report(outcomes, dry_run=args.dry_run)

    logger.debug(
        f"Handled {len(outcomes)} file(s) in {time.perf_counter() - start_time:.4f}s"
    )
    return 1 if any(o.failed for o in outcomes) else 0


if __name__ == "__main__":
    sys.exit(main())
