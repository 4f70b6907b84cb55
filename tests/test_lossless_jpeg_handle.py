import pyexiv2  # noqa: F401  # Fail fast if the native library is missing
import os
import shutil
import subprocess
from unittest.mock import patch

import pytest

from image_orientate.core import lossless_jpeg_handle
from image_orientate.core.image_orientate import process
from image_orientate.core.lossless_jpeg_handle import (
    LosslessJpegHandle,
    LosslessTransformError,
    jpegtran_available,
)
from image_orientate.core.orientation import Transform

from conftest import ORIENTATION_TAG, read_orientation, read_size

JPEGTRAN = shutil.which("jpegtran")


@pytest.fixture(autouse=True)
def clear_availability_cache():
    lossless_jpeg_handle._AVAILABILITY_CACHE.clear()
    yield
    lossless_jpeg_handle._AVAILABILITY_CACHE.clear()


class TestJpegtranAvailability:
    def test_available_when_probe_succeeds(self):
        with patch("image_orientate.core.lossless_jpeg_handle.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess(["jpegtran"], 0)
            assert jpegtran_available("jpegtran") is True
            assert jpegtran_available("jpegtran") is True
            run.assert_called_once()

    def test_unavailable_when_binary_missing(self):
        with patch(
            "image_orientate.core.lossless_jpeg_handle.subprocess.run",
            side_effect=FileNotFoundError("jpegtran"),
        ):
            assert jpegtran_available("no-such-jpegtran") is False

    def test_unavailable_on_non_zero_exit(self):
        with patch("image_orientate.core.lossless_jpeg_handle.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess(["jpegtran"], 1)
            assert jpegtran_available("broken-jpegtran") is False


class TestLosslessJpegHandle:
    def test_build_command(self):
        handle = LosslessJpegHandle("/photos/a.jpg", jpegtran_path="/usr/bin/jpegtran")
        assert handle._build_command(Transform.ROTATE_90) == [
            "/usr/bin/jpegtran",
            "-copy",
            "all",
            "-perfect",
            "-rotate",
            "90",
            "/photos/a.jpg",
        ]
        assert handle._build_command(Transform.ROTATE_90_FLIP_HORIZONTAL)[-2:] == [
            "-transpose",
            "/photos/a.jpg",
        ]

    def test_reads_orientation_tag(self, make_image):
        handle = LosslessJpegHandle(make_image(orientation=5))
        assert handle.get_metadata_tag(ORIENTATION_TAG) == b"\x05\x00"
        assert handle.get_metadata_tag(0x010F) is None

    def test_missing_tag(self, make_image):
        handle = LosslessJpegHandle(make_image())
        assert handle.get_metadata_tag(ORIENTATION_TAG) is None

    def test_remove_tag(self, make_image):
        path = make_image(orientation=5)
        handle = LosslessJpegHandle(path)
        assert handle.remove_metadata_tag(ORIENTATION_TAG) is True
        assert read_orientation(path) is None
        assert handle.remove_metadata_tag(0x010F) is False

    def test_failed_jpegtran_leaves_file_untouched(self, make_image):
        path = make_image(orientation=6)
        with open(path, "rb") as f:
            before = f.read()

        handle = LosslessJpegHandle(path, jpegtran_path="jpegtran")
        failed = subprocess.CompletedProcess([], 1, stderr=b"transformation is not perfect")
        with patch(
            "image_orientate.core.lossless_jpeg_handle.subprocess.run",
            return_value=failed,
        ):
            with pytest.raises(LosslessTransformError, match="not perfect"):
                handle.apply_transform(Transform.ROTATE_90)

        assert isinstance(handle.transform_error, LosslessTransformError)
        with open(path, "rb") as f:
            assert f.read() == before
        leftovers = [n for n in os.listdir(os.path.dirname(path)) if n.startswith(".orientate-")]
        assert leftovers == []

    def test_failed_jpegtran_through_process(self, make_image):
        path = make_image(orientation=6)
        handle = LosslessJpegHandle(path, jpegtran_path="jpegtran")
        with patch(
            "image_orientate.core.lossless_jpeg_handle.subprocess.run",
            side_effect=FileNotFoundError("jpegtran"),
        ):
            assert process(handle) is False

        assert handle.transform_error is not None
        assert read_orientation(path) == 6

    @pytest.mark.skipif(JPEGTRAN is None, reason="jpegtran not installed")
    @pytest.mark.parametrize(
        "orientation,expected_size",
        [(2, (32, 16)), (3, (32, 16)), (6, (16, 32)), (8, (16, 32))],
    )
    def test_real_jpegtran(self, make_image, orientation, expected_size):
        path = make_image(size=(32, 16), orientation=orientation)
        handle = LosslessJpegHandle(path, jpegtran_path=JPEGTRAN)

        assert process(handle) is True
        assert read_size(path) == expected_size
        assert read_orientation(path) is None
