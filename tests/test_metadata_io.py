import pyexiv2  # noqa: F401  # Fail fast if the native library is missing
import pytest
from unittest.mock import patch, MagicMock

from image_orientate.core.metadata_io import MetadataIO
from image_orientate.core.pyexiv2_wrapper import (
    PyExiv2Error,
    PyExiv2ImageWrapper,
    safe_pyexiv2_image,
)

from conftest import read_orientation


class TestPyExiv2Wrapper:
    def test_error_without_context(self):
        wrapper = PyExiv2ImageWrapper("dummy_path")
        with pytest.raises(PyExiv2Error, match="Image not opened"):
            wrapper.read_exif()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(PyExiv2Error):
            with safe_pyexiv2_image(str(tmp_path / "nope.jpg")):
                pass

    def test_context_manager_reads_mime_type(self, make_image):
        path = make_image()
        with safe_pyexiv2_image(path) as img:
            assert img.get_mime_type() == "image/jpeg"

    def test_close_called_on_error(self, make_image):
        path = make_image()
        with patch("image_orientate.core.pyexiv2_wrapper.pyexiv2.Image") as mock_cls:
            mock_img = MagicMock()
            mock_img.read_exif.side_effect = RuntimeError("boom")
            mock_cls.return_value = mock_img

            with pytest.raises(RuntimeError):
                with safe_pyexiv2_image(path) as img:
                    img.read_exif()

            mock_img.close.assert_called_once()

        # Lock was released: a second open must not block
        with safe_pyexiv2_image(path) as img:
            assert img.read_exif() is not None


class TestMetadataIO:
    def test_read_orientation(self, make_image):
        path = make_image(orientation=6)
        assert MetadataIO.read_exif_orientation(path) == 6

    def test_read_orientation_absent(self, make_image):
        path = make_image()
        assert MetadataIO.read_exif_orientation(path) is None

    def test_read_out_of_range_value_is_returned_as_stored(self, make_image):
        path = make_image(orientation=9)
        assert MetadataIO.read_exif_orientation(path) == 9

    def test_set_then_read(self, make_image):
        path = make_image()
        assert MetadataIO.set_exif_orientation(path, 3) is True
        assert MetadataIO.read_exif_orientation(path) == 3
        assert read_orientation(path) == 3

    def test_remove_orientation(self, make_image):
        path = make_image(orientation=8, make="Acme")

        assert MetadataIO.remove_exif_orientation(path) is True
        assert MetadataIO.read_exif_orientation(path) is None
        assert read_orientation(path) is None

    def test_remove_when_absent(self, make_image):
        path = make_image()
        assert MetadataIO.remove_exif_orientation(path) is False

    def test_missing_file(self, tmp_path):
        missing = str(tmp_path / "nope.jpg")
        assert MetadataIO.read_exif_orientation(missing) is None
        assert MetadataIO.set_exif_orientation(missing, 1) is False
        assert MetadataIO.remove_exif_orientation(missing) is False

    def test_not_an_image(self, tmp_path):
        bogus = tmp_path / "bogus.jpg"
        bogus.write_text("not a jpeg")
        assert MetadataIO.read_exif_orientation(str(bogus)) is None
        assert MetadataIO.remove_exif_orientation(str(bogus)) is False

    def test_read_mime_type_goes_by_contents(self, make_image, tmp_path):
        assert MetadataIO.read_mime_type(make_image()) == "image/jpeg"
        misnamed = make_image(name="really_png.jpg", image_format="PNG")
        assert MetadataIO.read_mime_type(misnamed) == "image/png"
        assert MetadataIO.read_mime_type(str(tmp_path / "nope.jpg")) is None
