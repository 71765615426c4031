"""Tests for image utility functions."""
import numpy as np
import pytest

from facerecognizer.core.exceptions import ImageReadError, InvalidImageError
from facerecognizer.core.utils.image import (
    bytes_to_numpy_array,
    encode_image,
    read_image_bytes,
    to_grayscale,
    validate_image,
)
from tests.fakes import make_image, png_bytes


class TestImageUtils:
    """Test suite for image helpers."""

    def test_read_missing_file(self, tmp_path):
        """Should raise ImageReadError with the read stage."""
        with pytest.raises(ImageReadError) as exc_info:
            read_image_bytes(tmp_path / "nope.jpg")
        assert exc_info.value.stage == "read"
        assert exc_info.value.details["path"].endswith("nope.jpg")

    def test_decode_png(self):
        """Should decode encoded bytes into a BGR array."""
        image = bytes_to_numpy_array(png_bytes(make_image(3)))
        assert image.shape == (32, 32, 3)
        assert image.dtype == np.uint8
        assert int(image[0, 0, 0]) == 60

    @pytest.mark.parametrize("data", [b"", b"\x00\x01\x02garbage"])
    def test_decode_invalid_bytes(self, data):
        """Should raise InvalidImageError for empty or corrupt data."""
        with pytest.raises(InvalidImageError) as exc_info:
            bytes_to_numpy_array(data)
        assert exc_info.value.stage == "decode"

    def test_validate_image_drops_alpha(self):
        """Should convert BGRA images to BGR."""
        bgra = np.zeros((10, 10, 4), dtype=np.uint8)
        assert validate_image(bgra).shape == (10, 10, 3)

    @pytest.mark.parametrize("image", [
        [[1, 2], [3, 4]],
        np.zeros((10, 10, 3), dtype=np.float32),
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((10, 10, 2), dtype=np.uint8),
    ])
    def test_validate_image_rejects(self, image):
        """Should reject arrays that are not usable images."""
        with pytest.raises(InvalidImageError):
            validate_image(image)

    def test_encode_image_jpeg(self):
        """Should encode images as JPEG."""
        data = encode_image(make_image(2), quality=50)
        assert data[:2] == b"\xff\xd8"
        decoded = bytes_to_numpy_array(data)
        assert abs(int(decoded.mean()) - 40) <= 2

    def test_to_grayscale_keeps_three_channels(self):
        """Should return a three-channel image with equal channels."""
        image = np.zeros((8, 8, 3), dtype=np.uint8)
        image[:, :, 2] = 200
        gray = to_grayscale(image)
        assert gray.shape == (8, 8, 3)
        assert np.array_equal(gray[:, :, 0], gray[:, :, 2])

        assert to_grayscale(np.zeros((8, 8), dtype=np.uint8)).shape == (8, 8, 3)
