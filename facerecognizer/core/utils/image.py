"""
Image processing utility functions.

Images are OpenCV-style ``uint8`` arrays in BGR channel order.
"""
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from facerecognizer.core.exceptions import ImageReadError, InvalidImageError


def read_image_bytes(path: Union[str, Path]) -> bytes:
    """Read raw image bytes from disk.

    Args:
        path: Path to the image file

    Returns:
        bytes: File contents

    Raises:
        ImageReadError: If the file cannot be read
    """
    image_path = Path(path)
    try:
        return image_path.read_bytes()
    except OSError as e:
        raise ImageReadError(
            f"Failed to read image file {image_path}: {e}",
            details={"stage": "read", "path": str(image_path)},
        ) from e


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        InvalidImageError: If the image cannot be decoded
    """
    if not image_bytes:
        raise InvalidImageError("Empty image data", details={"stage": "decode"})

    np_array = np.frombuffer(image_bytes, np.uint8)

    try:
        img = cv2.imdecode(np_array, flags)
    except cv2.error as e:
        raise InvalidImageError(
            f"Failed to decode image bytes: {e}", details={"stage": "decode"}
        ) from e

    if img is None:
        raise InvalidImageError("Failed to decode image bytes", details={"stage": "decode"})

    return img


def validate_image(image: np.ndarray) -> np.ndarray:
    """Check that an in-memory image is a BGR/grayscale uint8 array.

    BGRA images are converted to BGR.

    Raises:
        InvalidImageError: If the array cannot be used as an image
    """
    if not isinstance(image, np.ndarray):
        raise InvalidImageError(
            f"Expected a numpy array, got {type(image).__name__}",
            details={"stage": "decode"},
        )
    if image.dtype != np.uint8 or image.size == 0:
        raise InvalidImageError(
            "Image must be a non-empty uint8 array", details={"stage": "decode"}
        )
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    raise InvalidImageError(
        f"Unsupported image shape {image.shape}", details={"stage": "decode"}
    )


def encode_image(image: np.ndarray, quality: int = 75) -> bytes:
    """Encode an in-memory image as JPEG.

    Args:
        image: BGR or grayscale image
        quality: JPEG quality (1-100)

    Returns:
        bytes: JPEG data

    Raises:
        InvalidImageError: If OpenCV cannot encode the image
    """
    image = validate_image(image)
    ok, buffer = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise InvalidImageError("Failed to encode image as JPEG", details={"stage": "decode"})
    return buffer.tobytes()


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Grayscale-normalize an image, keeping three channels for the detector."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
