"""Custom exceptions for the face dataset recognizer.

Every error carries a ``details`` dict; ``details["stage"]`` names the step
that failed (``init``, ``read``, ``decode``, ``detect``, ``classify`` or
``dataset``) so callers can tell detection failures from I/O failures.
"""
from typing import Optional


class FaceRecognitionError(Exception):
    """Base exception for face recognition operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face recognition error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}

    @property
    def stage(self) -> Optional[str]:
        """Pipeline stage where the error happened, if known."""
        return self.details.get("stage")


class InitializationError(FaceRecognitionError):
    """Raised when the face recognition models fail to load."""
    pass


class ImageReadError(FaceRecognitionError):
    """Raised when an image file cannot be read from disk."""
    pass


class InvalidImageError(FaceRecognitionError):
    """Raised when the provided image is invalid or cannot be decoded."""
    pass


class NoFaceDetectedError(FaceRecognitionError):
    """Raised when no face is detected in an image that requires exactly one face."""
    pass


class AmbiguousFaceError(FaceRecognitionError):
    """Raised when multiple faces are found in an image that expects only one face."""
    pass


class EngineError(FaceRecognitionError):
    """Raised when the detection/embedding engine call itself fails."""
    pass


class RecognizerClosedError(EngineError):
    """Raised when a closed recognizer or engine is used."""
    pass


class InvalidDescriptorError(FaceRecognitionError):
    """Raised when a descriptor is malformed or does not fit the dataset."""
    pass


class ServiceNotInitializedError(FaceRecognitionError):
    """Raised when the service container is used before initialization."""
    pass
