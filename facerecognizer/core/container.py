"""Service container for dependency injection."""
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from facerecognizer.core.config import settings
from facerecognizer.core.exceptions import ServiceNotInitializedError
from facerecognizer.core.logging import get_logger
from facerecognizer.services.face_recognizer import FaceRecognizer

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    Owns the recognizer used by the HTTP API together with the lock that
    serializes every call into it. The recognizer and its dataset are not
    thread-safe, and FastAPI runs sync endpoints in a thread pool.

    Example:
        ```python
        container = ServiceContainer()
        container.initialize()

        with container.acquire() as recognizer:
            recognizer.classify_bytes(image_bytes)
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        self.recognizer: Optional[FaceRecognizer] = None
        self.lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self.recognizer is not None

    @contextmanager
    def acquire(self) -> Iterator[FaceRecognizer]:
        """Hold the lock and yield the recognizer.

        Raises:
            ServiceNotInitializedError: If there is no recognizer, including
                while the container is being cleaned up
        """
        with self.lock:
            if self.recognizer is None:
                raise ServiceNotInitializedError("Face recognizer not initialized")
            yield self.recognizer

    def initialize(self, recognizer: Optional[FaceRecognizer] = None) -> None:
        """Create the recognizer, unless one is supplied."""
        if recognizer is None:
            recognizer = FaceRecognizer(model_path=settings.MODEL_CACHE_DIR)
        with self.lock:
            self.recognizer = recognizer
        logger.info(
            "Recognizer ready",
            tolerance=recognizer.tolerance,
            detector_mode=recognizer.detector_mode.value,
        )

    def cleanup(self) -> None:
        """Close the recognizer and drop the dataset."""
        with self.lock:
            if self.recognizer is not None:
                self.recognizer.close()
            self.recognizer = None


# Global container instance
container = ServiceContainer()
