"""Face recognizer: dataset management and classification on top of an engine.

``FaceRecognizer`` owns one face embedding engine and one ``FaceDataset``.
Sample images add descriptors to the dataset; query images are classified by
matching each detected face to its nearest dataset descriptor.

Images can be given as file paths, in-memory BGR arrays or encoded bytes.
In-memory arrays are JPEG-encoded (``jpeg_quality``) and decoded again, so
every input reaches the engine the same way a file on disk would.

Not thread-safe: serialize dataset changes and classification calls when
sharing one recognizer between threads.
"""
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import numpy as np

from facerecognizer.core.config import settings
from facerecognizer.core.exceptions import (
    AmbiguousFaceError,
    EngineError,
    FaceRecognitionError,
    NoFaceDetectedError,
    RecognizerClosedError,
)
from facerecognizer.core.logging import get_logger
from facerecognizer.core.utils.image import (
    bytes_to_numpy_array,
    encode_image,
    read_image_bytes,
    to_grayscale,
)
from facerecognizer.domain.entities.face import DetectedFace, LabeledDescriptor
from facerecognizer.domain.interfaces.recognition.face_recognition import FaceEmbeddingEngine
from facerecognizer.domain.value_objects.recognition import ClassifiedFace, DetectorMode
from facerecognizer.services.face_dataset import DatasetEntry, FaceDataset
from facerecognizer.services.face_matching import FaceMatcher

logger = get_logger(__name__)

PathLike = Union[str, Path]


class FaceRecognizer:
    """Create face descriptors for images and classify them against a dataset.

    Example:
        ```python
        with FaceRecognizer("models") as recognizer:
            recognizer.add_image_to_dataset("samples/alice.jpg", "alice")
            recognizer.add_image_to_dataset("samples/bob.jpg", "bob")

            for face in recognizer.classify_multiple("group.jpg"):
                print(face.label, face.bounding_box)
        ```
    """

    def __init__(
        self,
        model_path: Optional[PathLike] = None,
        engine: Optional[FaceEmbeddingEngine] = None,
        tolerance: Optional[float] = None,
        detector_mode: Optional[Union[DetectorMode, str]] = None,
        use_gray: Optional[bool] = None,
        jpeg_quality: Optional[int] = None,
        dataset: Optional[FaceDataset] = None,
    ) -> None:
        """Initialize the recognizer.

        Args:
            model_path: Directory of the face models, used when no engine is given
            engine: Face embedding engine to use instead of InsightFace
            tolerance: Maximum descriptor distance accepted as a match
            detector_mode: Standard or accurate (slower) face detection
            use_gray: Grayscale-normalize images before detection
            jpeg_quality: JPEG quality used when encoding in-memory images
            dataset: Existing dataset to classify against

        Raises:
            InitializationError: If the face models cannot be loaded
        """
        if engine is None:
            # insightface is only imported when the default engine is used
            from facerecognizer.services.recognition.insight_face import InsightFaceEngine

            engine = InsightFaceEngine(model_root=model_path)

        self._engine = engine
        self._closed = False
        self.dataset = dataset if dataset is not None else FaceDataset()
        self.matcher = FaceMatcher(settings.TOLERANCE if tolerance is None else tolerance)
        self.detector_mode = DetectorMode(detector_mode or settings.DETECTOR_MODE)
        self.use_gray = settings.USE_GRAY if use_gray is None else use_gray
        self.jpeg_quality = settings.JPEG_QUALITY if jpeg_quality is None else jpeg_quality

    @property
    def tolerance(self) -> float:
        return self.matcher.tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        self.matcher.tolerance = value

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Free the engine. Safe to call multiple times; don't use the recognizer afterwards."""
        if self._closed:
            return
        self._closed = True
        self._engine.close()
        logger.debug("Recognizer closed")

    def __enter__(self) -> "FaceRecognizer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Image loading

    def _load_path(self, path: PathLike) -> np.ndarray:
        return bytes_to_numpy_array(read_image_bytes(path))

    def _load_image(self, image: np.ndarray) -> np.ndarray:
        return bytes_to_numpy_array(encode_image(image, self.jpeg_quality))

    def _load_bytes(self, data: bytes) -> np.ndarray:
        return bytes_to_numpy_array(data)

    # Detection

    def _detect(self, image: np.ndarray) -> List[DetectedFace]:
        if self._closed:
            raise RecognizerClosedError("Recognizer is closed", details={"stage": "detect"})

        if self.use_gray:
            image = to_grayscale(image)

        try:
            faces = self._engine.detect_faces(image, self.detector_mode)
        except FaceRecognitionError:
            raise
        except Exception as e:
            logger.error("Face engine failed", error=str(e), exc_info=True)
            raise EngineError(
                f"Face detection failed: {e}", details={"stage": "detect"}
            ) from e

        return sorted(faces, key=lambda face: (face.bounding_box.left, face.bounding_box.top))

    def _detect_single(self, image: np.ndarray) -> DetectedFace:
        faces = self._detect(image)

        if not faces:
            raise NoFaceDetectedError("No face detected in image", details={"stage": "detect"})

        if len(faces) > 1:
            raise AmbiguousFaceError(
                f"Expected a single face, found {len(faces)}",
                details={"stage": "detect", "faces_found": len(faces)},
            )

        return faces[0]

    def recognize_single(self, path: PathLike) -> DetectedFace:
        """Return the face of an image file that must contain exactly one face.

        Raises:
            NoFaceDetectedError: If the image has no face
            AmbiguousFaceError: If the image has more than one face
        """
        return self._detect_single(self._load_path(path))

    def recognize_single_image(self, image: np.ndarray) -> DetectedFace:
        """Same as ``recognize_single`` for an in-memory BGR image."""
        return self._detect_single(self._load_image(image))

    def recognize_single_bytes(self, data: bytes) -> DetectedFace:
        """Same as ``recognize_single`` for encoded image bytes."""
        return self._detect_single(self._load_bytes(data))

    def recognize_multiple(self, path: PathLike) -> List[DetectedFace]:
        """Return all faces of an image file, sorted from left to right.

        An empty list is returned if there are no faces; errors are raised
        only when the image cannot be read, decoded or processed.
        """
        return self._detect(self._load_path(path))

    def recognize_multiple_image(self, image: np.ndarray) -> List[DetectedFace]:
        """Same as ``recognize_multiple`` for an in-memory BGR image."""
        return self._detect(self._load_image(image))

    def recognize_multiple_bytes(self, data: bytes) -> List[DetectedFace]:
        """Same as ``recognize_multiple`` for encoded image bytes."""
        return self._detect(self._load_bytes(data))

    # Dataset

    def _add_image(self, image: np.ndarray, label: str) -> LabeledDescriptor:
        face = self._detect_single(image)
        entry = self.dataset.add(label, face.descriptor)
        logger.info("Added face to dataset", label=label, dataset_size=len(self.dataset))
        return entry

    def add_image_to_dataset(self, path: PathLike, label: str) -> LabeledDescriptor:
        """Add a sample image file to the dataset.

        The image must contain exactly one face. On failure the dataset is
        left unchanged.

        Raises:
            ImageReadError: If the file cannot be read
            InvalidImageError: If the file is not a decodable image
            NoFaceDetectedError: If the image has no face
            AmbiguousFaceError: If the image has more than one face
            EngineError: If the engine fails
        """
        return self._add_image(self._load_path(path), label)

    def add_raw_image_to_dataset(self, image: np.ndarray, label: str) -> LabeledDescriptor:
        """Add an in-memory BGR sample image to the dataset."""
        return self._add_image(self._load_image(image), label)

    def add_image_bytes_to_dataset(self, data: bytes, label: str) -> LabeledDescriptor:
        """Add an encoded sample image to the dataset."""
        return self._add_image(self._load_bytes(data), label)

    def add_descriptor(self, label: str, descriptor: Any) -> LabeledDescriptor:
        """Add a pre-computed descriptor to the dataset."""
        return self.dataset.add(label, descriptor)

    def add_descriptors(self, entries: Iterable[DatasetEntry]) -> List[LabeledDescriptor]:
        """Add several pre-computed descriptors to the dataset, in order."""
        return self.dataset.add_batch(entries)

    def remove_from_dataset(self, label: str) -> bool:
        """Remove one sample of this identity. Missing labels are ignored."""
        return self.dataset.remove_by_label(label)

    def remove_all_from_dataset(self, label: str) -> int:
        """Remove every sample of this identity; return how many were removed."""
        return self.dataset.remove_all_by_label(label)

    # Classification

    def _classify_face(self, face: DetectedFace) -> Optional[ClassifiedFace]:
        match = self.matcher.find_nearest(self.dataset.gallery, face.descriptor)
        if match is None:
            return None
        return ClassifiedFace(
            label=match.label,
            bounding_box=face.bounding_box,
            distance=match.distance,
        )

    def _classify_single(self, image: np.ndarray) -> List[ClassifiedFace]:
        face = self._detect_single(image)
        classified = self._classify_face(face)

        if classified is None:
            logger.debug("Face not classified", dataset_size=len(self.dataset))
            return []

        logger.debug("Face classified", label=classified.label, distance=classified.distance)
        return [classified]

    def _classify_multiple(self, image: np.ndarray) -> List[ClassifiedFace]:
        faces = self._detect(image)
        results = []

        for face in faces:
            classified = self._classify_face(face)
            if classified is None:
                continue
            results.append(classified)

        logger.debug("Faces classified", faces_found=len(faces), matches=len(results))
        return results

    def classify(self, path: PathLike) -> List[ClassifiedFace]:
        """Classify the single face of an image file.

        Returns:
            One classified face, or an empty list if no dataset sample is
            within tolerance

        Raises:
            NoFaceDetectedError: If the image has no face
            AmbiguousFaceError: If the image has more than one face
        """
        return self._classify_single(self._load_path(path))

    def classify_image(self, image: np.ndarray) -> List[ClassifiedFace]:
        """Same as ``classify`` for an in-memory BGR image."""
        return self._classify_single(self._load_image(image))

    def classify_bytes(self, data: bytes) -> List[ClassifiedFace]:
        """Same as ``classify`` for encoded image bytes."""
        return self._classify_single(self._load_bytes(data))

    def classify_multiple(self, path: PathLike) -> List[ClassifiedFace]:
        """Classify every face of an image file.

        Returns:
            Matched faces from left to right; faces without a match within
            tolerance are left out. Empty if nothing matched.
        """
        return self._classify_multiple(self._load_path(path))

    def classify_multiple_image(self, image: np.ndarray) -> List[ClassifiedFace]:
        """Same as ``classify_multiple`` for an in-memory BGR image."""
        return self._classify_multiple(self._load_image(image))

    def classify_multiple_bytes(self, data: bytes) -> List[ClassifiedFace]:
        """Same as ``classify_multiple`` for encoded image bytes."""
        return self._classify_multiple(self._load_bytes(data))
