"""Face embedding engine interface."""
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from ...entities.face import DetectedFace
from ...value_objects.recognition import DetectorMode


class FaceEmbeddingEngine(ABC):
    """Interface for the external face detection and embedding engine."""

    @abstractmethod
    def detect_faces(
        self,
        image: np.ndarray,
        mode: DetectorMode = DetectorMode.STANDARD,
    ) -> List[DetectedFace]:
        """
        Detect faces and compute their descriptors.

        Args:
            image: Decoded BGR image
            mode: Detector accuracy/speed trade-off

        Returns:
            Detected faces ordered left to right by bounding box position.
            Returns an empty list if the image contains no faces.

        Raises:
            EngineError: If detection or embedding fails
            RecognizerClosedError: If the engine has been closed
        """
        pass

    def detect_single_face(
        self,
        image: np.ndarray,
        mode: DetectorMode = DetectorMode.STANDARD,
    ) -> Optional[DetectedFace]:
        """
        Return the face if the image contains exactly one, else None.

        Raises:
            EngineError: If detection or embedding fails
        """
        faces = self.detect_faces(image, mode)
        if len(faces) != 1:
            return None
        return faces[0]

    @abstractmethod
    def close(self) -> None:
        """Release engine resources. Safe to call multiple times."""
        pass
