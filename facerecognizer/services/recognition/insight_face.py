"""
InsightFace-based implementation of the face embedding engine.

This module wraps ``insightface.app.FaceAnalysis`` behind the
``FaceEmbeddingEngine`` interface. It handles detector preparation for the
requested detector mode, downscaling of very large images, and conversion of
InsightFace results into ``DetectedFace`` domain objects.

Key Features:
    - Detection + recognition models only (no landmarks/attributes)
    - L2-normalized descriptors, so Euclidean distance is meaningful
    - Bounding boxes in source-image pixel coordinates, clipped to the image
    - Faces ordered left to right

Example:
    ```python
    engine = InsightFaceEngine(model_root=".model_cache")
    faces = engine.detect_faces(cv2.imread("group.jpg"))
    engine.close()
    ```

Note:
    This implementation uses CPU inference unless ``USE_GPU`` is set, in which
    case the CUDA execution provider is tried first.
"""
import math
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np
from insightface.app import FaceAnalysis
from insightface.app.common import Face as InsightFace

from facerecognizer.core.config import settings
from facerecognizer.core.exceptions import (
    EngineError,
    InitializationError,
    RecognizerClosedError,
)
from facerecognizer.core.logging import get_logger
from facerecognizer.core.utils.image import validate_image
from facerecognizer.domain.entities.face import BoundingBox, DetectedFace
from facerecognizer.domain.interfaces.recognition.face_recognition import FaceEmbeddingEngine
from facerecognizer.domain.value_objects.recognition import DetectorMode

logger = get_logger(__name__)


class InsightFaceEngine(FaceEmbeddingEngine):
    """
    InsightFace-based implementation of the face embedding engine.

    Attributes:
        model: InsightFace model instance for face analysis, None once closed
        model_name: Name of the InsightFace model pack
        model_root: Directory holding the model pack
    """

    def __init__(
        self,
        model_root: Optional[Union[str, Path]] = None,
        model_name: Optional[str] = None,
        use_gpu: Optional[bool] = None,
        det_size: Optional[int] = None,
        accurate_det_size: Optional[int] = None,
        max_image_pixels: Optional[int] = None,
    ) -> None:
        """Load the InsightFace models.

        Raises:
            InitializationError: If the models cannot be loaded
        """
        self.model_name = model_name or settings.MODEL_NAME
        self.model_root = str(model_root or settings.MODEL_CACHE_DIR)
        self.det_sizes = {
            DetectorMode.STANDARD: det_size or settings.DET_SIZE,
            DetectorMode.ACCURATE: accurate_det_size or settings.ACCURATE_DET_SIZE,
        }
        self.max_image_pixels = max_image_pixels or settings.MAX_IMAGE_PIXELS
        self._prepared_size: Optional[int] = None

        use_gpu = settings.USE_GPU if use_gpu is None else use_gpu
        if use_gpu:
            self.providers = [
                ('CUDAExecutionProvider', {'device_id': settings.GPU_ID}),
                'CPUExecutionProvider',
            ]
            self.ctx_id = settings.GPU_ID
        else:
            self.providers = ['CPUExecutionProvider']
            self.ctx_id = -1

        try:
            logger.info(
                "Loading InsightFace models",
                model=self.model_name,
                root=self.model_root,
            )
            self.model: Optional[FaceAnalysis] = FaceAnalysis(
                name=self.model_name,
                root=self.model_root,
                providers=self.providers,
                allowed_modules=["detection", "recognition"],
            )
            if "recognition" not in self.model.models:
                raise RuntimeError(f"model pack {self.model_name} has no recognition model")
            self._prepare(DetectorMode.STANDARD)
        except Exception as e:
            logger.error(
                "Failed to initialize InsightFace",
                model=self.model_name,
                root=self.model_root,
                error=str(e),
            )
            raise InitializationError(
                f"Failed to load face models from {self.model_root}: {e}",
                details={"stage": "init", "model": self.model_name, "root": self.model_root},
            ) from e

        logger.info("InsightFace models initialized", model=self.model_name)

    def close(self) -> None:
        """Release the models. Safe to call multiple times."""
        if self.model is not None:
            logger.debug("Releasing InsightFace models")
        self.model = None
        self._prepared_size = None

    def _prepare(self, mode: DetectorMode) -> None:
        """Prepare the detector for the input size of the given mode."""
        size = self.det_sizes[mode]
        if self._prepared_size == size:
            return
        self.model.prepare(ctx_id=self.ctx_id, det_size=(size, size))
        self._prepared_size = size

    def _fit_image(self, image: np.ndarray) -> Tuple[np.ndarray, float]:
        """Downscale images above the pixel limit; return the image and scale factor."""
        height, width = image.shape[:2]
        pixels = width * height

        if pixels <= self.max_image_pixels:
            return image, 1.0

        scale = math.sqrt(self.max_image_pixels / pixels)
        new_width = max(1, int(width * scale))
        new_height = max(1, int(height * scale))

        logger.info(
            "Resizing large image",
            original_size=(width, height),
            new_size=(new_width, new_height)
        )

        resized = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)
        return resized, new_width / width

    def _convert_to_face(
        self,
        face_data: InsightFace,
        scale: float,
        image_size: Tuple[int, int],
    ) -> DetectedFace:
        """
        Convert an InsightFace detection result to a DetectedFace.

        Args:
            face_data: Face detection result from InsightFace
            scale: Factor the image was resized by before detection
            image_size: (height, width) of the source image

        Returns:
            DetectedFace with source-image pixel coordinates
        """
        height, width = image_size
        x1, y1, x2, y2 = (np.asarray(face_data.bbox, dtype=np.float64) / scale).tolist()

        bounding_box = BoundingBox(
            left=int(min(max(math.floor(x1), 0), width)),
            top=int(min(max(math.floor(y1), 0), height)),
            right=int(min(max(math.ceil(x2), 0), width)),
            bottom=int(min(max(math.ceil(y2), 0), height)),
        )

        return DetectedFace(
            bounding_box=bounding_box,
            descriptor=face_data.normed_embedding,
            confidence=float(face_data.det_score),
        )

    def detect_faces(
        self,
        image: np.ndarray,
        mode: DetectorMode = DetectorMode.STANDARD,
    ) -> List[DetectedFace]:
        """
        Detect faces and compute their descriptors.

        Returns:
            Detected faces ordered left to right, empty if there are none

        Raises:
            EngineError: If InsightFace fails on the image
            RecognizerClosedError: If the engine has been closed
        """
        if self.model is None:
            raise RecognizerClosedError("Face engine is closed", details={"stage": "detect"})

        mode = DetectorMode(mode)
        image = validate_image(image)
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

        source_size = image.shape[:2]
        resized, scale = self._fit_image(image)

        try:
            self._prepare(mode)
            faces = self.model.get(resized)
        except Exception as e:
            logger.error(
                "Face processing failed",
                error=str(e),
                image_shape=image.shape,
                mode=mode.value,
            )
            raise EngineError(
                f"Face detection failed: {e}",
                details={"stage": "detect", "mode": mode.value},
            ) from e

        logger.debug(
            "Face detection results",
            faces_found=len(faces) if faces else 0,
            mode=mode.value,
        )

        detected = [self._convert_to_face(face, scale, source_size) for face in faces or []]
        detected.sort(key=lambda face: (face.bounding_box.left, face.bounding_box.top))
        return detected
