"""Scripted face engine and synthetic test images."""
from pathlib import Path
from typing import Dict, List, Optional

import cv2
import numpy as np

from facerecognizer.domain.entities.face import BoundingBox, DetectedFace
from facerecognizer.domain.interfaces.recognition.face_recognition import FaceEmbeddingEngine
from facerecognizer.domain.value_objects.recognition import DetectorMode

# Synthetic images are flat gray; the gray level identifies the "scene".
SCENE_STEP = 20


def make_image(scene: int, size: int = 32) -> np.ndarray:
    """Flat BGR image whose gray level encodes the scene number."""
    return np.full((size, size, 3), scene * SCENE_STEP, dtype=np.uint8)


def png_bytes(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


def write_image(path: Path, scene: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    assert cv2.imwrite(str(path), make_image(scene))
    return path


def make_face(left: int, descriptor, top: int = 10, size: int = 20) -> DetectedFace:
    return DetectedFace(
        bounding_box=BoundingBox(left=left, top=top, right=left + size, bottom=top + size),
        descriptor=descriptor,
        confidence=0.99,
    )


class FakeEngine(FaceEmbeddingEngine):
    """Face engine returning scripted faces for each scene."""

    def __init__(self, scenes: Optional[Dict[int, List[DetectedFace]]] = None):
        self.scenes = dict(scenes or {})
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.close_calls = 0

    def detect_faces(self, image, mode=DetectorMode.STANDARD):
        if self.error is not None:
            raise self.error
        scene = int(round(float(image.mean()) / SCENE_STEP))
        self.calls.append((scene, mode, image))
        return list(self.scenes.get(scene, []))

    def close(self):
        self.close_calls += 1


# Scene numbers used across the tests
NO_FACE = 1
ALICE = 2
BOB = 3
TWO_FACES = 4
GROUP = 5
QUERY = 6

DESC_ALICE = [0.0, 0.0, 0.0, 0.0]
DESC_BOB = [1.0, 1.0, 0.0, 0.0]

