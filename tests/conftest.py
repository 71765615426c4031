"""Shared test fixtures."""
import pytest

from facerecognizer.services.face_recognizer import FaceRecognizer
from tests.fakes import ALICE, BOB, DESC_ALICE, DESC_BOB, NO_FACE, TWO_FACES, FakeEngine, make_face


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine({
        NO_FACE: [],
        ALICE: [make_face(5, DESC_ALICE)],
        BOB: [make_face(5, DESC_BOB)],
        TWO_FACES: [make_face(5, DESC_ALICE), make_face(40, DESC_BOB)],
    })


@pytest.fixture
def recognizer(engine: FakeEngine) -> FaceRecognizer:
    rec = FaceRecognizer(engine=engine, tolerance=0.4)
    yield rec
    rec.close()
