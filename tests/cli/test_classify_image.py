"""Tests for the classify_image command line tool."""
import cv2
import pytest

from facerecognizer.cli import classify_image as cli
from facerecognizer.services.face_recognizer import FaceRecognizer
from tests.fakes import ALICE, BOB, DESC_ALICE, DESC_BOB, GROUP, NO_FACE, TWO_FACES, make_face, write_image


@pytest.fixture
def samples_dir(tmp_path):
    """Sample directory with a file sample, a subdirectory sample and a bad sample."""
    root = tmp_path / "samples"
    write_image(root / "alice.png", ALICE)
    write_image(root / "bob" / "1.png", BOB)
    write_image(root / "crowd.png", TWO_FACES)
    (root / "notes.txt").write_text("not an image")
    return root


@pytest.fixture
def fake_recognizer(monkeypatch, engine):
    """Make the CLI build its recognizer around the fake engine."""
    created = []

    def factory(**kwargs):
        recognizer = FaceRecognizer(engine=engine, **kwargs)
        created.append(recognizer)
        return recognizer

    monkeypatch.setattr(cli, "FaceRecognizer", factory)
    return created


class TestClassifyImageCli:
    """Test suite for the classify_image CLI."""

    def test_find_samples(self, samples_dir):
        """Should label files by stem and nested files by directory name."""
        samples = cli.find_samples(samples_dir)
        assert [label for label, _ in samples] == ["alice", "bob", "crowd"]

    def test_load_dataset_skips_bad_samples(self, samples_dir, engine):
        """Should add usable samples and skip the rest."""
        recognizer = FaceRecognizer(engine=engine)
        assert cli.load_dataset(recognizer, samples_dir) == 2
        assert recognizer.dataset.labels == ("alice", "bob")

    def test_classify_single(self, fake_recognizer, samples_dir, tmp_path):
        """Should classify the single face of the image and close the recognizer."""
        query = write_image(tmp_path / "query.png", BOB)

        faces = cli.classify_image(query, samples_dir, tolerance=0.4)

        assert [face.label for face in faces] == ["bob"]
        assert fake_recognizer[0].closed

    def test_classify_multiple_with_output(self, fake_recognizer, engine, samples_dir, tmp_path):
        """Should classify every face and write an annotated image."""
        engine.scenes[GROUP] = [make_face(4, DESC_BOB), make_face(2, DESC_ALICE)]
        query = write_image(tmp_path / "group.png", GROUP)
        output = tmp_path / "annotated.png"

        faces = cli.classify_image(query, samples_dir, multiple=True, output_path=output)

        assert [face.label for face in faces] == ["alice", "bob"]
        assert cv2.imread(str(output)) is not None

    def test_main_success(self, fake_recognizer, samples_dir, tmp_path):
        """Should exit with 0 after a successful classification."""
        query = write_image(tmp_path / "query.png", ALICE)
        argv = [str(query), "--samples", str(samples_dir), "--detector", "accurate", "--no-gray"]

        assert cli.main(argv) == 0
        recognizer = fake_recognizer[0]
        assert recognizer.detector_mode.value == "accurate"
        assert recognizer.use_gray is False

    def test_main_missing_samples_dir(self, fake_recognizer, tmp_path):
        """Should exit with 1 when the samples directory does not exist."""
        query = write_image(tmp_path / "query.png", ALICE)
        assert cli.main([str(query), "--samples", str(tmp_path / "missing")]) == 1
        assert fake_recognizer == []

    def test_main_classification_error(self, fake_recognizer, samples_dir, tmp_path):
        """Should exit with 1 when the image has no face."""
        query = write_image(tmp_path / "empty.png", NO_FACE)
        assert cli.main([str(query), "--samples", str(samples_dir)]) == 1
