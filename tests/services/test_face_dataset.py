"""Tests for the in-memory face dataset."""
import numpy as np
import pytest

from facerecognizer.core.exceptions import InvalidDescriptorError
from facerecognizer.domain.entities.face import LabeledDescriptor
from facerecognizer.services.face_dataset import FaceDataset


@pytest.fixture
def dataset():
    """Dataset with a duplicated label in the middle."""
    return FaceDataset([
        ("alice", [0.0, 0.0]),
        ("bob", [1.0, 0.0]),
        ("carol", [0.0, 1.0]),
        ("bob", [2.0, 0.0]),
    ])


class TestFaceDataset:
    """Test suite for FaceDataset."""

    def test_empty_dataset(self):
        """Should start with an empty gallery."""
        dataset = FaceDataset()
        assert len(dataset) == 0
        assert dataset.labels == ()
        assert len(dataset.gallery) == 0
        assert dataset.dimension == 0

    def test_add_appends_in_order(self):
        """Should append samples and keep insertion order."""
        dataset = FaceDataset()
        first = dataset.add("alice", [0.1, 0.2, 0.3])
        dataset.add("bob", np.array([0.4, 0.5, 0.6]))

        assert isinstance(first, LabeledDescriptor)
        assert first.descriptor.dtype == np.float32
        assert dataset.labels == ("alice", "bob")
        assert dataset.dimension == 3
        np.testing.assert_allclose(dataset.gallery.descriptors[1], [0.4, 0.5, 0.6], rtol=1e-6)

    def test_duplicate_labels_allowed(self):
        """Should keep several samples for the same label."""
        dataset = FaceDataset()
        dataset.add("alice", [0.0, 0.0])
        dataset.add("alice", [1.0, 1.0])
        assert dataset.labels == ("alice", "alice")

    def test_descriptors_are_immutable(self):
        """Should not allow stored descriptors to be modified."""
        source = np.array([1.0, 2.0], dtype=np.float32)
        entry = FaceDataset().add("alice", source)
        source[0] = 99.0

        assert entry.descriptor[0] == 1.0
        with pytest.raises(ValueError):
            entry.descriptor[0] = 5.0

    def test_add_batch_equivalent_to_repeated_add(self):
        """Should append every entry in the given order."""
        batch = FaceDataset()
        batch.add_batch([
            ("alice", [0.0, 0.0]),
            LabeledDescriptor(label="bob", descriptor=[1.0, 0.0]),
        ])

        single = FaceDataset()
        single.add("alice", [0.0, 0.0])
        single.add("bob", [1.0, 0.0])

        assert batch.labels == single.labels
        np.testing.assert_array_equal(batch.gallery.descriptors, single.gallery.descriptors)

    def test_add_batch_is_all_or_nothing(self, dataset):
        """Should not append anything when one entry is invalid."""
        with pytest.raises(InvalidDescriptorError):
            dataset.add_batch([("dave", [3.0, 3.0]), ("eve", [1.0, 2.0, 3.0])])
        assert len(dataset) == 4
        assert "dave" not in dataset.labels

    @pytest.mark.parametrize("descriptor", [
        [],
        [[1.0, 2.0]],
        [float("nan"), 1.0],
        "not a vector",
        None,
    ])
    def test_add_rejects_invalid_descriptor(self, descriptor):
        """Should reject malformed descriptors without changing the dataset."""
        dataset = FaceDataset()
        with pytest.raises(InvalidDescriptorError) as exc_info:
            dataset.add("alice", descriptor)
        assert exc_info.value.stage == "dataset"
        assert len(dataset) == 0

    def test_add_rejects_dimension_mismatch(self, dataset):
        """Should reject descriptors that do not match the dataset dimension."""
        with pytest.raises(InvalidDescriptorError):
            dataset.add("dave", [1.0, 2.0, 3.0])
        assert len(dataset) == 4

    def test_remove_by_label_removes_first_match(self, dataset):
        """Should remove exactly the first sample with the label."""
        assert dataset.remove_by_label("bob") is True

        assert dataset.labels == ("alice", "carol", "bob")
        np.testing.assert_array_equal(dataset.gallery.descriptors[2], [2.0, 0.0])

    def test_remove_missing_label_is_noop(self, dataset):
        """Should leave length and order unchanged for unknown labels."""
        before = dataset.snapshot()
        assert dataset.remove_by_label("zoe") is False
        after = dataset.snapshot()

        assert len(after) == len(before)
        assert [e.label for e in after] == [e.label for e in before]
        assert all(a is b for a, b in zip(before, after))

    def test_remove_all_by_label(self, dataset):
        """Should remove every sample with the label."""
        assert dataset.remove_all_by_label("bob") == 2
        assert dataset.labels == ("alice", "carol")
        assert dataset.remove_all_by_label("bob") == 0

    def test_gallery_rebuilt_after_every_mutation(self, dataset):
        """Should keep gallery rows aligned with the label table."""
        dataset.remove_by_label("alice")
        dataset.add("dave", [5.0, 5.0])

        gallery = dataset.gallery
        assert gallery.labels == dataset.labels
        assert gallery.descriptors.shape == (len(dataset), 2)
        for row, entry in zip(gallery.descriptors, dataset.snapshot()):
            np.testing.assert_array_equal(row, entry.descriptor)

    def test_snapshot_is_detached(self, dataset):
        """Should return a sequence that later mutations do not change."""
        snapshot = dataset.snapshot()
        dataset.clear()
        assert len(snapshot) == 4
        assert len(dataset) == 0
        assert dataset.dimension == 0

    def test_dimension_resets_when_emptied(self):
        """Should accept a new dimension once the dataset is empty again."""
        dataset = FaceDataset([("alice", [1.0, 2.0])])
        dataset.remove_by_label("alice")
        dataset.add("bob", [1.0, 2.0, 3.0])
        assert dataset.dimension == 3
