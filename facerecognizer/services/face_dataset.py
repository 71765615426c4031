"""In-memory face dataset and its matching gallery.

The dataset is an ordered list of labeled descriptors. Position in the list is
the gallery index used by the matcher, so the gallery (descriptor matrix and
label table) is rebuilt from the current contents after every mutation.

Not thread-safe: callers that add, remove and classify concurrently must
serialize those calls themselves.
"""
from typing import Any, Iterable, Iterator, List, Tuple, Union

import numpy as np
from pydantic import ValidationError

from facerecognizer.core.exceptions import InvalidDescriptorError
from facerecognizer.core.logging import get_logger
from facerecognizer.domain.entities.face import LabeledDescriptor
from facerecognizer.domain.value_objects.recognition import Gallery

logger = get_logger(__name__)

DatasetEntry = Union[LabeledDescriptor, Tuple[str, Any]]


class FaceDataset:
    """Ordered collection of labeled face descriptors.

    Labels are not unique: several samples may share an identity label.

    Example:
        ```python
        dataset = FaceDataset()
        dataset.add("alice", alice_descriptor)
        dataset.add_batch([("bob", bob_descriptor), ("bob", other_bob_descriptor)])
        dataset.remove_by_label("bob")  # removes the first "bob" sample only
        ```
    """

    def __init__(self, entries: Iterable[DatasetEntry] = ()) -> None:
        self._entries: List[LabeledDescriptor] = []
        self._gallery: Gallery = Gallery.empty()
        entries = list(entries)
        if entries:
            self.add_batch(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LabeledDescriptor]:
        return iter(self.snapshot())

    @property
    def labels(self) -> Tuple[str, ...]:
        """Labels in dataset order."""
        return self._gallery.labels

    @property
    def gallery(self) -> Gallery:
        """Gallery matching the current dataset contents."""
        return self._gallery

    @property
    def dimension(self) -> int:
        """Descriptor dimension of the dataset, 0 while empty."""
        return self._gallery.dimension

    def snapshot(self) -> Tuple[LabeledDescriptor, ...]:
        """Return the current ordered sequence of samples."""
        return tuple(self._entries)

    def add(self, label: str, descriptor: Any) -> LabeledDescriptor:
        """Append one sample.

        Args:
            label: Identity label (duplicates allowed)
            descriptor: Face descriptor vector

        Returns:
            The appended sample

        Raises:
            InvalidDescriptorError: If the descriptor is malformed or its
                dimension differs from the dataset's
        """
        entry = self._to_entry((label, descriptor))
        self._check_dimensions([entry])
        self._entries.append(entry)
        self._rebuild_gallery()
        logger.debug("Added sample to dataset", label=entry.label, size=len(self._entries))
        return entry

    def add_batch(self, entries: Iterable[DatasetEntry]) -> List[LabeledDescriptor]:
        """Append several samples in the given order.

        Entries may be ``LabeledDescriptor`` instances or ``(label, descriptor)``
        pairs. Every entry is validated before any is appended, so an invalid
        entry leaves the dataset unchanged.

        Raises:
            InvalidDescriptorError: If any entry is invalid
        """
        new_entries = [self._to_entry(entry) for entry in entries]
        if not new_entries:
            return []
        self._check_dimensions(new_entries)
        self._entries.extend(new_entries)
        self._rebuild_gallery()
        logger.debug("Added samples to dataset", count=len(new_entries), size=len(self._entries))
        return new_entries

    def remove_by_label(self, label: str) -> bool:
        """Remove the first sample with this label.

        Removes one sample of the identity; other samples sharing the label stay.

        Returns:
            True if a sample was removed, False if the label was not present
        """
        for index, entry in enumerate(self._entries):
            if entry.label == label:
                del self._entries[index]
                self._rebuild_gallery()
                logger.debug("Removed sample from dataset", label=label, index=index)
                return True
        return False

    def remove_all_by_label(self, label: str) -> int:
        """Remove every sample with this label.

        Returns:
            Number of samples removed
        """
        kept = [entry for entry in self._entries if entry.label != label]
        removed = len(self._entries) - len(kept)
        if removed:
            self._entries = kept
            self._rebuild_gallery()
            logger.debug("Removed identity from dataset", label=label, removed=removed)
        return removed

    def clear(self) -> None:
        """Remove all samples."""
        self._entries = []
        self._rebuild_gallery()

    def _to_entry(self, entry: DatasetEntry) -> LabeledDescriptor:
        if isinstance(entry, LabeledDescriptor):
            return entry
        try:
            label, descriptor = entry
            return LabeledDescriptor(label=label, descriptor=descriptor)
        except (TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            message = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
            raise InvalidDescriptorError(
                f"Invalid dataset entry: {message}", details={"stage": "dataset"}
            ) from e

    def _check_dimensions(self, entries: List[LabeledDescriptor]) -> None:
        expected = self.dimension or entries[0].dimension
        for entry in entries:
            if entry.dimension != expected:
                raise InvalidDescriptorError(
                    f"Descriptor dimension {entry.dimension} does not match dataset dimension {expected}",
                    details={"stage": "dataset", "label": entry.label},
                )

    def _rebuild_gallery(self) -> None:
        # Matrix and label table are replaced together so they never disagree.
        if not self._entries:
            self._gallery = Gallery.empty()
            return
        descriptors = np.stack([entry.descriptor for entry in self._entries]).astype(np.float32)
        descriptors.setflags(write=False)
        self._gallery = Gallery(
            descriptors=descriptors,
            labels=tuple(entry.label for entry in self._entries),
        )
