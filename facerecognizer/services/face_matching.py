"""Nearest-descriptor matching against a dataset gallery."""
import math
from typing import Any, Optional

import numpy as np

from facerecognizer.core.exceptions import InvalidDescriptorError
from facerecognizer.core.logging import get_logger
from facerecognizer.domain.entities.face import as_descriptor
from facerecognizer.domain.value_objects.recognition import Gallery, Match

logger = get_logger(__name__)

DEFAULT_TOLERANCE = 0.4


class FaceMatcher:
    """Match query descriptors to the closest gallery descriptor.

    Distances are Euclidean in descriptor space. The nearest gallery entry is
    accepted when its distance is at most ``tolerance``; ties go to the entry
    that was added first (lowest gallery index).

    Example:
        ```python
        matcher = FaceMatcher(tolerance=0.4)
        match = matcher.find_nearest(dataset.gallery, query_descriptor)
        if match is not None:
            print(match.label, match.distance)
        ```
    """

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE) -> None:
        self.tolerance = tolerance

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        value = float(value)
        if math.isnan(value) or value < 0:
            raise ValueError(f"Tolerance must be a non-negative number, got {value}")
        self._tolerance = value

    def distances(self, gallery: Gallery, descriptor: Any) -> np.ndarray:
        """Euclidean distance from the query to every gallery descriptor.

        Raises:
            InvalidDescriptorError: If the query is malformed or its dimension
                differs from the gallery's
        """
        try:
            query = as_descriptor(descriptor)
        except ValueError as e:
            raise InvalidDescriptorError(str(e), details={"stage": "classify"}) from e

        if len(gallery) == 0:
            return np.zeros((0,), dtype=np.float32)

        if query.shape[0] != gallery.dimension:
            raise InvalidDescriptorError(
                f"Query dimension {query.shape[0]} does not match gallery dimension {gallery.dimension}",
                details={"stage": "classify"},
            )

        return np.linalg.norm(gallery.descriptors - query, axis=1)

    def find_nearest(self, gallery: Gallery, descriptor: Any) -> Optional[Match]:
        """Find the closest gallery entry within tolerance.

        Args:
            gallery: Gallery of the dataset to search
            descriptor: Query face descriptor

        Returns:
            The match, or None when the gallery is empty or the nearest
            distance exceeds the tolerance
        """
        distances = self.distances(gallery, descriptor)
        if distances.size == 0:
            return None

        # argmin returns the first index among equal minima
        index = int(np.argmin(distances))
        distance = float(distances[index])

        # Compare in descriptor precision; float32 distances overshoot float64 tolerances
        if distances[index] > distances.dtype.type(self.tolerance):
            logger.debug(
                "Nearest sample outside tolerance",
                label=gallery.labels[index],
                distance=distance,
                tolerance=self.tolerance,
            )
            return None

        return Match(index=index, label=gallery.labels[index], distance=distance)
