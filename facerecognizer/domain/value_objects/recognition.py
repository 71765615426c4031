"""Face recognition value objects."""
from enum import Enum
from typing import Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from facerecognizer.domain.entities.face import BoundingBox


class DetectorMode(str, Enum):
    """Detector accuracy/speed trade-off, passed through to the engine."""
    STANDARD = "standard"
    ACCURATE = "accurate"


class Gallery(BaseModel):
    """Descriptor matrix and label table of a dataset, in the same order.

    Row ``i`` of ``descriptors`` belongs to ``labels[i]``.
    """
    descriptors: np.ndarray = Field(..., description="(N, D) float32 descriptor matrix")
    labels: Tuple[str, ...] = Field(..., description="Label of each descriptor row")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def empty(cls) -> "Gallery":
        return cls(descriptors=np.zeros((0, 0), dtype=np.float32), labels=())

    @property
    def dimension(self) -> int:
        return int(self.descriptors.shape[1]) if len(self.labels) else 0

    def __len__(self) -> int:
        return len(self.labels)


class Match(BaseModel):
    """Nearest gallery entry accepted by the matcher."""
    index: int = Field(..., description="Gallery row of the matched descriptor")
    label: str = Field(..., description="Label of the matched descriptor")
    distance: float = Field(..., description="Euclidean distance to the query descriptor")


class ClassifiedFace(BaseModel):
    """A detected face resolved against the dataset."""
    label: str = Field(..., description="Matched identity label")
    bounding_box: BoundingBox = Field(..., description="Location of the query face")
    distance: float = Field(..., description="Distance to the matched dataset sample")
