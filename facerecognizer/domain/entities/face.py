"""Core face domain entities."""
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_descriptor(value: Any) -> np.ndarray:
    """Convert a descriptor-like value into a read-only 1-D float32 array.

    Raises:
        ValueError: If the value is not a non-empty, finite, one-dimensional vector
    """
    try:
        arr = np.array(value, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Descriptor is not numeric: {e}") from e
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"Descriptor must be a non-empty 1-D vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Descriptor contains NaN or infinite values")
    arr.setflags(write=False)
    return arr


class BoundingBox(BaseModel):
    """Face bounding box in source-image pixel coordinates (right/bottom exclusive)."""
    left: int = Field(..., description="Left coordinate of the bounding box")
    top: int = Field(..., description="Top coordinate of the bounding box")
    right: int = Field(..., description="Right coordinate of the bounding box")
    bottom: int = Field(..., description="Bottom coordinate of the bounding box")

    model_config = ConfigDict(frozen=True)

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


class LabeledDescriptor(BaseModel):
    """One dataset sample: an identity label and its face descriptor."""
    label: str = Field(..., description="Caller-assigned identity label")
    descriptor: np.ndarray = Field(..., description="Face descriptor vector")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator('descriptor', mode='before')
    @classmethod
    def validate_descriptor(cls, v: Any) -> np.ndarray:
        """Validate and convert the descriptor to a read-only numpy array."""
        return as_descriptor(v)

    @property
    def dimension(self) -> int:
        return int(self.descriptor.shape[0])


class DetectedFace(BaseModel):
    """Face found by the detection engine, with its descriptor."""
    bounding_box: BoundingBox = Field(..., description="Bounding box coordinates")
    descriptor: np.ndarray = Field(..., description="Face descriptor vector")
    confidence: float = Field(1.0, description="Confidence score of the detection")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator('descriptor', mode='before')
    @classmethod
    def validate_descriptor(cls, v: Any) -> np.ndarray:
        """Validate and convert the descriptor to a read-only numpy array."""
        return as_descriptor(v)
