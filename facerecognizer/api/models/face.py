"""API specific face models."""
from typing import List

from pydantic import BaseModel, Field

from facerecognizer.domain.entities.face import BoundingBox, LabeledDescriptor
from facerecognizer.domain.value_objects.recognition import ClassifiedFace

# Constants for validation ranges used in API models
MAX_LABEL_LENGTH = 256
MAX_BATCH_SIZE = 1000


class DatasetEntryResponse(BaseModel):
    """Response model for a sample added to the dataset."""
    label: str = Field(..., description="Identity label of the sample")
    dimension: int = Field(..., description="Length of the stored descriptor")
    dataset_size: int = Field(..., description="Number of samples in the dataset after the addition")

    @classmethod
    def from_entry(cls, entry: LabeledDescriptor, dataset_size: int) -> "DatasetEntryResponse":
        """Create a response from the stored dataset sample."""
        return cls(label=entry.label, dimension=entry.dimension, dataset_size=dataset_size)


class DescriptorEntry(BaseModel):
    """A pre-computed descriptor to add to the dataset."""
    label: str = Field(
        ...,
        description="Identity label",
        min_length=1, max_length=MAX_LABEL_LENGTH
    )
    descriptor: List[float] = Field(
        ...,
        description="Face descriptor vector",
        min_length=1
    )


class DescriptorBatchRequest(BaseModel):
    """Request model for the /dataset/descriptors endpoint."""
    entries: List[DescriptorEntry] = Field(
        ...,
        description="Descriptors to append, in order",
        min_length=1, max_length=MAX_BATCH_SIZE
    )


class DescriptorBatchResponse(BaseModel):
    """Response model for the /dataset/descriptors endpoint."""
    added: int = Field(..., description="Number of samples appended")
    dataset_size: int = Field(..., description="Number of samples in the dataset")


class DatasetResponse(BaseModel):
    """Response model for the /dataset endpoint."""
    size: int = Field(..., description="Number of samples in the dataset")
    labels: List[str] = Field(..., description="Sample labels in dataset order")


class RemovalResponse(BaseModel):
    """Response model for dataset removals."""
    label: str = Field(..., description="Label that was removed")
    removed: int = Field(..., description="Number of samples removed (0 if the label was absent)")
    dataset_size: int = Field(..., description="Number of samples left in the dataset")


class ClassifiedFaceRecord(BaseModel):
    """API model for a single classified face."""
    label: str = Field(..., description="Matched identity label")
    bounding_box: BoundingBox = Field(..., description="Face location in the query image")
    distance: float = Field(..., description="Descriptor distance to the matched sample", ge=0.0)

    @classmethod
    def from_classified_face(cls, face: ClassifiedFace) -> "ClassifiedFaceRecord":
        """Create an API record from a classification result."""
        return cls(label=face.label, bounding_box=face.bounding_box, distance=face.distance)


class ClassificationResponse(BaseModel):
    """Response model for the /classify endpoints."""
    faces: List[ClassifiedFaceRecord] = Field(..., description="Matched faces, left to right")

    @classmethod
    def from_service_response(cls, faces: List[ClassifiedFace]) -> "ClassificationResponse":
        """Convert recognizer results to the API response model."""
        return cls(faces=[ClassifiedFaceRecord.from_classified_face(face) for face in faces])
