"""Face recognition API endpoints.

Endpoints are plain ``def`` functions, so FastAPI runs them in its thread
pool; every recognizer call is made inside ``container.acquire()``, which holds
the container lock.
"""
from typing import NoReturn

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from facerecognizer.api.models.face import (
    ClassificationResponse,
    DatasetEntryResponse,
    DatasetResponse,
    DescriptorBatchRequest,
    DescriptorBatchResponse,
    RemovalResponse,
)
from facerecognizer.core.config import settings
from facerecognizer.core.container import ServiceContainer
from facerecognizer.core.exceptions import (
    AmbiguousFaceError,
    EngineError,
    FaceRecognitionError,
    ImageReadError,
    InvalidDescriptorError,
    InvalidImageError,
    NoFaceDetectedError,
    ServiceNotInitializedError,
)
from facerecognizer.core.logging import get_logger
from facerecognizer.infrastructure.dependencies import get_container

logger = get_logger(__name__)
router = APIRouter(
    tags=["face-recognition"],
    responses={
        400: {"description": "Invalid request"},
        422: {"description": "Image does not contain exactly one face"},
        500: {"description": "Internal server error"},
        503: {"description": "Recognizer not initialized"},
    }
)


def _read_upload(image: UploadFile) -> bytes:
    data = image.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Image larger than {settings.MAX_UPLOAD_BYTES} bytes"
        )
    return data


def _raise_http_error(error: FaceRecognitionError) -> NoReturn:
    """Translate a recognizer error into an HTTP error."""
    if isinstance(error, ServiceNotInitializedError):
        raise error
    if isinstance(error, (NoFaceDetectedError, AmbiguousFaceError)):
        logger.warning("Face cardinality check failed", error=str(error))
        raise HTTPException(status_code=422, detail=str(error))
    if isinstance(error, (InvalidImageError, ImageReadError, InvalidDescriptorError)):
        logger.error("Invalid input", error=str(error), stage=error.stage)
        raise HTTPException(status_code=400, detail=str(error))
    if isinstance(error, EngineError):
        logger.error("Face engine failed", error=str(error))
        raise HTTPException(status_code=500, detail="Face engine failed to process the image")
    logger.error("Unexpected recognizer error", error=str(error), exc_info=True)
    raise HTTPException(status_code=500, detail="An unexpected error occurred.")


@router.get(
    "/dataset",
    response_model=DatasetResponse,
    summary="List the dataset",
)
def get_dataset(
    container: ServiceContainer = Depends(get_container)
) -> DatasetResponse:
    """Return the dataset size and its labels in order."""
    with container.acquire() as recognizer:
        labels = list(recognizer.dataset.labels)
    return DatasetResponse(size=len(labels), labels=labels)


@router.post(
    "/dataset",
    response_model=DatasetEntryResponse,
    summary="Add a sample image to the dataset",
    description="Detects the single face of the image and stores its descriptor under the label.",
)
def add_image_to_dataset(
    label: str = Form(..., min_length=1, max_length=256),
    image: UploadFile = File(...),
    container: ServiceContainer = Depends(get_container)
) -> DatasetEntryResponse:
    """Add a sample image to the dataset.

    Raises:
        HTTPException: If the image is invalid or does not contain exactly one face
    """
    data = _read_upload(image)
    try:
        with container.acquire() as recognizer:
            entry = recognizer.add_image_bytes_to_dataset(data, label)
            size = len(recognizer.dataset)
    except FaceRecognitionError as e:
        _raise_http_error(e)
    return DatasetEntryResponse.from_entry(entry, size)


@router.post(
    "/dataset/descriptors",
    response_model=DescriptorBatchResponse,
    summary="Add pre-computed descriptors to the dataset",
)
def add_descriptors(
    request: DescriptorBatchRequest,
    container: ServiceContainer = Depends(get_container)
) -> DescriptorBatchResponse:
    """Append descriptors in order; nothing is added if any entry is invalid."""
    try:
        with container.acquire() as recognizer:
            added = recognizer.add_descriptors(
                (entry.label, entry.descriptor) for entry in request.entries
            )
            size = len(recognizer.dataset)
    except FaceRecognitionError as e:
        _raise_http_error(e)
    return DescriptorBatchResponse(added=len(added), dataset_size=size)


@router.delete(
    "/dataset/{label:path}",
    response_model=RemovalResponse,
    summary="Remove samples from the dataset",
    description="Removes the first sample with the label, or all of them with all=true. "
                "Unknown labels are not an error.",
)
def remove_from_dataset(
    label: str,
    remove_all: bool = Query(False, alias="all", description="Remove every sample with this label"),
    container: ServiceContainer = Depends(get_container)
) -> RemovalResponse:
    """Remove one sample (or every sample) of an identity."""
    with container.acquire() as recognizer:
        if remove_all:
            removed = recognizer.remove_all_from_dataset(label)
        else:
            removed = int(recognizer.remove_from_dataset(label))
        size = len(recognizer.dataset)
    logger.info("Removed samples from dataset", label=label, removed=removed)
    return RemovalResponse(label=label, removed=removed, dataset_size=size)


@router.post(
    "/classify",
    response_model=ClassificationResponse,
    summary="Classify the single face of an image",
)
def classify(
    image: UploadFile = File(...),
    container: ServiceContainer = Depends(get_container)
) -> ClassificationResponse:
    """Classify an image that must contain exactly one face.

    An empty face list means the face matched no dataset sample.
    """
    data = _read_upload(image)
    try:
        with container.acquire() as recognizer:
            faces = recognizer.classify_bytes(data)
    except FaceRecognitionError as e:
        _raise_http_error(e)
    return ClassificationResponse.from_service_response(faces)


@router.post(
    "/classify/multiple",
    response_model=ClassificationResponse,
    summary="Classify every face of an image",
)
def classify_multiple(
    image: UploadFile = File(...),
    container: ServiceContainer = Depends(get_container)
) -> ClassificationResponse:
    """Classify all faces of an image; unmatched faces are left out."""
    data = _read_upload(image)
    try:
        with container.acquire() as recognizer:
            faces = recognizer.classify_multiple_bytes(data)
    except FaceRecognitionError as e:
        _raise_http_error(e)
    return ClassificationResponse.from_service_response(faces)
