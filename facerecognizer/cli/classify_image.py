"""CLI tool that builds a dataset from sample images and classifies an image."""
import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np

from facerecognizer.core.config import settings
from facerecognizer.core.exceptions import FaceRecognitionError
from facerecognizer.core.logging import get_logger, setup_logging
from facerecognizer.domain.value_objects.recognition import ClassifiedFace, DetectorMode
from facerecognizer.services.face_recognizer import FaceRecognizer

logger = get_logger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".webp"}


def find_samples(samples_dir: Path) -> List[Tuple[str, Path]]:
    """
    Collect (label, path) pairs from a sample directory.

    Images directly inside the directory are labeled by file stem
    (``alice.jpg`` -> ``alice``); images in a subdirectory are labeled by the
    subdirectory name (``bob/1.jpg`` -> ``bob``), which allows several
    samples per identity.
    """
    samples = []
    for path in sorted(samples_dir.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        label = path.stem if path.parent == samples_dir else path.parent.name
        samples.append((label, path))
    return samples


def load_dataset(recognizer: FaceRecognizer, samples_dir: Path) -> int:
    """Add every usable sample image to the recognizer's dataset.

    Samples that fail (no face, several faces, unreadable) are logged and skipped.

    Returns:
        Number of samples added
    """
    added = 0
    for label, path in find_samples(samples_dir):
        try:
            recognizer.add_image_to_dataset(path, label)
            added += 1
        except FaceRecognitionError as e:
            logger.warning("Skipping sample", path=str(path), label=label, error=str(e))
    return added


def draw_faces(
    image: np.ndarray,
    faces: List[ClassifiedFace],
    output_path: Path
) -> None:
    """
    Draw bounding boxes and labels on the image and save it.

    Args:
        image: Original image as numpy array
        faces: Classified faces
        output_path: Where to write the annotated image
    """
    img_draw = image.copy()

    BOX_COLOR = (0, 180, 0)  # Darker green
    TEXT_COLOR = (255, 255, 255)  # White

    font_scale = 0.6
    thickness = 2
    padding = 8

    for face in faces:
        bbox = face.bounding_box
        cv2.rectangle(img_draw, (bbox.left, bbox.top), (bbox.right, bbox.bottom), BOX_COLOR, thickness)

        text = f"{face.label} ({face.distance:.2f})"
        (text_width, text_height), _ = cv2.getTextSize(
            text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
        )
        cv2.rectangle(
            img_draw,
            (bbox.left, bbox.top - text_height - padding * 2),
            (bbox.left + text_width + padding, bbox.top),
            BOX_COLOR,
            -1
        )
        cv2.putText(
            img_draw,
            text,
            (bbox.left + padding // 2, bbox.top - padding),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            TEXT_COLOR,
            thickness
        )

    if not cv2.imwrite(str(output_path), img_draw):
        logger.error("Failed to write annotated image", path=str(output_path))
        return
    logger.info("Saved annotated image", path=str(output_path))


def classify_image(
    image_path: Path,
    samples_dir: Path,
    multiple: bool = False,
    model_path: Optional[str] = None,
    tolerance: Optional[float] = None,
    detector_mode: Optional[str] = None,
    use_gray: Optional[bool] = None,
    output_path: Optional[Path] = None,
) -> List[ClassifiedFace]:
    """
    Classify the faces of an image against a dataset built from sample images.

    Args:
        image_path: Image to classify
        samples_dir: Directory of labeled sample images
        multiple: Classify every face instead of requiring a single face
        model_path: Directory of the face models
        tolerance: Maximum descriptor distance for a match
        detector_mode: "standard" or "accurate"
        use_gray: Grayscale-normalize images before detection
        output_path: Optional path for an annotated copy of the image

    Returns:
        The classified faces
    """
    with FaceRecognizer(
        model_path=model_path,
        tolerance=tolerance,
        detector_mode=detector_mode,
        use_gray=use_gray,
    ) as recognizer:
        added = load_dataset(recognizer, samples_dir)
        logger.info("Dataset loaded", samples=added, labels=sorted(set(recognizer.dataset.labels)))

        if multiple:
            faces = recognizer.classify_multiple(image_path)
        else:
            faces = recognizer.classify(image_path)

    logger.info("Classification completed", matches=len(faces), image_path=str(image_path))
    for i, face in enumerate(faces, 1):
        bbox = face.bounding_box
        logger.info(
            f"Face {i} details",
            label=face.label,
            distance=f"{face.distance:.3f}",
            position={
                "left": bbox.left,
                "top": bbox.top,
                "right": bbox.right,
                "bottom": bbox.bottom,
            }
        )

    if output_path is not None:
        img = cv2.imread(str(image_path))
        if img is None:
            logger.error("Failed to load image for visualization", path=str(image_path))
        else:
            draw_faces(img, faces, output_path)

    return faces


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Classify the faces of an image against a directory of labeled samples"
    )
    parser.add_argument("image_path", type=Path, help="Path to the image to classify")
    parser.add_argument(
        "--samples",
        type=Path,
        required=True,
        help="Directory of sample images (file stem or subdirectory name is the label)"
    )
    parser.add_argument("--models", default=settings.MODEL_CACHE_DIR, help="Face model directory")
    parser.add_argument(
        "--multiple",
        action="store_true",
        help="Classify every face instead of requiring exactly one"
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=settings.TOLERANCE,
        help="Maximum descriptor distance for a match (smaller is stricter)"
    )
    parser.add_argument(
        "--detector",
        choices=[mode.value for mode in DetectorMode],
        default=settings.DETECTOR_MODE,
        help="Detector mode"
    )
    parser.add_argument(
        "--no-gray",
        action="store_true",
        help="Don't convert images to grayscale before detection"
    )
    parser.add_argument("--output", type=Path, help="Save an annotated copy of the image here")
    args = parser.parse_args(argv)

    setup_logging()

    if not args.samples.is_dir():
        logger.error("Samples directory not found", path=str(args.samples))
        return 1

    try:
        classify_image(
            args.image_path,
            args.samples,
            multiple=args.multiple,
            model_path=args.models,
            tolerance=args.tolerance,
            detector_mode=args.detector,
            use_gray=not args.no_gray,
            output_path=args.output,
        )
    except FaceRecognitionError as e:
        logger.error("Classification failed", error=str(e), stage=e.stage)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
