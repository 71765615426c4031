"""Domain entities package."""
from .face import BoundingBox, DetectedFace, LabeledDescriptor

__all__ = ["BoundingBox", "DetectedFace", "LabeledDescriptor"]
