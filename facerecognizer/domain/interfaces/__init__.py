"""Service interfaces package."""
from .recognition import FaceEmbeddingEngine

__all__ = ["FaceEmbeddingEngine"]
