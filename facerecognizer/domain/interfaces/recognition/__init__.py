from .face_recognition import FaceEmbeddingEngine

__all__ = ["FaceEmbeddingEngine"]
