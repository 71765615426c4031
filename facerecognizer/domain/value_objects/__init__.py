"""Value objects package."""
from .recognition import ClassifiedFace, DetectorMode, Gallery, Match

__all__ = ["ClassifiedFace", "DetectorMode", "Gallery", "Match"]
