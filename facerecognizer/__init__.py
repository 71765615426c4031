"""Face dataset management and nearest-descriptor face classification."""

__version__ = "0.1.0"
