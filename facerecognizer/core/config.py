"""Configuration settings for the face dataset recognizer."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        MODEL_NAME: InsightFace model pack used for detection and embeddings
        MODEL_CACHE_DIR: Directory holding (or receiving) the model files
        TOLERANCE: Maximum Euclidean distance accepted as a match
        DETECTOR_MODE: "standard" or "accurate" detection
        USE_GRAY: Convert images to grayscale before detection
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Face Dataset Recognizer"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Engine Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    USE_GPU: bool = False
    GPU_ID: int = 0
    DET_SIZE: int = 640  # Standard detector input size
    ACCURATE_DET_SIZE: int = 1024  # Slower, finds smaller faces
    MAX_IMAGE_PIXELS: int = 1920 * 1080  # ~2MP (Full HD)

    # Classification Settings
    TOLERANCE: float = 0.4
    DETECTOR_MODE: str = "standard"
    USE_GRAY: bool = True
    JPEG_QUALITY: int = 75

    # Upload Settings
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

settings = Settings()
