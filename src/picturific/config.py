"""Configuration singleton for Picturific."""

import os
from typing import Optional


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


class Config:
    """Singleton configuration class."""

    _instance: Optional["Config"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize all configuration values."""
        # Rendering Configuration - scales can be overridden from the environment
        self.EXTRACT_SCALE: float = _positive_float("PICTURIFIC_EXTRACT_SCALE", 1.0)
        self.FALLBACK_SCALE: float = _positive_float("PICTURIFIC_FALLBACK_SCALE", 2.0)

        # Output Configuration
        self.IMAGE_FORMAT = "PNG"
        self.IMAGE_EXTENSION = "png"
        self.IMAGE_MEDIA_TYPE = "image/png"
        self.RASTER_ID_PREFIX = "raster-page-"
        self.DEFAULT_ARCHIVE_NAME = "images"
        self.ARCHIVE_EXTENSION = ".zip"
        self.OBJECT_URL_PREFIX = "blob:picturific/"

        # Input Configuration
        self.PDF_MEDIA_TYPE = "application/pdf"
        self.PDF_EXTENSION = ".pdf"

        # User-facing messages
        self.INPUT_REJECTED_MESSAGE = "Please select a PDF file."
        self.FALLBACK_USED_MESSAGE = (
            "No embedded images were found. Fallback: rasterized each page as a PNG. "
            "This is not perfect extraction: vector graphics, text, and image "
            "quality may differ from the originals."
        )
        self.EMPTY_FALLBACK_MESSAGE = (
            "No embedded images or rasterized pages could be extracted. "
            "(Some PDFs only have vector graphics or are encrypted.)"
        )
        self.GENERIC_FAILURE_MESSAGE = "Failed to process PDF"
        self.SUPERSEDED_MESSAGE = "Extraction superseded by a newer file."

