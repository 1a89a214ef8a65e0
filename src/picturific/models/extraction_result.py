"""Run state and the immutable result of one extraction run."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .extracted_image import ExtractedImage


class RunState(str, Enum):
    IDLE = "idle"
    LOADING_DOCUMENT = "loading-document"
    EXTRACTING = "extracting"
    DEDUPLICATING = "deduplicating"
    FALLBACK_RASTERIZING = "fallback-rasterizing"
    DONE = "done"
    ERROR = "error"


class ExtractionStatus(str, Enum):
    OK = "ok"
    OK_EMPTY_NO_FALLBACK = "ok-empty-no-fallback"
    OK_FALLBACK_USED = "ok-fallback-used"
    ERROR = "error"


@dataclass(frozen=True)
class RunMetadata:
    """Page count and source filename of the loaded document."""

    page_count: int
    filename: Optional[str] = None


@dataclass(frozen=True)
class ExtractionResult:
    """Final images of a run plus how the run ended."""

    status: ExtractionStatus
    images: Tuple[ExtractedImage, ...] = ()
    metadata: Optional[RunMetadata] = None
    message: Optional[str] = None

    @classmethod
    def failed(
        cls, message: str, metadata: Optional[RunMetadata] = None
    ) -> "ExtractionResult":
        return cls(status=ExtractionStatus.ERROR, metadata=metadata, message=message)

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def is_error(self) -> bool:
        return self.status is ExtractionStatus.ERROR

    @property
    def fallback_used(self) -> bool:
        return self.status is ExtractionStatus.OK_FALLBACK_USED

    def summary(self) -> str:
        """One-line description for the user, e.g. 'doc.pdf · 3 pages · 2 images found'."""
        if self.is_error:
            return self.message or "Error"
        parts = []
        if self.metadata is not None:
            if self.metadata.filename:
                parts.append(self.metadata.filename)
            pages = self.metadata.page_count
            parts.append(f"{pages} page{'s' if pages != 1 else ''}")
        count = self.image_count
        parts.append(f"{count} image{'s' if count != 1 else ''} found")
        return " · ".join(parts)
