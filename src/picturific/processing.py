import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from picturific.config import Config
from picturific.errors import InputRejected
from picturific.models.extracted_image import ExtractedImage

config = Config()
log = logging.getLogger(__name__)


@dataclass
class SelectedFile:
    """A file handed over by the file picker or a drop."""

    name: str
    media_type: Optional[str] = None
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Path) -> "SelectedFile":
        path = Path(path)
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, media_type=media_type, path=path)

    def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"{self.name} has neither data nor a path")
        return self.path.read_bytes()


def is_pdf_file(file: SelectedFile) -> bool:
    return (
        file.media_type == config.PDF_MEDIA_TYPE
        or file.name.lower().endswith(config.PDF_EXTENSION)
    )


def pick_pdf(files: Iterable[SelectedFile]) -> SelectedFile:
    """Return the first PDF among the selected files, or reject the selection."""
    for file in files:
        if is_pdf_file(file):
            return file
    raise InputRejected(config.INPUT_REJECTED_MESSAGE)


def dedupe_images(images: Iterable[ExtractedImage]) -> List[ExtractedImage]:
    """Keep the first image per (page, width, height), preserving order.

    The engine often stores several cache entries for one logical image
    (soft masks, repeated references). Two different images of the same size
    on the same page also collapse into one.
    """
    unique: List[ExtractedImage] = []
    seen: Set[Tuple[int, int, int]] = set()
    for image in images:
        key = (image.page_number, image.width, image.height)
        if key in seen:
            log.debug(f"Dropping duplicate {image.image_id} ({key})")
            continue
        seen.add(key)
        unique.append(image)
    return unique
