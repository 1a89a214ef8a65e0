"""Zip packaging of extracted images for bulk download."""

import logging
import zipfile
from io import BytesIO
from pathlib import Path, PurePath
from typing import List, Optional, Sequence, Tuple

from picturific.config import Config
from picturific.models.extracted_image import ExtractedImage

config = Config()
log = logging.getLogger(__name__)


class ZipArchive:
    """Collects named entries and builds an in-memory zip from them.

    Entries are stored uncompressed: the PNG payloads are already compressed
    and must come back out byte for byte.
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[str, bytes]] = []
        self._names: set = set()

    def add_entry(self, name: str, data: bytes) -> None:
        if name in self._names:
            raise ValueError(f"Duplicate archive entry: {name}")
        self._names.add(name)
        self._entries.append((name, data))

    def build(self) -> bytes:
        buffer = BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as zf:
            for name, data in self._entries:
                zf.writestr(name, data)
        return buffer.getvalue()

    def __len__(self) -> int:
        return len(self._entries)


def archive_entry_name(image: ExtractedImage, ordinal: int) -> str:
    return image.file_name(ordinal)


def archive_base_name(filename: Optional[str]) -> str:
    """Source file name without its extension, or the generic default."""
    if not filename:
        return config.DEFAULT_ARCHIVE_NAME
    name = PurePath(filename).name
    stem, dot, _ = name.rpartition(".")
    base = stem if dot else name
    return base or config.DEFAULT_ARCHIVE_NAME


def archive_filename(filename: Optional[str]) -> str:
    return f"{archive_base_name(filename)}{config.ARCHIVE_EXTENSION}"


def build_archive(images: Sequence[ExtractedImage]) -> bytes:
    archive = ZipArchive()
    for ordinal, image in enumerate(images, start=1):
        archive.add_entry(archive_entry_name(image, ordinal), image.image_bytes)
    return archive.build()


def save_archive(
    images: Sequence[ExtractedImage], filename: Optional[str], output_dir: Path
) -> Path:
    """Write the archive for `images` into `output_dir` and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    archive_path = output_dir / archive_filename(filename)
    with open(archive_path, "wb") as f:
        f.write(build_archive(images))
    log.info(f"Saved {len(images)} images to {archive_path}")
    return archive_path
