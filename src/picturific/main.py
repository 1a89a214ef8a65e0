"""
Backend API for a Picturific front end
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from picturific.archive import save_archive
from picturific.errors import InputRejected
from picturific.extractor import Extractor
from picturific.models.callbacks import ProcessingCallbacks
from picturific.models.extraction_result import ExtractionResult
from picturific.processing import SelectedFile, pick_pdf

log = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from PICTURIFIC_DEBUG / PICTURIFIC_LOG_FILE."""
    log_level = (
        logging.DEBUG
        if os.environ.get("PICTURIFIC_DEBUG", "").lower() == "true"
        else logging.INFO
    )
    log_file = os.environ.get("PICTURIFIC_LOG_FILE")
    if log_file:
        logging.basicConfig(
            level=log_level,
            filename=log_file,
            filemode="w",
            format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logging.basicConfig(
            level=log_level,
            format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


@dataclass
class ExtractionState:
    """Snapshot the front end renders from; never mutated by the front end."""

    status: str
    is_processing: bool
    filename: Optional[str] = None
    page_count: Optional[int] = None
    image_count: int = 0
    fallback_used: bool = False
    current_page: int = 0
    message: Optional[str] = None
    summary: Optional[str] = None
    images: List[Dict[str, object]] = field(default_factory=list)


class PicturificApi:
    def __init__(self, extractor: Optional[Extractor] = None):
        self.extractor = extractor or Extractor()
        self.extractor.callbacks = ProcessingCallbacks(
            on_page_start=self._on_page_start,
            on_image_extracted=self._on_image_extracted,
            on_error=self._on_error,
            on_complete=self._on_complete,
        )
        self.is_processing = False
        self.current_page = 0
        self.message: Optional[str] = None
        self._thread: Optional[threading.Thread] = None
        log.info("PicturificApi initialized")

    def _on_page_start(self, run_id: str, page_number: int, page_count: int) -> None:
        self.current_page = page_number
        log.debug(f"{run_id}: page {page_number}/{page_count}")

    def _on_image_extracted(self, run_id: str, image_id: str, page_number: int) -> None:
        log.debug(f"{run_id}: extracted {image_id} from page {page_number}")

    def _on_error(self, run_id: str, message: str) -> None:
        log.error(f"{run_id}: {message}")

    def _on_complete(self, run_id: str, result: ExtractionResult) -> None:
        log.info(f"{run_id} complete: {result.summary()}")

    def _select(self, paths: Sequence[str]):
        files = [SelectedFile.from_path(Path(p)) for p in paths]
        return self.extractor.handle_files(files)

    def process_files(self, paths: Sequence[str]) -> ExtractionState:
        """Extract from the first PDF among `paths`, blocking until done."""
        try:
            extraction = self._select(paths)
        except InputRejected as e:
            log.info(f"Rejected selection {list(paths)}: {e}")
            self.message = str(e)
            return self.get_state()

        self.message = None
        self.is_processing = True
        try:
            result = asyncio.run(extraction)
        finally:
            self.is_processing = False
        self.message = result.message
        return self.get_state()

    def start_processing(self, paths: Sequence[str]) -> Optional[threading.Thread]:
        """Run process_files in a background thread; returns None if rejected."""
        try:
            pick_pdf(SelectedFile.from_path(Path(p)) for p in paths)
        except InputRejected as e:
            self.message = str(e)
            return None

        def run_async_processing():
            try:
                self.process_files(paths)
            except Exception as e:
                log.error(f"Processing error: {e}", exc_info=True)
                self.message = str(e)

        self._thread = threading.Thread(target=run_async_processing, daemon=True)
        self.is_processing = True
        self._thread.start()
        return self._thread

    def get_state(self) -> ExtractionState:
        result = self.extractor.result
        metadata = self.extractor.metadata
        if result is None:
            return ExtractionState(
                status=self.extractor.state.value,
                is_processing=self.is_processing,
                filename=metadata.filename if metadata else None,
                page_count=metadata.page_count if metadata else None,
                current_page=self.current_page,
                message=self.message,
            )
        return ExtractionState(
            status=result.status.value,
            is_processing=self.is_processing,
            filename=result.metadata.filename if result.metadata else None,
            page_count=result.metadata.page_count if result.metadata else None,
            image_count=result.image_count,
            fallback_used=result.fallback_used,
            current_page=self.current_page,
            message=self.message,
            summary=result.summary(),
            images=[
                {
                    "id": image.image_id,
                    "page": image.page_number,
                    "width": image.width,
                    "height": image.height,
                    "url": image.url,
                    "file_name": image.file_name(ordinal),
                }
                for ordinal, image in enumerate(result.images, start=1)
            ],
        )

    def resolve_url(self, url: str) -> bytes:
        return self.extractor.registry.resolve(url)

    def url_media_type(self, url: str) -> str:
        """Content type to serve a reference URL with."""
        return self.extractor.registry.media_type(url)

    def save_archive(self, output_dir: str) -> Optional[Path]:
        """Write all current images as one zip; None when there is nothing to save."""
        result = self.extractor.result
        if result is None or not result.images:
            log.warning("No images to archive")
            return None
        filename = result.metadata.filename if result.metadata else None
        return save_archive(list(result.images), filename, Path(output_dir))

    def save_image(self, image_id: str, output_dir: str) -> Path:
        result = self.extractor.result
        images = list(result.images) if result else []
        for ordinal, image in enumerate(images, start=1):
            if image.image_id == image_id:
                return Path(output_dir) / image.save_to_disk(Path(output_dir), ordinal)
        raise KeyError(f"No extracted image with id {image_id}")

    def close(self) -> None:
        self.extractor.close()
        log.info("PicturificApi closed")
