"""Extractor: drives one extraction run per selected document."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from picturific.config import Config
from picturific.engine import load_document
from picturific.errors import DocumentLoadError, RunSuperseded
from picturific.models.callbacks import ProcessingCallbacks
from picturific.models.extracted_image import ExtractedImage
from picturific.models.extraction_result import (
    ExtractionResult,
    ExtractionStatus,
    RunMetadata,
    RunState,
)
from picturific.object_urls import ObjectUrlRegistry, UrlScope, registry as default_registry
from picturific.pdf_handler import (
    materialize_candidate,
    rasterize_all,
    render_page,
    scan_decoded_images,
)
from picturific.processing import SelectedFile, dedupe_images, pick_pdf

config = Config()
log = logging.getLogger(__name__)


class Extractor:
    """Owns the run state, the current result and the URLs that result holds."""

    def __init__(
        self,
        load_document: Callable[[bytes, Optional[str]], Any] = load_document,
        registry: Optional[ObjectUrlRegistry] = None,
        callbacks: Optional[ProcessingCallbacks] = None,
        extract_scale: Optional[float] = None,
        fallback_scale: Optional[float] = None,
    ) -> None:
        self._load_document = load_document
        self.registry = registry if registry is not None else default_registry
        self.callbacks = callbacks or ProcessingCallbacks()
        self.extract_scale = extract_scale or config.EXTRACT_SCALE
        self.fallback_scale = fallback_scale or config.FALLBACK_SCALE
        self._state = RunState.IDLE
        self._result: Optional[ExtractionResult] = None
        self._metadata: Optional[RunMetadata] = None
        self._scope: Optional[UrlScope] = None
        self._generation = 0

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result(self) -> Optional[ExtractionResult]:
        return self._result

    @property
    def metadata(self) -> Optional[RunMetadata]:
        return self._metadata

    def is_processing(self) -> bool:
        return self._state not in (RunState.IDLE, RunState.DONE, RunState.ERROR)

    def handle_files(self, files: Sequence[SelectedFile]) -> Awaitable[ExtractionResult]:
        """Validate the selection now and return the extraction to await.

        Raises InputRejected immediately, before anything is read or released,
        when no PDF is among `files`. The file itself is read as part of the run.
        """
        selected = pick_pdf(files)
        return self.extract(selected, selected.name)

    def release(self) -> None:
        """Revoke the current result's URLs and go back to idle."""
        if self._scope is not None:
            self._scope.release()
            self._scope = None
        self._result = None
        self._metadata = None
        self._state = RunState.IDLE

    def close(self) -> None:
        """Release everything and make any in-flight run discard its output."""
        self._generation += 1
        self.release()

    def _set_state(self, generation: int, state: RunState) -> None:
        if generation == self._generation:
            self._state = state

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            raise RunSuperseded(config.SUPERSEDED_MESSAGE)

    @staticmethod
    def _read_selected(selected: SelectedFile) -> bytes:
        try:
            return selected.read()
        except OSError as e:
            raise DocumentLoadError(
                f"Failed to read {selected.name}: {e.strerror or e}"
            ) from e

    async def _extract_page(
        self, run_id: str, document: Any, page_number: int, scope: UrlScope
    ) -> List[ExtractedImage]:
        try:
            page = document.get_page(page_number)
            await render_page(page, self.extract_scale)
            candidates = scan_decoded_images(page)
        except Exception as e:
            log.warning(f"{run_id}: skipping page {page_number}: {e}")
            return []

        results = await asyncio.gather(
            *(materialize_candidate(c, page_number, scope) for c in candidates),
            return_exceptions=True,
        )

        images: List[ExtractedImage] = []
        for candidate, result in zip(candidates, results):
            if isinstance(result, Exception):
                log.warning(
                    f"{run_id}: skip candidate image {candidate.key} "
                    f"on page {page_number}: {result}"
                )
                continue
            if isinstance(result, BaseException):
                raise result
            images.append(result)
        return images

    async def _extract_document(
        self,
        run_id: str,
        generation: int,
        document: Any,
        metadata: RunMetadata,
        scope: UrlScope,
    ) -> ExtractionResult:
        self._set_state(generation, RunState.EXTRACTING)
        extracted: List[ExtractedImage] = []
        for page_number in range(1, document.page_count + 1):
            self._check_current(generation)
            self.callbacks.on_page_start(run_id, page_number, document.page_count)
            extracted.extend(await self._extract_page(run_id, document, page_number, scope))
        self._check_current(generation)

        self._set_state(generation, RunState.DEDUPLICATING)
        images = dedupe_images(extracted)
        kept = {id(image) for image in images}
        for image in extracted:
            if id(image) not in kept:
                scope.revoke(image.url)

        status = ExtractionStatus.OK
        message = None
        if not images:
            log.info(f"{run_id}: no embedded images, rasterizing pages instead")
            self._set_state(generation, RunState.FALLBACK_RASTERIZING)
            images = await rasterize_all(document, scope, self.fallback_scale)
            self._check_current(generation)
            if images:
                status = ExtractionStatus.OK_FALLBACK_USED
                message = config.FALLBACK_USED_MESSAGE
            else:
                status = ExtractionStatus.OK_EMPTY_NO_FALLBACK
                message = config.EMPTY_FALLBACK_MESSAGE

        for image in images:
            self.callbacks.on_image_extracted(run_id, image.image_id, image.page_number)
        return ExtractionResult(
            status=status, images=tuple(images), metadata=metadata, message=message
        )

    async def extract(
        self, data: Union[bytes, SelectedFile], filename: Optional[str] = None
    ) -> ExtractionResult:
        """Run the full pipeline over PDF bytes (or a selected file) and return the result."""
        self.release()
        self._generation += 1
        generation = self._generation
        run_id = f"run_{generation}"
        scope = self.registry.scope()
        metadata: Optional[RunMetadata] = None

        try:
            self._set_state(generation, RunState.LOADING_DOCUMENT)
            log.info(f"{run_id}: loading {filename or 'document'}")
            if isinstance(data, SelectedFile):
                data = await asyncio.to_thread(self._read_selected, data)
            document = await asyncio.to_thread(self._load_document, data, filename)
            with document:
                self._check_current(generation)
                metadata = RunMetadata(page_count=document.page_count, filename=filename)
                self._metadata = metadata
                result = await self._extract_document(
                    run_id, generation, document, metadata, scope
                )
        except RunSuperseded as e:
            log.info(f"{run_id}: {e}")
            scope.release()
            return ExtractionResult.failed(str(e), metadata)
        except asyncio.CancelledError:
            log.warning(f"{run_id} cancelled")
            scope.release()
            self._set_state(generation, RunState.IDLE)
            raise
        except Exception as e:
            log.exception(f"{run_id} failed")
            scope.release()
            result = ExtractionResult.failed(
                str(e) or config.GENERIC_FAILURE_MESSAGE, metadata
            )
            if generation == self._generation:
                self._state = RunState.ERROR
                self._result = result
            self.callbacks.on_error(run_id, result.message)
            return result

        self._scope = scope
        self._result = result
        self._state = RunState.DONE
        log.info(f"{run_id}: {result.status.value}, {result.summary()}")
        self.callbacks.on_complete(run_id, result)
        return result
