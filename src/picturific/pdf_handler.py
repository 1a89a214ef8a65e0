import asyncio
import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from PIL import Image

from picturific.config import Config
from picturific.errors import CandidateDecodeError, PageRenderError
from picturific.models.extracted_image import ExtractedImage
from picturific.models.image_metadata import ImageMetadata
from picturific.models.page_models import CandidateImage
from picturific.object_urls import UrlScope

config = Config()
log = logging.getLogger(__name__)

CHANNEL_MODES = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}
PIXEL_BUFFER_TYPES = (bytes, bytearray, memoryview)


async def render_page(page: Any, scale: float) -> Image.Image:
    """Render a page and wait for it, so its decoded-object cache is filled."""
    viewport = page.get_viewport(scale)
    surface = await asyncio.to_thread(page.render, viewport)
    if surface is None:
        raise PageRenderError(page.page_number, "no drawing surface available")
    return surface


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def _is_dimension(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _as_candidate(key: str, entry: Any) -> Optional[CandidateImage]:
    if entry is None:
        return None
    data = _field(entry, "data")
    width = _field(entry, "width")
    height = _field(entry, "height")
    if data is None or width is None or height is None:
        return None
    if not isinstance(data, PIXEL_BUFFER_TYPES):
        return None
    if not (_is_dimension(width) and _is_dimension(height)):
        log.debug(f"Discarding {key}: bad dimensions {width!r}x{height!r}")
        return None
    mode = _field(entry, "mode")
    return CandidateImage(
        key=key,
        width=int(width),
        height=int(height),
        data=bytes(data),
        mode=mode if isinstance(mode, str) else None,
    )


def scan_decoded_images(page: Any) -> List[CandidateImage]:
    """Collect raster-image-shaped entries from a rendered page's decoded-object cache.

    The cache also holds fonts, form XObjects and whatever else the engine
    decoded, and its layout is not a stable contract. Anything that does not
    look like a pixel buffer with positive integer width and height is ignored;
    a cache that cannot be read at all yields no candidates.
    """
    page_number = getattr(page, "page_number", "?")
    store = getattr(page, "objs", None)
    if not isinstance(store, Mapping):
        log.warning(f"Page {page_number}: no readable decoded-object cache")
        return []

    try:
        entries = list(store.items())
    except Exception as e:
        log.warning(f"Page {page_number}: could not enumerate decoded objects: {e}")
        return []

    log.debug(f"Page {page_number} object keys: {[key for key, _ in entries]}")

    candidates: List[CandidateImage] = []
    for key, entry in entries:
        try:
            candidate = _as_candidate(str(key), entry)
        except Exception as e:
            log.warning(f"Page {page_number}: skipping object {key}: {e}")
            continue
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def decode_candidate(candidate: CandidateImage) -> Image.Image:
    """Turn a candidate's raw pixels into an image of exactly its size."""
    pixels = candidate.width * candidate.height
    mode = candidate.mode
    if mode is None:
        channels, remainder = divmod(len(candidate.data), pixels)
        if remainder or channels not in CHANNEL_MODES:
            raise CandidateDecodeError(
                f"{candidate.key}: {len(candidate.data)} bytes do not fit "
                f"{candidate.width}x{candidate.height} pixels"
            )
        mode = CHANNEL_MODES[channels]
    elif mode not in CHANNEL_MODES.values():
        raise CandidateDecodeError(f"{candidate.key}: unsupported pixel mode {mode}")

    expected = pixels * len(mode)
    if len(candidate.data) != expected:
        raise CandidateDecodeError(
            f"{candidate.key}: expected {expected} bytes for {mode} "
            f"{candidate.width}x{candidate.height}, got {len(candidate.data)}"
        )

    try:
        return Image.frombytes(mode, (candidate.width, candidate.height), candidate.data)
    except (ValueError, TypeError) as e:
        raise CandidateDecodeError(f"{candidate.key}: {e}") from e


async def materialize_candidate(
    candidate: CandidateImage, page_number: int, scope: UrlScope
) -> ExtractedImage:
    """Encode a candidate losslessly and give it a reference URL."""
    metadata = ImageMetadata(
        image_id=f"{page_number}-{candidate.key}",
        page_number=page_number,
        width=candidate.width,
        height=candidate.height,
        source_key=candidate.key,
    )
    image = await asyncio.to_thread(decode_candidate, candidate)
    return await asyncio.to_thread(ExtractedImage.from_pil_image, metadata, image, scope)


async def rasterize_all(
    document: Any, scope: UrlScope, scale: Optional[float] = None
) -> List[ExtractedImage]:
    """Render every page as one image; pages that fail to render are skipped."""
    scale = scale or config.FALLBACK_SCALE
    images: List[ExtractedImage] = []
    for page_number in range(1, document.page_count + 1):
        try:
            page = document.get_page(page_number)
            surface = await render_page(page, scale)
        except Exception as e:
            log.warning(f"Fallback: skipping page {page_number}: {e}")
            continue

        metadata = ImageMetadata(
            image_id=f"{config.RASTER_ID_PREFIX}{page_number}",
            page_number=page_number,
            width=surface.width,
            height=surface.height,
        )
        images.append(
            await asyncio.to_thread(ExtractedImage.from_pil_image, metadata, surface, scope)
        )
    log.info(f"Fallback rasterized {len(images)}/{document.page_count} pages")
    return images
