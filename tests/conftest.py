"""Shared fakes and PDF builders for the test suite."""

import threading
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pytest
from PIL import Image
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.generic import NameObject

from picturific.errors import PageRenderError
from picturific.models.extracted_image import ExtractedImage
from picturific.models.image_metadata import ImageMetadata
from picturific.models.page_models import DecodedImage, Viewport
from picturific.object_urls import ObjectUrlRegistry


def decoded(width: int, height: int, color=(200, 40, 40), mode: str = "RGB") -> DecodedImage:
    """A decoded-object cache entry like the engine produces for an image XObject."""
    img = Image.new(mode, (width, height), color if mode != "L" else color[0])
    return DecodedImage(width=width, height=height, data=img.tobytes(), mode=mode)


class FakePage:
    """Page handle whose decoded-object cache is filled only by render()."""

    def __init__(
        self,
        page_number: int,
        entries: Optional[Dict[str, object]] = None,
        fail_render: bool = False,
        size: Tuple[int, int] = (60, 40),
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.page_number = page_number
        self.objs: Dict[str, object] = {}
        self.rendered_scales: List[float] = []
        self.started = threading.Event()
        self._entries = entries or {}
        self._fail_render = fail_render
        self._size = size
        self._gate = gate

    def get_viewport(self, scale: float) -> Viewport:
        return Viewport(self._size[0] * scale, self._size[1] * scale, scale)

    def render(self, viewport: Viewport) -> Image.Image:
        self.rendered_scales.append(viewport.scale)
        self.started.set()
        if self._gate is not None:
            self._gate.wait(5)
        if self._fail_render:
            raise PageRenderError(self.page_number, "no drawing context")
        self.objs = dict(self._entries)
        return Image.new("RGB", (int(viewport.width), int(viewport.height)), "white")


class FakeDocument:
    def __init__(self, pages: List[FakePage], filename: Optional[str] = None) -> None:
        self.pages = pages
        self.filename = filename
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def get_page(self, page_number: int) -> FakePage:
        return self.pages[page_number - 1]

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeDocument":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def loader_for(document_factory):
    """A load_document replacement building a fresh fake document per call."""

    def load(data: bytes, filename: Optional[str] = None):
        return document_factory()

    return load


def make_image_pdf(sizes: List[Tuple[int, int]]) -> bytes:
    """One page per size, each page being a single embedded RGB image."""
    colors = [(220, 30, 30), (30, 160, 60), (40, 40, 200), (240, 200, 20)]
    images = [
        Image.new("RGB", size, colors[i % len(colors)]) for i, size in enumerate(sizes)
    ]
    buffer = BytesIO()
    images[0].save(
        buffer, format="PDF", save_all=True, append_images=images[1:], resolution=72.0
    )
    return buffer.getvalue()


def make_blank_pdf(
    page_count: int, width: float = 100, height: float = 50, password: Optional[str] = None
) -> bytes:
    """Pages with no content and no images."""
    writer = PdfWriter()
    for _ in range(page_count):
        writer.add_blank_page(width=width, height=height)
    if password:
        writer.encrypt(password)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_shared_resources_pdf(size: Tuple[int, int] = (40, 30)) -> bytes:
    """Page 1 draws one image; page 2 shares its resources but draws nothing."""
    source = PdfReader(BytesIO(make_image_pdf([size])))
    writer = PdfWriter()
    writer.add_page(source.pages[0])
    second = writer.add_blank_page(width=size[0], height=size[1])
    second[NameObject("/Resources")] = writer.pages[0].raw_get("/Resources")
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_extracted(
    scope, image_id: str, page_number: int, width: int, height: int, color="red"
) -> ExtractedImage:
    metadata = ImageMetadata(
        image_id=image_id, page_number=page_number, width=width, height=height
    )
    return ExtractedImage.from_pil_image(
        metadata, Image.new("RGB", (width, height), color), scope
    )


@pytest.fixture
def url_registry() -> ObjectUrlRegistry:
    return ObjectUrlRegistry()


@pytest.fixture
def scope(url_registry):
    run_scope = url_registry.scope()
    yield run_scope
    run_scope.release()
