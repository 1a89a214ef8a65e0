"""Document rendering engine.

PyPDF2 opens the document and decodes the images a page draws into a
page-scoped decoded-object cache (``PdfPage.objs``); PyMuPDF rasterizes the
page itself. The cache is filled as a side effect of ``PdfPage.render`` and is
only meaningful once that call has returned.
"""

import logging
from io import BytesIO
from typing import Any, Dict, Optional, Set

import fitz  # PyMuPDF
from PIL import Image
from PyPDF2 import PasswordType, PdfReader
from PyPDF2.filters import _xobj_to_image
from PyPDF2.generic import ContentStream, IndirectObject

from picturific.config import Config
from picturific.errors import DocumentLoadError, PageRenderError
from picturific.models.page_models import DecodedImage, Viewport

config = Config()
log = logging.getLogger(__name__)

DECODED_IMAGE_MODES = ("L", "LA", "RGB", "RGBA")


def _resolve(obj: Any) -> Any:
    return obj.get_object() if hasattr(obj, "get_object") else obj


def _decode_image_xobject(xobj: Any) -> DecodedImage:
    """Decode an image XObject into raw pixels."""
    extension, data = _xobj_to_image(xobj)
    if extension is None:
        raise ValueError(f"unsupported image filter {xobj.get('/Filter')}")
    with Image.open(BytesIO(data)) as img:
        img.load()
        if img.mode not in DECODED_IMAGE_MODES:
            img = img.convert("RGBA")
        return DecodedImage(
            width=img.width, height=img.height, data=img.tobytes(), mode=img.mode
        )


def load_document(data: bytes, filename: Optional[str] = None) -> "PdfDocument":
    """Open PDF bytes; anything unreadable or locked raises DocumentLoadError."""
    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
            raise DocumentLoadError("The PDF is password protected and cannot be opened")
        page_count = len(reader.pages)
    except DocumentLoadError:
        raise
    except Exception as e:
        raise DocumentLoadError(f"Failed to load PDF: {e}") from e

    log.info(f"Loaded {filename or 'document'}: {page_count} pages")
    return PdfDocument(data, reader, page_count, filename)


class PdfDocument:
    """An opened PDF; close it when the extraction run ends."""

    def __init__(
        self,
        data: bytes,
        reader: PdfReader,
        page_count: int,
        filename: Optional[str] = None,
    ) -> None:
        self.page_count = page_count
        self.filename = filename
        self._data = data
        self._reader = reader
        self._raster: Optional[fitz.Document] = None

    def get_page(self, page_number: int) -> "PdfPage":
        if not 1 <= page_number <= self.page_count:
            raise IndexError(
                f"Page {page_number} out of range (document has {self.page_count})"
            )
        return PdfPage(self, page_number, self._reader.pages[page_number - 1])

    def _raster_page(self, page_number: int) -> "fitz.Page":
        if self._raster is None:
            try:
                self._raster = fitz.open(stream=self._data, filetype="pdf")
            except Exception as e:
                raise PageRenderError(page_number, f"rasterizer unavailable: {e}") from e
        return self._raster[page_number - 1]

    def close(self) -> None:
        if self._raster is not None:
            self._raster.close()
            self._raster = None

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PdfPage:
    """One page of a PdfDocument, with its decoded-object cache."""

    def __init__(self, document: PdfDocument, page_number: int, page: Any) -> None:
        self.page_number = page_number
        self.objs: Dict[str, Any] = {}
        self._document = document
        self._page = page

    def get_viewport(self, scale: float = 1.0) -> Viewport:
        box = self._page.cropbox
        return Viewport(
            width=float(box.width) * scale,
            height=float(box.height) * scale,
            scale=scale,
        )

    def render(self, viewport: Viewport) -> Image.Image:
        """Rasterize the page and fill ``objs`` with what drawing it decoded."""
        raster_page = self._document._raster_page(self.page_number)
        try:
            matrix = fitz.Matrix(viewport.scale, viewport.scale)
            pix = raster_page.get_pixmap(matrix=matrix, alpha=False)
            if pix.width < 1 or pix.height < 1:
                raise ValueError("empty drawing surface")
            surface = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except Exception as e:
            raise PageRenderError(self.page_number, str(e)) from e

        self.objs = self._decode_drawn()
        return surface

    def _decode_drawn(self) -> Dict[str, Any]:
        objs: Dict[str, Any] = {}
        contents = self._page.get("/Contents")
        if contents is None:
            return objs
        try:
            resources = _resolve(self._page.get("/Resources")) or {}
            stream = ContentStream(_resolve(contents), self._document._reader)
            self._collect(stream, resources, f"img_p{self.page_number - 1}_", objs, set())
        except Exception as e:
            # a broken content stream leaves whatever was decoded before it
            log.warning(f"Page {self.page_number}: could not read page content: {e}")
        return objs

    def _collect(
        self,
        stream: ContentStream,
        resources: Any,
        prefix: str,
        objs: Dict[str, Any],
        seen: Set[Any],
    ) -> None:
        """Walk the drawing operators; only fonts selected and XObjects painted count."""
        fonts = _resolve(resources.get("/Font")) or {}
        xobjects = _resolve(resources.get("/XObject")) or {}

        for operands, operator in stream.operations:
            if operator == b"Tf" and operands and operands[0] in fonts:
                objs.setdefault(f"font_{operands[0][1:]}", _resolve(fonts[operands[0]]))
                continue
            if operator != b"Do" or not operands or operands[0] not in xobjects:
                continue

            name = operands[0]
            ref = xobjects.raw_get(name) if hasattr(xobjects, "raw_get") else xobjects[name]
            marker = (ref.idnum, ref.generation) if isinstance(ref, IndirectObject) else id(ref)
            if marker in seen:
                continue
            seen.add(marker)

            key = f"{prefix}{name[1:]}"
            xobj = _resolve(ref)
            subtype = xobj.get("/Subtype")
            if subtype == "/Image":
                try:
                    objs[key] = _decode_image_xobject(xobj)
                except Exception as e:
                    log.warning(f"Page {self.page_number}: skipping image {name}: {e}")
                continue

            objs[key] = xobj
            if subtype == "/Form":
                # forms without their own resources draw from the enclosing ones
                form_resources = _resolve(xobj.get("/Resources")) or resources
                form_stream = ContentStream(xobj, self._document._reader)
                self._collect(form_stream, form_resources, f"{key}_", objs, seen)
