"""Tests for the PyPDF2 / PyMuPDF rendering engine."""

import pytest

from picturific.engine import load_document
from picturific.errors import DocumentLoadError
from picturific.models.page_models import DecodedImage

from conftest import make_blank_pdf, make_image_pdf, make_shared_resources_pdf


def test_load_document_reports_page_count_and_filename():
    document = load_document(make_image_pdf([(40, 30), (20, 10)]), "figures.pdf")
    try:
        assert document.page_count == 2
        assert document.filename == "figures.pdf"
    finally:
        document.close()


@pytest.mark.parametrize("data", [b"", b"not a pdf at all", b"%PDF-1.4\ngarbage"])
def test_load_document_rejects_unreadable_bytes(data):
    with pytest.raises(DocumentLoadError):
        load_document(data, "broken.pdf")


def test_load_document_rejects_password_protected_pdf():
    with pytest.raises(DocumentLoadError):
        load_document(make_blank_pdf(1, password="secret"), "locked.pdf")


def test_get_page_out_of_range():
    with load_document(make_blank_pdf(2)) as document:
        with pytest.raises(IndexError):
            document.get_page(3)
        with pytest.raises(IndexError):
            document.get_page(0)


def test_viewport_scales_crop_box():
    with load_document(make_blank_pdf(1, width=100, height=50)) as document:
        viewport = document.get_page(1).get_viewport(2.0)
        assert viewport.width == pytest.approx(200)
        assert viewport.height == pytest.approx(100)
        assert viewport.scale == 2.0


def test_render_fills_decoded_object_cache_with_page_images():
    with load_document(make_image_pdf([(40, 30)])) as document:
        page = document.get_page(1)
        assert page.objs == {}

        surface = page.render(page.get_viewport(1.0))

        assert surface.size == (40, 30)
        images = [entry for entry in page.objs.values() if isinstance(entry, DecodedImage)]
        assert len(images) == 1
        image = images[0]
        assert (image.width, image.height) == (40, 30)
        assert image.mode == "RGB"
        assert len(image.data) == 40 * 30 * 3


def test_render_blank_page_at_higher_scale():
    with load_document(make_blank_pdf(1, width=100, height=50)) as document:
        page = document.get_page(1)
        surface = page.render(page.get_viewport(2.0))
        assert surface.size == (200, 100)
        assert page.objs == {}


def test_render_caches_only_images_the_page_draws():
    with load_document(make_shared_resources_pdf((40, 30))) as document:
        drawing = document.get_page(1)
        drawing.render(drawing.get_viewport(1.0))
        listed_only = document.get_page(2)
        listed_only.render(listed_only.get_viewport(1.0))

        assert [type(e) for e in drawing.objs.values()] == [DecodedImage]
        assert not any(isinstance(e, DecodedImage) for e in listed_only.objs.values())
