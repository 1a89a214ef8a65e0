"""Tests for zip packaging."""

import zipfile
from io import BytesIO

import pytest

from picturific.archive import (
    ZipArchive,
    archive_base_name,
    archive_filename,
    build_archive,
    save_archive,
)

from conftest import make_extracted


@pytest.fixture
def three_images(scope):
    return [
        make_extracted(scope, "1-a", 1, 10, 10, color="red"),
        make_extracted(scope, "1-b", 1, 20, 10, color="green"),
        make_extracted(scope, "2-a", 2, 5, 5, color="blue"),
    ]


def test_build_archive_names_entries_in_list_order(three_images):
    with zipfile.ZipFile(BytesIO(build_archive(three_images))) as zf:
        assert zf.namelist() == [
            "page-1_img-1_10x10.png",
            "page-1_img-2_20x10.png",
            "page-2_img-3_5x5.png",
        ]
        for name, image in zip(zf.namelist(), three_images):
            assert zf.read(name) == image.image_bytes


def test_build_archive_of_nothing_is_an_empty_zip():
    with zipfile.ZipFile(BytesIO(build_archive([]))) as zf:
        assert zf.namelist() == []


def test_zip_archive_rejects_duplicate_names():
    archive = ZipArchive()
    archive.add_entry("a.png", b"1")
    with pytest.raises(ValueError):
        archive.add_entry("a.png", b"2")
    assert len(archive) == 1


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("report.pdf", "report"),
        ("Report.PDF", "Report"),
        ("annual.report.pdf", "annual.report"),
        ("folder/scan.pdf", "scan"),
        ("noextension", "noextension"),
        (".pdf", "images"),
        ("", "images"),
        (None, "images"),
    ],
)
def test_archive_base_name(filename, expected):
    assert archive_base_name(filename) == expected


def test_save_archive_writes_zip_named_after_source(tmp_path, three_images):
    path = save_archive(three_images, "brochure.pdf", tmp_path / "out")
    assert path == tmp_path / "out" / "brochure.zip"
    assert archive_filename(None) == "images.zip"
    with zipfile.ZipFile(path) as zf:
        assert len(zf.namelist()) == 3
