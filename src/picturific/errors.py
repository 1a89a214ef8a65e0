"""Exceptions raised by the extraction pipeline."""

from typing import Optional


class PicturificError(Exception):
    """Base class for all pipeline errors."""


class InputRejected(PicturificError):
    """The selected file is not a PDF."""


class DocumentLoadError(PicturificError):
    """The bytes are not a readable (or decryptable) PDF."""


class PageRenderError(PicturificError):
    """A single page could not be rasterized."""

    def __init__(self, page_number: int, reason: Optional[str] = None) -> None:
        self.page_number = page_number
        message = f"Failed to render page {page_number}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CandidateDecodeError(PicturificError):
    """A decoded-object entry could not be turned into pixels."""


class RunSuperseded(PicturificError):
    """A newer extraction started while this one was still running."""
