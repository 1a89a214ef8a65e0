"""Callback definitions for extraction progress reporting."""

from dataclasses import dataclass
from typing import Any, Callable


def _ignore(*args: Any) -> None:
    pass


@dataclass
class ProcessingCallbacks:
    """Callbacks the extractor calls to report progress; each gets the run id first"""

    on_page_start: Callable[[str, int, int], None] = _ignore
    on_image_extracted: Callable[[str, str, int], None] = _ignore
    on_error: Callable[[str, str], None] = _ignore
    on_complete: Callable[[str, Any], None] = _ignore
