"""Data models for page rendering and decoded images."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Viewport:
    """Page size in pixels at a given render scale."""

    width: float
    height: float
    scale: float


@dataclass
class DecodedImage:
    """A raster image the engine decoded while drawing a page."""

    width: int
    height: int
    data: bytes
    mode: str


@dataclass
class CandidateImage:
    """Raw pixel data found in a page's decoded-object cache."""

    key: str
    width: int
    height: int
    data: bytes
    mode: Optional[str] = None
