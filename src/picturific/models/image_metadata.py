"""Extracted image metadata schema."""

from typing import Optional
from pydantic import BaseModel, Field


class ImageMetadata(BaseModel):
    """Metadata for extracted images"""

    image_id: str = Field(
        description="""Identifier unique within one extraction run.

        Embedded images use "<page_number>-<source_key>" where source_key is the
        engine's decoded-object key; fallback rasterizations use "raster-page-<N>".

        Examples:
        - "image_id": "1-img_p0_Im0"
        - "image_id": "raster-page-3"
        """
    )
    page_number: int = Field(ge=1, description="1-based page the image came from.")
    width: int = Field(gt=0, description="Pixel width.")
    height: int = Field(gt=0, description="Pixel height.")
    source_key: Optional[str] = Field(
        default=None,
        description="Decoded-object cache key, or None for page rasterizations.",
    )
