"""Extracted image dataclass combining metadata with image bytes."""

from dataclasses import dataclass
from pathlib import Path
from io import BytesIO
from PIL import Image

from picturific.config import Config
from picturific.object_urls import UrlScope
from .image_metadata import ImageMetadata

config = Config()


@dataclass
class ExtractedImage:
    """Combines image metadata with the encoded image bytes and their reference URL."""

    metadata: ImageMetadata
    image_bytes: bytes
    url: str
    image_format: str = config.IMAGE_EXTENSION

    @classmethod
    def from_pil_image(
        cls, metadata: ImageMetadata, pil_image: Image.Image, scope: UrlScope
    ) -> "ExtractedImage":
        """Encode a PIL Image losslessly and register a reference URL for it."""
        buffer = BytesIO()
        pil_image.save(buffer, format=config.IMAGE_FORMAT, optimize=True)
        image_bytes = buffer.getvalue()
        url = scope.create(image_bytes, config.IMAGE_MEDIA_TYPE)
        return cls(metadata=metadata, image_bytes=image_bytes, url=url)

    @property
    def image_id(self) -> str:
        return self.metadata.image_id

    @property
    def page_number(self) -> int:
        return self.metadata.page_number

    @property
    def width(self) -> int:
        return self.metadata.width

    @property
    def height(self) -> int:
        return self.metadata.height

    @property
    def media_type(self) -> str:
        return config.IMAGE_MEDIA_TYPE

    def file_name(self, ordinal: int) -> str:
        """Download name for the image at 1-based position `ordinal` in a result."""
        return (
            f"page-{self.page_number}_img-{ordinal}_"
            f"{self.width}x{self.height}.{self.image_format}"
        )

    def to_pil_image(self) -> Image.Image:
        """Convert back to PIL Image for processing."""
        return Image.open(BytesIO(self.image_bytes))

    def save_to_disk(self, images_dir: Path, ordinal: int) -> str:
        """Save image to disk and return filename."""
        filename = self.file_name(ordinal)
        filepath = images_dir / filename
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "wb") as f:
            f.write(self.image_bytes)

        return filename
