"""Revocable in-memory reference URLs for extracted image bytes."""

import logging
import threading
import uuid
from typing import Dict, List, Optional, Tuple

from picturific.config import Config

config = Config()
log = logging.getLogger(__name__)


class ObjectUrlRegistry:
    """Process-wide table mapping reference URLs to in-memory payloads."""

    def __init__(self, prefix: Optional[str] = None) -> None:
        self._prefix = prefix or config.OBJECT_URL_PREFIX
        self._objects: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, media_type: str) -> str:
        url = f"{self._prefix}{uuid.uuid4()}"
        with self._lock:
            self._objects[url] = (data, media_type)
        return url

    def resolve(self, url: str) -> bytes:
        """Return the payload behind a URL; raises KeyError once revoked."""
        with self._lock:
            entry = self._objects.get(url)
        if entry is None:
            raise KeyError(f"Unknown or revoked object URL: {url}")
        return entry[0]

    def media_type(self, url: str) -> str:
        with self._lock:
            entry = self._objects.get(url)
        if entry is None:
            raise KeyError(f"Unknown or revoked object URL: {url}")
        return entry[1]

    def revoke(self, url: str) -> None:
        with self._lock:
            self._objects.pop(url, None)

    def scope(self) -> "UrlScope":
        return UrlScope(self)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)


class UrlScope:
    """The set of URLs one extraction run owns, released together."""

    def __init__(self, registry: ObjectUrlRegistry) -> None:
        self._registry = registry
        self._urls: List[str] = []
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def create(self, data: bytes, media_type: str) -> str:
        if self._released:
            raise RuntimeError("Cannot allocate URLs from a released scope")
        url = self._registry.create(data, media_type)
        self._urls.append(url)
        return url

    def revoke(self, url: str) -> None:
        self._registry.revoke(url)
        if url in self._urls:
            self._urls.remove(url)

    def release(self) -> None:
        if self._urls:
            log.debug(f"Revoking {len(self._urls)} object URLs")
        for url in self._urls:
            self._registry.revoke(url)
        self._urls.clear()
        self._released = True

    def __len__(self) -> int:
        return len(self._urls)


registry = ObjectUrlRegistry()
