"""Loading of referenced images from files and URLs.

``ReferenceImageLoader`` satisfies the ``ImageSource`` protocol. It reads
local paths and ``file://`` URLs with Pillow and fetches ``http(s)://`` URLs
with httpx. Decoded images are kept in a TTL cache keyed by location:
a chat transcript re-derives every attached image on each turn, so the same
locations are decoded again and again during a conversation.

Cached images are shared between callers and must be treated as read-only.
"""

from __future__ import annotations

import functools
import io
import logging
import os
import threading
from pathlib import Path
from typing import IO
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx
from cachetools import TTLCache
from PIL import Image

from lm_input.core.config import ImageConfig, Settings
from lm_input.domain.exceptions import MediaLoadError

logger = logging.getLogger(__name__)


class ReferenceImageLoader:
    """Load images from local paths, ``file://`` and ``http(s)://`` URLs.

    Attributes:
        timeout: Timeout in seconds for remote fetches.
        max_size_bytes: Largest remote payload accepted.
        _cache: TTL cache of decoded images, or None when disabled.
        _hits: Number of loads served from the cache.
        _misses: Number of loads that decoded the resource.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
        max_size_bytes: int = 20 * 1024 * 1024,
        cache_max_size: int = 64,
        cache_ttl_seconds: float = 600.0,
    ) -> None:
        """Initialize the loader.

        Args:
            client: HTTP client for remote images. Created lazily (and owned
                by the loader) when not provided.
            timeout: Timeout in seconds for remote fetches.
            max_size_bytes: Largest remote payload accepted, in bytes.
            cache_max_size: Number of decoded images to keep. 0 disables the
                cache.
            cache_ttl_seconds: Lifetime of a cache entry in seconds.
        """
        self.timeout = timeout
        self.max_size_bytes = max_size_bytes
        self._client = client
        self._owns_client = client is None
        self._cache: TTLCache[str, Image.Image] | None = (
            TTLCache(maxsize=cache_max_size, ttl=cache_ttl_seconds) if cache_max_size > 0 else None
        )
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, config: ImageConfig, client: httpx.Client | None = None) -> ReferenceImageLoader:
        return cls(
            client=client,
            timeout=config.http_timeout,
            max_size_bytes=config.max_size_bytes,
            cache_max_size=config.cache_max_size,
            cache_ttl_seconds=config.cache_ttl_seconds,
        )

    def load(self, location: str | os.PathLike[str]) -> Image.Image:
        """Load and decode the image at ``location``.

        Raises:
            MediaLoadError: If the resource cannot be read or is not a
                decodable image.
        """
        key = os.fspath(location)
        with self._lock:
            cached = self._cache.get(key) if self._cache is not None else None
            if cached is not None:
                self._hits += 1
            else:
                self._misses += 1
        if cached is not None:
            logger.debug("image_cache_hit location=%s", key)
            return cached

        image = self._decode(key, self._open(key))
        logger.info(
            "image_loaded location=%s size=%dx%d mode=%s",
            key,
            image.width,
            image.height,
            image.mode,
        )

        if self._cache is not None:
            with self._lock:
                self._cache[key] = image
        return image

    def get_stats(self) -> dict[str, int | float]:
        """Return cache statistics for diagnostics."""
        with self._lock:
            hits = self._hits
            misses = self._misses
            size = len(self._cache) if self._cache is not None else 0
        total = hits + misses
        return {
            "size": size,
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / total if total else 0.0,
        }

    def clear(self) -> None:
        """Drop all cached images."""
        if self._cache is not None:
            with self._lock:
                self._cache.clear()

    def close(self) -> None:
        """Close the HTTP client if the loader created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> ReferenceImageLoader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _open(self, location: str) -> IO[bytes]:
        parsed = urlparse(location)
        match parsed.scheme.lower():
            case "http" | "https":
                return io.BytesIO(self._fetch(location))
            case "file":
                path = Path(url2pathname(parsed.path))
            case "":
                path = Path(location)
            case scheme if len(scheme) == 1:
                # Windows drive letter, e.g. C:\images\cat.png
                path = Path(location)
            case scheme:
                raise MediaLoadError(location, f"unsupported URL scheme {scheme!r}")
        try:
            return path.open("rb")
        except OSError as exc:
            raise MediaLoadError(location, str(exc)) from exc

    def _fetch(self, location: str) -> bytes:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True)
        try:
            response = self._client.get(location, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("image_fetch_failed location=%s error=%s", location, exc)
            raise MediaLoadError(location, str(exc)) from exc

        content = response.content
        if len(content) > self.max_size_bytes:
            raise MediaLoadError(
                location, f"Image too large: {len(content)} bytes (max: {self.max_size_bytes})"
            )
        return content

    @staticmethod
    def _decode(location: str, stream: IO[bytes]) -> Image.Image:
        # Pixels are loaded before the stream closes; only the first frame is kept
        with stream:
            try:
                image = Image.open(stream)
                image.load()
            except (OSError, Image.DecompressionBombError) as exc:
                raise MediaLoadError(location, str(exc)) from exc
        return image


@functools.cache
def get_default_image_source() -> ReferenceImageLoader:
    """Shared loader built from ``Settings.image``."""
    return ReferenceImageLoader.from_config(Settings.get_settings().image)


__all__ = ["ReferenceImageLoader", "get_default_image_source"]
