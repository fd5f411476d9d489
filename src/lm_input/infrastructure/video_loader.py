"""Opening of video inputs as asset handles."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse
from urllib.request import url2pathname

from lm_input.domain.exceptions import MediaLoadError
from lm_input.domain.media import VideoAsset, VideoHandle, VideoInput, VideoReference

if TYPE_CHECKING:
    from lm_input.application.interfaces import VideoSource

logger = logging.getLogger(__name__)


class LocalVideoSource:
    """``VideoSource`` that checks local files exist before handing them out.

    Remote URLs are wrapped without any network access; the model processor
    streams them itself.
    """

    def open(self, location: str | os.PathLike[str]) -> VideoAsset:
        location = os.fspath(location)
        parsed = urlparse(location)
        scheme = parsed.scheme.lower()
        if scheme in ("http", "https"):
            return VideoAsset.from_location(location)
        if scheme == "file":
            path = Path(url2pathname(parsed.path))
        elif scheme == "" or len(scheme) == 1:
            path = Path(location)
        else:
            raise MediaLoadError(location, f"unsupported URL scheme {scheme!r}")

        if not path.is_file():
            raise MediaLoadError(location, "file not found")
        logger.debug("video_opened location=%s", location)
        return VideoAsset.from_location(location)


def as_video_asset(video: VideoInput, *, source: VideoSource | None = None) -> VideoAsset:
    """Resolve a video input to an asset handle.

    Args:
        video: Video input variant.
        source: Opener for ``VideoReference`` inputs. Without one the
            reference is wrapped as-is.

    Raises:
        MediaLoadError: If ``source`` cannot open the referenced video.
    """
    match video:
        case VideoHandle(asset=asset):
            return asset
        case VideoReference(location=location):
            if source is None:
                return video.as_asset()
            return source.open(location)
        case _:
            raise TypeError(f"Unsupported video input: {type(video).__name__}")


__all__ = ["LocalVideoSource", "as_video_asset"]
