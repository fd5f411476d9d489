"""Media inputs attached to a user prompt.

Images and videos reach the normalization layer in several encodings. Each
encoding is one variant of a closed union, and consumers match on the
variant exhaustively:

    ImageInput = DecodedImage | ImageReference | TensorImage
    VideoInput = VideoHandle | VideoReference

Variants hold exactly one representation. Decoding to the canonical form is
done on demand by ``lm_input.infrastructure.image_decoding`` and never
changes the stored value.
"""

from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    import numpy as np
    from PIL import Image


def _location_str(location: str | os.PathLike[str]) -> str:
    return os.fspath(location)


@dataclass(slots=True, frozen=True)
class DecodedImage:
    """An image already decoded into an in-memory pixel buffer.

    Attributes:
        image: Pillow image. Returned unchanged by canonical decoding.
    """

    image: Image.Image


@dataclass(slots=True, frozen=True)
class ImageReference:
    """An image identified by a file path or URL.

    Attributes:
        location: Local path, ``file://`` URL or ``http(s)://`` URL. Path-like
            values are stored as strings.
    """

    location: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "location", _location_str(self.location))


@dataclass(slots=True, frozen=True, eq=False)
class TensorImage:
    """An image given as a raw numeric array.

    The array must have three dimensions, laid out either channel-first
    (C, H, W) or channel-last (H, W, C), with values in 0-1 or 0-255.

    Attributes:
        array: The caller's array. It is never mutated by this package.
    """

    array: np.ndarray

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.array.shape)


ImageInput: TypeAlias = DecodedImage | ImageReference | TensorImage


@dataclass(slots=True, frozen=True)
class VideoAsset:
    """Handle to a video resource.

    Creating a handle does not read any frames; model processors open the
    resource themselves when they need frames.

    Attributes:
        location: Local path or URL of the video.
        mime_type: Media type guessed from the location, if known.
    """

    location: str
    mime_type: str | None = None

    @classmethod
    def from_location(cls, location: str | os.PathLike[str]) -> VideoAsset:
        location = _location_str(location)
        mime_type, _ = mimetypes.guess_type(location)
        return cls(location=location, mime_type=mime_type)


@dataclass(slots=True, frozen=True)
class VideoHandle:
    """A video already opened as an asset handle."""

    asset: VideoAsset

    def as_asset(self) -> VideoAsset:
        return self.asset


@dataclass(slots=True, frozen=True)
class VideoReference:
    """A video identified by a path or URL; opened only when requested."""

    location: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "location", _location_str(self.location))

    def as_asset(self) -> VideoAsset:
        return VideoAsset.from_location(self.location)


VideoInput: TypeAlias = VideoHandle | VideoReference


__all__ = [
    "DecodedImage",
    "ImageInput",
    "ImageReference",
    "TensorImage",
    "VideoAsset",
    "VideoHandle",
    "VideoInput",
    "VideoReference",
]
