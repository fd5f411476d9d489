"""Decoding of image inputs to the canonical form.

The canonical image is a Pillow image in ``RGBA`` mode: packed, four 8-bit
components per pixel, explicit width and height, and an ICC profile in
``info["icc_profile"]``. Tensors and referenced files without an embedded
profile are tagged as sRGB.

Tensor decoding steps, in order:
    1. Range: if the largest value is <= 1.0, scale everything by 255
    2. Layout: a first dimension of 3 or 4 is channel-first; transpose to
       channel-last
    3. Channels: pad 3 channels with an opaque alpha of 255; keep 4; reject
       anything else
    4. Round, clip to 0-255 and wrap as an RGBA buffer with a stride of
       ``width * 4`` bytes

All work happens on a new buffer. The caller's array is never modified, so
decoding the same tensor twice yields identical pixels.

Dependencies:
    - numpy: tensor normalization
    - Pillow (PIL): canonical image type, ICC profiles and resizing
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image, ImageCms

from lm_input.domain.exceptions import ImageShapeError
from lm_input.domain.media import DecodedImage, ImageInput, ImageReference, TensorImage

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from lm_input.application.interfaces import ImageSource
    from lm_input.domain.user_input import Processing

logger = logging.getLogger(__name__)

CANONICAL_MODE = "RGBA"
"""Pillow mode of canonical images (4 x 8-bit, packed)."""

BYTES_PER_PIXEL = 4


@functools.cache
def srgb_icc_profile() -> bytes:
    """Serialized sRGB ICC profile used to tag tensor-built images."""
    return ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()


def tensor_to_image(array: ArrayLike) -> Image.Image:
    """Convert a (C, H, W) or (H, W, C) numeric array to a canonical image.

    Args:
        array: Three-dimensional array with 3 or 4 channels and values in
            0-1 or 0-255. It is read, never written.

    Returns:
        RGBA image tagged with the sRGB color space.

    Raises:
        ImageShapeError: If the array does not have exactly 3 dimensions, is
            empty, or its channel dimension is not 3 or 4.
    """
    source = np.asarray(array)
    if source.ndim != 3:
        raise ImageShapeError(f"array must have 3 dimensions: {source.ndim}")
    if source.size == 0:
        raise ImageShapeError(f"array must not be empty: {tuple(source.shape)}")

    pixels = source.astype(np.float32, copy=True)

    # 0 .. 1 -> 0 .. 255
    if pixels.max() <= 1.0:
        pixels *= 255

    # planar -> packed
    if pixels.shape[0] in (3, 4):
        pixels = pixels.transpose(1, 2, 0)

    match pixels.shape[-1]:
        case 3:
            pixels = np.pad(pixels, ((0, 0), (0, 0), (0, 1)), constant_values=255)
        case 4:
            pass
        case _:
            raise ImageShapeError(
                f"channel dimension must be last and 3/4: {tuple(pixels.shape)}"
            )

    data = np.ascontiguousarray(np.clip(np.rint(pixels), 0, 255).astype(np.uint8))
    height, width, _ = data.shape
    image = Image.frombuffer(
        CANONICAL_MODE,
        (width, height),
        data.tobytes(),
        "raw",
        CANONICAL_MODE,
        width * BYTES_PER_PIXEL,
        1,
    )
    image.info["icc_profile"] = srgb_icc_profile()
    logger.debug(
        "tensor_decoded source_shape=%s width=%d height=%d",
        tuple(source.shape),
        width,
        height,
    )
    return image


def as_canonical_image(
    image: ImageInput,
    *,
    source: ImageSource | None = None,
) -> Image.Image:
    """Decode any image input to the canonical form.

    Args:
        image: Image input variant.
        source: Loader for ``ImageReference`` inputs. Defaults to the shared
            ``ReferenceImageLoader`` built from settings.

    Returns:
        Canonical image. ``DecodedImage`` inputs are returned unchanged;
        referenced images without an embedded profile are tagged as sRGB.

    Raises:
        MediaLoadError: If a referenced image cannot be read or decoded.
        ImageShapeError: If a tensor image has an invalid shape.
    """
    match image:
        case DecodedImage(image=decoded):
            return decoded
        case ImageReference(location=location):
            if source is None:
                from lm_input.infrastructure.image_loader import get_default_image_source

                source = get_default_image_source()
            loaded = source.load(location)
            untagged = not loaded.info.get("icc_profile")
            # Loaded images may be shared through the loader cache.
            if loaded.mode != CANONICAL_MODE:
                loaded = loaded.convert(CANONICAL_MODE)
            elif untagged:
                loaded = loaded.copy()
            if untagged:
                loaded.info["icc_profile"] = srgb_icc_profile()
            return loaded
        case TensorImage(array=array):
            return tensor_to_image(array)
        case _:
            raise TypeError(f"Unsupported image input: {type(image).__name__}")


def apply_processing(image: Image.Image, processing: Processing | None) -> Image.Image:
    """Apply a processing directive to a canonical image.

    Returns:
        The resized image, or ``image`` itself when no resize is requested or
        it already has the target size.
    """
    if processing is None or processing.resize is None:
        return image
    if image.size == processing.resize:
        return image
    resized = image.resize(processing.resize, Image.Resampling.LANCZOS)
    logger.debug(
        "image_resized from=%dx%d to=%dx%d",
        image.width,
        image.height,
        resized.width,
        resized.height,
    )
    return resized


__all__ = [
    "BYTES_PER_PIXEL",
    "CANONICAL_MODE",
    "apply_processing",
    "as_canonical_image",
    "srgb_icc_profile",
    "tensor_to_image",
]
