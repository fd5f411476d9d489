"""Infrastructure layer: media decoding and loading."""

from lm_input.infrastructure.image_decoding import (
    apply_processing,
    as_canonical_image,
    tensor_to_image,
)
from lm_input.infrastructure.image_loader import ReferenceImageLoader, get_default_image_source
from lm_input.infrastructure.video_loader import LocalVideoSource, as_video_asset

__all__ = [
    "LocalVideoSource",
    "ReferenceImageLoader",
    "apply_processing",
    "as_canonical_image",
    "as_video_asset",
    "get_default_image_source",
    "tensor_to_image",
]
