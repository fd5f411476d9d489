"""lm-input: user-input normalization for on-device vision/language chat models."""

from lm_input.application import (
    ChatGenerationService,
    ChatSession,
    ChatTemplateProcessor,
    ClearOption,
    GenerationChunk,
    GenerationInfo,
    LMInput,
    MediaSelection,
    StandInUserInputProcessor,
)
from lm_input.core import Settings
from lm_input.domain import (
    ChatMessage,
    ChatPrompt,
    DecodedImage,
    ImageReference,
    ImageShapeError,
    MediaLoadError,
    MessagesPrompt,
    Processing,
    ProcessorNotImplementedError,
    Role,
    TensorImage,
    TextPrompt,
    UnknownRoleError,
    UserInput,
    UserInputError,
    VideoAsset,
    VideoHandle,
    VideoReference,
)
from lm_input.infrastructure import (
    LocalVideoSource,
    ReferenceImageLoader,
    apply_processing,
    as_canonical_image,
    as_video_asset,
)

__all__ = [
    "ChatGenerationService",
    "ChatMessage",
    "ChatPrompt",
    "ChatSession",
    "ChatTemplateProcessor",
    "ClearOption",
    "DecodedImage",
    "GenerationChunk",
    "GenerationInfo",
    "ImageReference",
    "ImageShapeError",
    "LMInput",
    "LocalVideoSource",
    "MediaLoadError",
    "MediaSelection",
    "MessagesPrompt",
    "Processing",
    "ProcessorNotImplementedError",
    "ReferenceImageLoader",
    "Role",
    "Settings",
    "StandInUserInputProcessor",
    "TensorImage",
    "TextPrompt",
    "UnknownRoleError",
    "UserInput",
    "UserInputError",
    "VideoAsset",
    "VideoHandle",
    "VideoReference",
    "apply_processing",
    "as_canonical_image",
    "as_video_asset",
]
