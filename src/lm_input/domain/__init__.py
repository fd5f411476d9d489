"""Domain layer for lm-input.

This package contains the prompt, media and chat models together with the
pure normalization rules (media derivation and message flattening). It
performs no I/O.
"""

from lm_input.domain.chat import ChatMessage, Role, role_to_string
from lm_input.domain.exceptions import (
    DomainError,
    ImageShapeError,
    MediaLoadError,
    ProcessorNotImplementedError,
    UnknownRoleError,
    UserInputError,
)
from lm_input.domain.media import (
    DecodedImage,
    ImageInput,
    ImageReference,
    TensorImage,
    VideoAsset,
    VideoHandle,
    VideoInput,
    VideoReference,
)
from lm_input.domain.prompt import (
    ChatPrompt,
    Message,
    MessagesPrompt,
    Prompt,
    TextPrompt,
    collect_media,
)
from lm_input.domain.user_input import Processing, ToolSpec, UserInput

__all__ = [
    "ChatMessage",
    "ChatPrompt",
    "DecodedImage",
    "DomainError",
    "ImageInput",
    "ImageReference",
    "ImageShapeError",
    "MediaLoadError",
    "Message",
    "MessagesPrompt",
    "Processing",
    "ProcessorNotImplementedError",
    "Prompt",
    "Role",
    "TensorImage",
    "TextPrompt",
    "ToolSpec",
    "UnknownRoleError",
    "UserInput",
    "UserInputError",
    "VideoAsset",
    "VideoHandle",
    "VideoInput",
    "VideoReference",
    "collect_media",
    "role_to_string",
]
