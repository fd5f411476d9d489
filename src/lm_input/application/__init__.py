"""Application layer: processors, generation service and chat sessions."""

from lm_input.application.chat_session import (
    ChatSession,
    ClearOption,
    MediaKind,
    MediaSelection,
    classify_media,
)
from lm_input.application.events import GenerationChunk, GenerationEvent, GenerationInfo
from lm_input.application.generation import ChatGenerationService
from lm_input.application.processors import (
    ChatTemplateProcessor,
    LMInput,
    StandInUserInputProcessor,
)

__all__ = [
    "ChatGenerationService",
    "ChatSession",
    "ChatTemplateProcessor",
    "ClearOption",
    "GenerationChunk",
    "GenerationEvent",
    "GenerationInfo",
    "LMInput",
    "MediaKind",
    "MediaSelection",
    "StandInUserInputProcessor",
    "classify_media",
]
