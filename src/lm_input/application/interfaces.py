"""Interfaces (Protocols) for collaborators of the normalization layer.

The application layer depends on these protocols, not on concrete
implementations. Implementations don't need to inherit from them; they just
need the required methods.

Key Interfaces:
    - ImageSource: Decode an image from a file path or URL
    - VideoSource: Open a video from a file path or URL
    - ChatTokenizer: Render and tokenize a chat template
    - UserInputProcessor: Turn a UserInput into tokenized model input
    - ModelRuntime: Load a model and stream generation events for an LMInput
    - GenerationService: Stream a reply for a chat transcript
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from PIL import Image

    from lm_input.application.events import GenerationEvent
    from lm_input.application.processors import LMInput
    from lm_input.domain.chat import ChatMessage
    from lm_input.domain.media import VideoAsset
    from lm_input.domain.prompt import Message
    from lm_input.domain.user_input import ToolSpec, UserInput


class ImageSource(Protocol):
    """Protocol for loading referenced images."""

    def load(self, location: str | os.PathLike[str]) -> Image.Image:
        """Load and decode the image at ``location``.

        Raises:
            MediaLoadError: If the resource cannot be read or decoded.
        """
        ...


class VideoSource(Protocol):
    """Protocol for opening referenced videos."""

    def open(self, location: str | os.PathLike[str]) -> VideoAsset:
        """Return an asset handle for the video at ``location``.

        Raises:
            MediaLoadError: If the resource cannot be opened.
        """
        ...


class ChatTokenizer(Protocol):
    """Subset of the Hugging Face tokenizer API used for chat templates."""

    def apply_chat_template(
        self,
        conversation: list[Message],
        tools: list[ToolSpec] | None = None,
        add_generation_prompt: bool = False,
        tokenize: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Render ``conversation`` with the model's template and tokenize it.

        Returns:
            Token ids, or a mapping with an ``input_ids`` entry.
        """
        ...


class UserInputProcessor(Protocol):
    """Protocol for converting a UserInput to LMInput."""

    async def prepare(self, user_input: UserInput) -> LMInput:
        """Produce tokenized model input.

        Implementations call ``user_input.as_messages()`` and decode media
        with ``as_canonical_image``.
        """
        ...


class ModelRuntime(Protocol):
    """Protocol for the on-device inference engine."""

    async def load(self, model: str) -> None:
        """Download (if needed) and load ``model``."""
        ...

    def stream(self, lm_input: LMInput, model: str) -> AsyncIterator[GenerationEvent]:
        """Stream generation events for ``lm_input``."""
        ...


class GenerationService(Protocol):
    """Protocol for the service a ChatSession generates replies with."""

    async def load(self, model: str) -> None:
        """Make ``model`` ready for generation."""
        ...

    def generate(
        self, messages: Sequence[ChatMessage], model: str
    ) -> AsyncIterator[GenerationEvent]:
        """Stream the assistant reply to ``messages``."""
        ...


__all__ = [
    "ChatTokenizer",
    "GenerationService",
    "ImageSource",
    "ModelRuntime",
    "UserInputProcessor",
    "VideoSource",
]
