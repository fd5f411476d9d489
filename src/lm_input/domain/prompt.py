"""Prompt representations and message flattening.

A caller expresses a prompt in one of three interchangeable forms:

    - TextPrompt: a single free-form instruction
    - MessagesPrompt: model-specific message dictionaries, passed through
    - ChatPrompt: a structured, model-agnostic transcript

``Prompt`` is the closed union of the three. Every variant can be flattened
with ``as_messages()`` into the ordered list of role/content records that a
tokenizer chat template expects.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeAlias

from lm_input.domain.chat import ChatMessage
from lm_input.domain.media import ImageInput, VideoInput

Message: TypeAlias = dict[str, Any]
"""Model-specific message record. Opaque to this package."""


@dataclass(slots=True, frozen=True)
class TextPrompt:
    """A single free-form user instruction."""

    text: str

    @property
    def description(self) -> str:
        return self.text

    def as_messages(self) -> list[Message]:
        return [{"role": "user", "content": self.text}]


@dataclass(slots=True, frozen=True)
class MessagesPrompt:
    """Caller-supplied, model-specific message records.

    For example, a Qwen2-VL style record looks like::

        {
            "role": "user",
            "content": [
                {"type": "text", "text": "What is this?"},
                {"type": "image"},
            ],
        }

    The list is stored as given and returned as the same object by
    ``as_messages()``. Its shape is never inspected.
    """

    messages: list[Message]

    @property
    def description(self) -> str:
        return "\n".join(str(message) for message in self.messages)

    def as_messages(self) -> list[Message]:
        return self.messages


@dataclass(slots=True, frozen=True)
class ChatPrompt:
    """A structured chat transcript."""

    messages: tuple[ChatMessage, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))

    @property
    def description(self) -> str:
        return "\n".join(message.content for message in self.messages)

    def as_messages(self) -> list[Message]:
        """Flatten to role/content records in transcript order.

        Raises:
            UnknownRoleError: If a message carries a role outside
                system/user/assistant.
        """
        return [message.as_record() for message in self.messages]


Prompt: TypeAlias = TextPrompt | MessagesPrompt | ChatPrompt


def collect_media(
    messages: Iterable[ChatMessage],
) -> tuple[tuple[ImageInput, ...], tuple[VideoInput, ...]]:
    """Concatenate the attachments of ``messages`` in transcript order.

    Returns:
        Tuple of ``(images, videos)``, preserving per-message and
        per-attachment order.
    """
    images: list[ImageInput] = []
    videos: list[VideoInput] = []
    for message in messages:
        images.extend(message.images)
        videos.extend(message.videos)
    return tuple(images), tuple(videos)


__all__ = [
    "ChatPrompt",
    "Message",
    "MessagesPrompt",
    "Prompt",
    "TextPrompt",
    "collect_media",
]
