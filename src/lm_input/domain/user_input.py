"""The UserInput aggregate.

``UserInput`` is the request object handed to a ``UserInputProcessor``. It
is built once per generation request and consumed by the processor.

Media ownership depends on the prompt variant:

    - ChatPrompt: images and videos belong to the conversation. They are
      derived from the transcript and re-derived whenever a new chat prompt
      is set. They cannot be attached independently.
    - TextPrompt / MessagesPrompt: images and videos belong to the call
      site. Switching to one of these prompts leaves the current lists as
      they are.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from lm_input.domain.chat import ChatMessage
from lm_input.domain.exceptions import UserInputError
from lm_input.domain.media import ImageInput, VideoInput
from lm_input.domain.prompt import (
    ChatPrompt,
    Message,
    MessagesPrompt,
    Prompt,
    TextPrompt,
    collect_media,
)

logger = logging.getLogger(__name__)

ToolSpec: TypeAlias = dict[str, Any]
"""Tool/function schema descriptor. Passed through without interpretation."""


@dataclass(slots=True, frozen=True)
class Processing:
    """Processing applied uniformly to all images before tokenization.

    Attributes:
        resize: Target ``(width, height)`` in pixels. None keeps the decoded
            size.

    Raises:
        ValueError: If either resize dimension is not positive.
    """

    resize: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if self.resize is not None:
            width, height = self.resize
            if width <= 0 or height <= 0:
                raise ValueError(f"Resize dimensions must be positive, got {self.resize}")
            object.__setattr__(self, "resize", (int(width), int(height)))


class UserInput:
    """Container for raw user input.

    Construct with one of:
        - ``UserInput.from_text()``: a single prompt plus media
        - ``UserInput.from_messages()``: model-specific message records
        - ``UserInput.from_chat()``: a structured transcript (preferred)
        - ``UserInput(prompt, ...)``: a pre-built ``Prompt`` value

    Attributes:
        tools: Optional tool specifications, passed through untouched.
        additional_context: Optional values for the chat template rendering
            context (model specific), passed through untouched.
        processing: Processing applied to media before tokenization.
    """

    __slots__ = ("_prompt", "_images", "_videos", "tools", "additional_context", "processing")

    def __init__(
        self,
        prompt: Prompt,
        images: Sequence[ImageInput] = (),
        videos: Sequence[VideoInput] = (),
        processing: Processing | None = None,
        tools: list[ToolSpec] | None = None,
        additional_context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize from a pre-built prompt.

        For a ``ChatPrompt`` the media lists are derived from the transcript
        and ``images``/``videos`` are ignored.
        """
        self._prompt: Prompt = prompt
        self._images: tuple[ImageInput, ...] = ()
        self._videos: tuple[VideoInput, ...] = ()
        match prompt:
            case ChatPrompt(messages=messages):
                if images or videos:
                    logger.warning(
                        "explicit_media_ignored images=%d videos=%d reason=chat_prompt",
                        len(images),
                        len(videos),
                    )
                self._images, self._videos = collect_media(messages)
            case TextPrompt() | MessagesPrompt():
                self._images = tuple(images)
                self._videos = tuple(videos)
            case _:
                raise TypeError(f"Unsupported prompt type: {type(prompt).__name__}")
        self.processing = processing if processing is not None else Processing()
        self.tools = tools
        self.additional_context = additional_context

    @classmethod
    def from_text(
        cls,
        prompt: str,
        images: Iterable[ImageInput] = (),
        videos: Iterable[VideoInput] = (),
        tools: list[ToolSpec] | None = None,
        additional_context: dict[str, Any] | None = None,
    ) -> UserInput:
        """Build from a single text prompt.

        The text and media become one user turn of a chat transcript, so the
        media is derived from that transcript.
        """
        chat = [ChatMessage.user(prompt, images=images, videos=videos)]
        return cls.from_chat(chat, tools=tools, additional_context=additional_context)

    @classmethod
    def from_messages(
        cls,
        messages: list[Message],
        images: Iterable[ImageInput] = (),
        videos: Iterable[VideoInput] = (),
        tools: list[ToolSpec] | None = None,
        additional_context: dict[str, Any] | None = None,
    ) -> UserInput:
        """Build from model-specific message records.

        Usually ``from_chat`` together with a model-specific processor is
        the better choice.
        """
        return cls(
            MessagesPrompt(messages),
            images=tuple(images),
            videos=tuple(videos),
            tools=tools,
            additional_context=additional_context,
        )

    @classmethod
    def from_chat(
        cls,
        chat: Iterable[ChatMessage],
        tools: list[ToolSpec] | None = None,
        additional_context: dict[str, Any] | None = None,
    ) -> UserInput:
        """Build from a structured chat transcript.

        Example:
            >>> chat = [
            ...     ChatMessage.system("You are a helpful photographic assistant."),
            ...     ChatMessage.user("Please describe the photo.", images=[photo]),
            ... ]
            >>> user_input = UserInput.from_chat(chat)
        """
        return cls(ChatPrompt(tuple(chat)), tools=tools, additional_context=additional_context)

    @property
    def prompt(self) -> Prompt:
        return self._prompt

    @prompt.setter
    def prompt(self, prompt: Prompt) -> None:
        self.set_prompt(prompt)

    @property
    def images(self) -> tuple[ImageInput, ...]:
        """Images for this input.

        For a chat prompt these are collected from the chat messages,
        otherwise they are the images stored with the input.
        """
        return self._images

    @property
    def videos(self) -> tuple[VideoInput, ...]:
        """Videos for this input; see ``images`` for ownership rules."""
        return self._videos

    def set_prompt(self, prompt: Prompt) -> None:
        """Replace the prompt.

        A chat prompt re-derives images and videos from its transcript. Text
        and message prompts leave the current lists untouched.
        """
        match prompt:
            case ChatPrompt(messages=messages):
                self._images, self._videos = collect_media(messages)
            case TextPrompt() | MessagesPrompt():
                pass
            case _:
                raise TypeError(f"Unsupported prompt type: {type(prompt).__name__}")
        self._prompt = prompt

    def attach_media(
        self,
        images: Iterable[ImageInput] | None = None,
        videos: Iterable[VideoInput] | None = None,
    ) -> None:
        """Replace caller-owned media.

        Raises:
            UserInputError: If the prompt is a chat transcript, whose media is
                derived and cannot be set independently.
        """
        if isinstance(self._prompt, ChatPrompt):
            raise UserInputError(
                "Media of a chat prompt is derived from its messages; attach it to a ChatMessage"
            )
        if images is not None:
            self._images = tuple(images)
        if videos is not None:
            self._videos = tuple(videos)

    def as_messages(self) -> list[Message]:
        """Flatten the prompt into role/content records."""
        return self._prompt.as_messages()

    def __repr__(self) -> str:
        return (
            f"UserInput(prompt={type(self._prompt).__name__}, "
            f"images={len(self._images)}, videos={len(self._videos)}, "
            f"processing={self.processing!r})"
        )


__all__ = ["Processing", "ToolSpec", "UserInput"]
