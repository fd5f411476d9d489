"""Chat session state and generation coordination.

``ChatSession`` keeps the transcript of one conversation, the media picked
for the next message, and at most one in-flight generation task. Starting a
new generation cancels the previous one; a cancelled reply keeps its partial
text and gets a visible marker appended.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lm_input.application.events import GenerationChunk, GenerationInfo
from lm_input.core.config import SessionConfig, Settings
from lm_input.domain.chat import ChatMessage, Role
from lm_input.domain.media import ImageReference, VideoReference

if TYPE_CHECKING:
    from lm_input.application.interfaces import GenerationService

logger = logging.getLogger(__name__)


class MediaKind(enum.StrEnum):
    IMAGE = "image"
    VIDEO = "video"


def classify_media(location: str | os.PathLike[str]) -> MediaKind | None:
    """Classify a file by the media type implied by its extension.

    Returns:
        ``MediaKind.IMAGE`` for ``image/*``, ``MediaKind.VIDEO`` for
        ``video/*``, None for anything else.
    """
    mime_type, _ = mimetypes.guess_type(os.fspath(location))
    if mime_type is None:
        return None
    match mime_type.split("/", 1)[0]:
        case "image":
            return MediaKind.IMAGE
        case "video":
            return MediaKind.VIDEO
        case _:
            return None


@dataclass(slots=True)
class MediaSelection:
    """Images and videos picked for the next user message."""

    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.images and not self.videos

    def add(self, location: str | os.PathLike[str]) -> MediaKind | None:
        """Select ``location`` as the image or video of the next message.

        A new pick replaces the previous one of the same kind. Files that are
        neither images nor videos are ignored.
        """
        location = os.fspath(location)
        kind = classify_media(location)
        match kind:
            case MediaKind.IMAGE:
                self.images = [location]
            case MediaKind.VIDEO:
                self.videos = [location]
            case None:
                logger.debug("media_ignored location=%s", location)
        return kind

    def image_inputs(self) -> tuple[ImageReference, ...]:
        return tuple(ImageReference(location) for location in self.images)

    def video_inputs(self) -> tuple[VideoReference, ...]:
        return tuple(VideoReference(location) for location in self.videos)


class ClearOption(enum.Flag):
    """Parts of the session state reset by ``ChatSession.clear``."""

    PROMPT = enum.auto()
    """Current prompt and media selection."""
    CHAT = enum.auto()
    """Transcript; also cancels generation."""
    META = enum.auto()
    """Completion metrics."""


class ChatSession:
    """State of one conversation with a generation service.

    Attributes:
        model: Model identifier passed to the service.
        messages: The transcript, oldest first.
        prompt: Text of the next user message.
        media_selection: Media attached to the next user message.
        is_generating: True while a generation is in flight.
        error_message: Most recent error, if any.
        is_model_ready: True once the model produced output or loaded.
        is_preparing_model: True while ``prepare_model`` runs.
        completion_info: Metrics of the last completed generation.
    """

    def __init__(
        self,
        service: GenerationService,
        model: str,
        settings: SessionConfig | None = None,
    ) -> None:
        self._service = service
        self._settings = settings if settings is not None else Settings.get_settings().session
        self._task: asyncio.Task[None] | None = None
        self._transcript_version = 0

        self.model = model
        self.messages: list[ChatMessage] = []
        if self._settings.system_prompt:
            self.messages.append(ChatMessage.system(self._settings.system_prompt))
        self.prompt = ""
        self.media_selection = MediaSelection()
        self.is_generating = False
        self.error_message: str | None = None
        self.is_model_ready = False
        self.is_preparing_model = False
        self.completion_info: GenerationInfo | None = None

    @property
    def tokens_per_second(self) -> float:
        """Generation speed of the last completed generation."""
        if self.completion_info is None:
            return 0.0
        return self.completion_info.tokens_per_second

    async def generate(self) -> None:
        """Send the current prompt and media, and stream the reply.

        Any generation already in flight is cancelled first. Errors are
        recorded in ``error_message``.

        Raises:
            asyncio.CancelledError: If the caller's own task is cancelled.
                The reply is marked as cancelled before re-raising.
        """
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()
        self._task = None

        self.is_generating = True

        self.messages.append(
            ChatMessage.user(
                self.prompt,
                images=self.media_selection.image_inputs(),
                videos=self.media_selection.video_inputs(),
            )
        )
        transcript = tuple(self.messages)
        self.messages.append(ChatMessage.assistant(""))
        reply_index = len(self.messages) - 1
        version = self._transcript_version

        self.clear(ClearOption.PROMPT)

        task = asyncio.create_task(self._stream_reply(transcript, reply_index, version))
        self._task = task
        try:
            await task
        except asyncio.CancelledError:
            self._append_to_reply(reply_index, version, self._settings.cancelled_marker)
            logger.info("generation_cancelled model=%s", self.model)
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        except Exception as exc:
            logger.exception("generation_failed model=%s", self.model)
            self.error_message = str(exc)
            self.is_model_ready = False
        finally:
            if self._task is task:
                self._task = None
                self.is_generating = False

    def cancel(self) -> None:
        """Cancel the in-flight generation, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def add_media(self, result: str | os.PathLike[str] | BaseException) -> None:
        """Add a picked file to the media selection.

        Args:
            result: Location of the picked file, or the error raised while
                picking it.
        """
        if isinstance(result, BaseException):
            self.error_message = f"Failed to load media item.\n\nError: {result}"
            return
        self.media_selection.add(result)

    def clear(self, options: ClearOption) -> None:
        """Reset the parts of the session named by ``options``.

        ``error_message`` is always cleared.
        """
        if ClearOption.PROMPT in options:
            self.prompt = ""
            self.media_selection = MediaSelection()

        if ClearOption.CHAT in options:
            self.messages = []
            self._transcript_version += 1
            self.cancel()
            self.is_model_ready = False

        if ClearOption.META in options:
            self.completion_info = None

        self.error_message = None

    async def prepare_model(self) -> None:
        """Load the model ahead of the first message."""
        self.is_preparing_model = True
        try:
            await self._service.load(self.model)
            self.is_model_ready = True
        except Exception as exc:
            logger.warning("model_prepare_failed model=%s error=%s", self.model, exc)
            self.error_message = str(exc)
            self.is_model_ready = False
        finally:
            self.is_preparing_model = False

    async def _stream_reply(
        self, transcript: tuple[ChatMessage, ...], reply_index: int, version: int
    ) -> None:
        async for event in self._service.generate(transcript, self.model):
            match event:
                case GenerationChunk(text=text):
                    self._append_to_reply(reply_index, version, text)
                case GenerationInfo():
                    self.completion_info = event
                    self.is_model_ready = True

    def _append_to_reply(self, reply_index: int, version: int, text: str) -> None:
        # The reply belongs to a transcript that has since been cleared.
        if version != self._transcript_version or reply_index >= len(self.messages):
            return
        reply = self.messages[reply_index]
        if reply.role is not Role.ASSISTANT:
            return
        self.messages[reply_index] = reply.appending(text)


__all__ = [
    "ChatSession",
    "ClearOption",
    "MediaKind",
    "MediaSelection",
    "classify_media",
]
