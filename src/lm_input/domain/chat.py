"""Model-agnostic chat transcript entities.

A transcript is an ordered sequence of ``ChatMessage`` values. Each message
carries a role, its text and any images/videos attached to that turn.
Messages are immutable; running assistant text produced during generation
is recorded by replacing the last message (see ``ChatMessage.appending``).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import StrEnum

from lm_input.domain.exceptions import UnknownRoleError
from lm_input.domain.media import ImageInput, VideoInput


class Role(StrEnum):
    """Speaker of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def role_to_string(role: Role) -> str:
    """Map a role to the string used in tokenizer chat templates.

    Raises:
        UnknownRoleError: If ``role`` is not one of the three known roles.
    """
    match role:
        case Role.SYSTEM:
            return "system"
        case Role.USER:
            return "user"
        case Role.ASSISTANT:
            return "assistant"
        case _:
            raise UnknownRoleError(role)


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One turn of a chat transcript.

    Attributes:
        role: Speaker of the message. Plain strings are accepted and converted
            to ``Role``.
        content: Text of the message. May be empty (e.g. an assistant message
            that is about to be streamed into).
        images: Images attached to this turn, in order.
        videos: Videos attached to this turn, in order.

    Raises:
        UnknownRoleError: If role is not system, user or assistant.
    """

    role: Role
    content: str
    images: tuple[ImageInput, ...] = ()
    videos: tuple[VideoInput, ...] = ()

    def __post_init__(self) -> None:
        """Normalize the role and freeze attachment sequences."""
        try:
            role = Role(self.role)
        except ValueError as exc:
            raise UnknownRoleError(self.role) from exc
        object.__setattr__(self, "role", role)
        object.__setattr__(self, "images", tuple(self.images))
        object.__setattr__(self, "videos", tuple(self.videos))

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(
        cls,
        content: str,
        images: Iterable[ImageInput] = (),
        videos: Iterable[VideoInput] = (),
    ) -> ChatMessage:
        return cls(Role.USER, content, tuple(images), tuple(videos))

    @classmethod
    def assistant(
        cls,
        content: str,
        images: Iterable[ImageInput] = (),
        videos: Iterable[VideoInput] = (),
    ) -> ChatMessage:
        return cls(Role.ASSISTANT, content, tuple(images), tuple(videos))

    def with_content(self, content: str) -> ChatMessage:
        """Return a copy with ``content`` replaced; attachments are shared."""
        return replace(self, content=content)

    def appending(self, text: str) -> ChatMessage:
        """Return a copy with ``text`` appended to the content."""
        return replace(self, content=self.content + text)

    def as_record(self) -> dict[str, str]:
        """Flatten to a ``{"role", "content"}`` record."""
        return {"role": role_to_string(self.role), "content": self.content}


__all__ = ["ChatMessage", "Role", "role_to_string"]
