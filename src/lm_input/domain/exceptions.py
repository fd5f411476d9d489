"""Domain exceptions for user-input normalization.

This module defines the errors raised while normalizing caller-supplied
prompts and media into model-ready form. None of them are retried
internally; they propagate to the immediate caller.

Exception Hierarchy:
    - DomainError: Base exception for all domain errors
    - UserInputError: Base for errors raised by the normalization layer
    - MediaLoadError: A referenced image/video could not be read or decoded
    - ImageShapeError: A tensor image has an invalid shape
    - ProcessorNotImplementedError: The stand-in processor was invoked
    - UnknownRoleError: A chat role outside system/user/assistant
"""

from __future__ import annotations

import os
from typing import Any


class DomainError(Exception):
    """Base exception for all domain errors.

    This exception should not be raised directly. Use specific subclasses
    like MediaLoadError or ImageShapeError instead.
    """


class UserInputError(DomainError):
    """Raised when a UserInput cannot be normalized or is misused.

    Also raised directly for contract violations on the container itself,
    e.g. attaching media to an input whose media is derived from a chat
    transcript.
    """


class MediaLoadError(UserInputError):
    """Raised when a referenced media resource cannot be read or decoded.

    Recoverable by the caller (for example by picking another file). The
    offending location is kept on the exception.

    Attributes:
        location: The file path or URL that failed to load.
    """

    def __init__(self, location: str | os.PathLike[str], reason: str | None = None) -> None:
        self.location = os.fspath(location)
        self.reason = reason
        message = f"Unable to load media from URL: {self.location}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ImageShapeError(UserInputError):
    """Raised when a tensor image has a structurally invalid shape.

    Always a caller bug. Shapes are never silently coerced.

    Attributes:
        detail: Description of the offending shape.
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Error processing image array: {detail}")


class ProcessorNotImplementedError(UserInputError):
    """Raised when the stand-in processor is asked to prepare input.

    Always a configuration bug: a real model-specific processor should have
    been configured.
    """

    def __init__(self) -> None:
        super().__init__("This functionality is not implemented.")


class UnknownRoleError(UserInputError, ValueError):
    """Raised when a chat role has no mapping to system, user or assistant."""

    def __init__(self, role: Any) -> None:
        self.role = role
        super().__init__(
            f"Invalid role {role!r}. Must be 'system', 'user', or 'assistant'"
        )


__all__ = [
    "DomainError",
    "ImageShapeError",
    "MediaLoadError",
    "ProcessorNotImplementedError",
    "UnknownRoleError",
    "UserInputError",
]
