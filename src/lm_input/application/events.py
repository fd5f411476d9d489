"""Events streamed while a reply is generated."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(slots=True, frozen=True)
class GenerationChunk:
    """A piece of generated text."""

    text: str


@dataclass(slots=True, frozen=True)
class GenerationInfo:
    """Completion metrics reported at the end of a generation.

    Attributes:
        prompt_tokens: Number of prompt tokens evaluated.
        generation_tokens: Number of tokens generated.
        prompt_time: Seconds spent evaluating the prompt.
        generate_time: Seconds spent generating tokens.
    """

    prompt_tokens: int
    generation_tokens: int
    prompt_time: float
    generate_time: float

    @property
    def prompt_tokens_per_second(self) -> float:
        return self.prompt_tokens / self.prompt_time if self.prompt_time > 0 else 0.0

    @property
    def tokens_per_second(self) -> float:
        return self.generation_tokens / self.generate_time if self.generate_time > 0 else 0.0


GenerationEvent: TypeAlias = GenerationChunk | GenerationInfo


__all__ = ["GenerationChunk", "GenerationEvent", "GenerationInfo"]
