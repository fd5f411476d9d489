"""Generation service backed by a processor and a model runtime.

``ChatGenerationService`` is the bridge between a chat transcript and the
inference engine: it builds a ``UserInput`` from the transcript, prepares it
with the configured processor, and streams the runtime's events back.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any

from lm_input.application.events import GenerationInfo
from lm_input.domain.user_input import Processing, UserInput

if TYPE_CHECKING:
    from lm_input.application.events import GenerationEvent
    from lm_input.application.interfaces import ModelRuntime, UserInputProcessor
    from lm_input.domain.chat import ChatMessage
    from lm_input.domain.user_input import ToolSpec

logger = logging.getLogger(__name__)


class ChatGenerationService:
    """Generate assistant replies for chat transcripts.

    Attributes:
        _processor: Converts the UserInput to LMInput.
        _runtime: Loads models and streams generation events.
        _processing: Processing applied to every request's images.
        _tools: Tool specifications offered to the model.
        _additional_context: Extra chat template context.
    """

    def __init__(
        self,
        processor: UserInputProcessor,
        runtime: ModelRuntime,
        processing: Processing | None = None,
        tools: list[ToolSpec] | None = None,
        additional_context: dict[str, Any] | None = None,
    ) -> None:
        self._processor = processor
        self._runtime = runtime
        self._processing = processing
        self._tools = tools
        self._additional_context = additional_context

    async def load(self, model: str) -> None:
        start_time = time.perf_counter()
        await self._runtime.load(model)
        logger.info(
            "model_loaded model=%s latency_ms=%.2f",
            model,
            (time.perf_counter() - start_time) * 1000,
        )

    def build_input(self, messages: Sequence[ChatMessage]) -> UserInput:
        """Build the UserInput for ``messages``; media is derived from them."""
        user_input = UserInput.from_chat(
            messages, tools=self._tools, additional_context=self._additional_context
        )
        if self._processing is not None:
            user_input.processing = self._processing
        return user_input

    async def generate(
        self, messages: Sequence[ChatMessage], model: str
    ) -> AsyncIterator[GenerationEvent]:
        """Prepare ``messages`` and stream the runtime's events.

        The input is fully prepared before the runtime starts consuming it.
        """
        user_input = self.build_input(messages)
        lm_input = await self._processor.prepare(user_input)
        logger.debug(
            "generation_started model=%s messages=%d tokens=%d",
            model,
            len(messages),
            len(lm_input),
        )
        async for event in self._runtime.stream(lm_input, model):
            if isinstance(event, GenerationInfo):
                logger.info(
                    "generation_completed model=%s tokens=%d tokens_per_second=%.2f",
                    model,
                    event.generation_tokens,
                    event.tokens_per_second,
                )
            yield event


__all__ = ["ChatGenerationService"]
