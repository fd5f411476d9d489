"""UserInput processors.

A processor turns a finalized ``UserInput`` into ``LMInput``, the tokenized
model input consumed by the inference engine.

Key Processors:
    - StandInUserInputProcessor: Fails fast when no real processor is set up
    - ChatTemplateProcessor: Renders the flattened messages through a
      tokenizer chat template and decodes all media to canonical form

The input must be fully built before ``prepare`` is called and must not be
mutated while it runs.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from lm_input.domain.exceptions import ProcessorNotImplementedError
from lm_input.infrastructure.image_decoding import apply_processing, as_canonical_image
from lm_input.infrastructure.video_loader import as_video_asset

if TYPE_CHECKING:
    from PIL import Image

    from lm_input.application.interfaces import ChatTokenizer, ImageSource, VideoSource
    from lm_input.domain.media import ImageInput, VideoAsset
    from lm_input.domain.user_input import Processing, UserInput

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LMInput:
    """Tokenized model input.

    Attributes:
        token_ids: Prompt token ids.
        images: Canonical (RGBA) images, already resized per the input's
            processing directive, in prompt order.
        videos: Video asset handles, in prompt order.
    """

    token_ids: tuple[int, ...]
    images: tuple[Image.Image, ...] = ()
    videos: tuple[VideoAsset, ...] = ()

    def __len__(self) -> int:
        return len(self.token_ids)

    def pixel_arrays(self) -> tuple[np.ndarray, ...]:
        """Each image as an (H, W, 4) uint8 array."""
        return tuple(np.asarray(image) for image in self.images)


class StandInUserInputProcessor:
    """A do-nothing processor for when no model-specific one is configured."""

    async def prepare(self, user_input: UserInput) -> LMInput:
        raise ProcessorNotImplementedError()


class ChatTemplateProcessor:
    """Processor that tokenizes through the model's chat template.

    Attributes:
        tokenizer: Object implementing ``apply_chat_template`` (any Hugging
            Face tokenizer).
        image_source: Loader for referenced images. None uses the shared
            default loader.
        video_source: Opener for referenced videos. None wraps references
            without touching them.
        default_processing: Processing used when an input does not request
            a resize itself.
        add_generation_prompt: Whether to append the assistant turn header.
    """

    def __init__(
        self,
        tokenizer: ChatTokenizer,
        image_source: ImageSource | None = None,
        video_source: VideoSource | None = None,
        default_processing: Processing | None = None,
        add_generation_prompt: bool = True,
    ) -> None:
        self.tokenizer = tokenizer
        self.image_source = image_source
        self.video_source = video_source
        self.default_processing = default_processing
        self.add_generation_prompt = add_generation_prompt

    @classmethod
    def from_pretrained(
        cls,
        model_path: str | os.PathLike[str],
        trust_remote_code: bool = False,
        **kwargs: Any,
    ) -> ChatTemplateProcessor:
        """Build a processor around a Hugging Face tokenizer.

        Requires the ``hf`` extra (transformers).
        """
        from transformers import AutoTokenizer

        tokenizer = AutoTokenizer.from_pretrained(
            os.path.expanduser(os.fspath(model_path)),
            trust_remote_code=trust_remote_code,
        )
        return cls(tokenizer, **kwargs)

    async def prepare(self, user_input: UserInput) -> LMInput:
        """Tokenize the prompt and decode all media.

        Raises:
            UnknownRoleError: If a chat message has an unmapped role.
            MediaLoadError: If a referenced image or video cannot be loaded.
            ImageShapeError: If a tensor image has an invalid shape.
        """
        start_time = time.perf_counter()
        token_ids = self.tokenize(user_input)

        processing = user_input.processing
        if processing.resize is None and self.default_processing is not None:
            processing = self.default_processing

        images = await asyncio.to_thread(self._decode_images, user_input.images, processing)
        videos = tuple(
            as_video_asset(video, source=self.video_source) for video in user_input.videos
        )

        logger.info(
            "input_prepared tokens=%d images=%d videos=%d latency_ms=%.2f",
            len(token_ids),
            len(images),
            len(videos),
            (time.perf_counter() - start_time) * 1000,
        )
        return LMInput(token_ids=token_ids, images=images, videos=videos)

    def tokenize(self, user_input: UserInput) -> tuple[int, ...]:
        """Render the flattened messages through the chat template."""
        messages = user_input.as_messages()
        context = dict(user_input.additional_context or {})
        result = self.tokenizer.apply_chat_template(
            messages,
            tools=user_input.tools,
            add_generation_prompt=self.add_generation_prompt,
            tokenize=True,
            return_dict=False,
            **context,
        )
        if isinstance(result, Mapping):
            result = result["input_ids"]
        return tuple(int(token) for token in result)

    def _decode_images(
        self, images: Sequence[ImageInput], processing: Processing
    ) -> tuple[Image.Image, ...]:
        return tuple(
            apply_processing(as_canonical_image(image, source=self.image_source), processing)
            for image in images
        )


__all__ = ["ChatTemplateProcessor", "LMInput", "StandInUserInputProcessor"]
