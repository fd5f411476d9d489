"""
Pytest configuration and fixtures for lm-input tests.
"""

import asyncio
import io
import json
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from lm_input.application.events import GenerationChunk, GenerationInfo
from lm_input.core.config import SessionConfig


class RecordingTokenizer:
    """Tokenizer stand-in implementing ``apply_chat_template``.

    Tokens are the UTF-8 bytes of the JSON-rendered conversation, so tests
    can check exactly what was rendered.
    """

    def __init__(self, return_mapping: bool = False):
        self.calls: list[dict] = []
        self.return_mapping = return_mapping

    def apply_chat_template(
        self,
        conversation,
        tools=None,
        add_generation_prompt=False,
        tokenize=True,
        **kwargs,
    ):
        self.calls.append(
            {
                "conversation": conversation,
                "tools": tools,
                "add_generation_prompt": add_generation_prompt,
                "tokenize": tokenize,
                "kwargs": kwargs,
            }
        )
        rendered = json.dumps(conversation, sort_keys=True)
        token_ids = list(rendered.encode("utf-8"))
        if self.return_mapping:
            return {"input_ids": token_ids, "attention_mask": [1] * len(token_ids)}
        return token_ids


class ScriptedService:
    """GenerationService that replays scripted events.

    Attributes:
        events: Events yielded for every generation.
        delay: Seconds to sleep before each event.
        error: Exception raised after the events, if set.
        calls: Transcripts received, one per generation.
    """

    def __init__(self, events=(), delay=0.0, error=None, load_error=None):
        self.events = list(events)
        self.delay = delay
        self.error = error
        self.load_error = load_error
        self.calls: list[tuple] = []
        self.loaded: list[str] = []

    async def load(self, model):
        if self.load_error is not None:
            raise self.load_error
        self.loaded.append(model)

    async def generate(self, messages, model):
        self.calls.append(tuple(messages))
        for event in self.events:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield event
        if self.error is not None:
            raise self.error


@pytest.fixture
def tokenizer():
    """Create a RecordingTokenizer."""
    return RecordingTokenizer()


@pytest.fixture
def session_settings():
    """Session settings with a short system prompt."""
    return SessionConfig(system_prompt="You are a helpful assistant.")


@pytest.fixture
def scripted_service():
    """Service streaming two chunks followed by completion info."""
    return ScriptedService(
        events=[
            GenerationChunk("Hello"),
            GenerationChunk(", world"),
            GenerationInfo(
                prompt_tokens=12,
                generation_tokens=20,
                prompt_time=0.5,
                generate_time=2.0,
            ),
        ]
    )


@pytest.fixture
def rgb_pixels() -> np.ndarray:
    """A 2x3 (H x W) uint8 RGB image in channel-last layout."""
    return np.array(
        [
            [[255, 0, 0], [0, 255, 0], [0, 0, 255]],
            [[10, 20, 30], [40, 50, 60], [70, 80, 90]],
        ],
        dtype=np.uint8,
    )


@pytest.fixture
def png_file(tmp_path) -> Path:
    """A 4x3 red PNG written to a temporary directory."""
    path = tmp_path / "red.png"
    Image.new("RGB", (4, 3), color=(255, 0, 0)).save(path, format="PNG")
    return path


@pytest.fixture
def png_bytes() -> bytes:
    """Bytes of a 5x5 blue RGBA PNG."""
    buffer = io.BytesIO()
    Image.new("RGBA", (5, 5), color=(0, 0, 255, 128)).save(buffer, format="PNG")
    return buffer.getvalue()
