"""
Behavioral tests for ChatSession and media selection.

Tests exercise the real asyncio task handling: single in-flight generation,
cancellation markers and error recording.
"""

from __future__ import annotations

import asyncio

import pytest
from conftest import ScriptedService

from lm_input.application.chat_session import (
    ChatSession,
    ClearOption,
    MediaKind,
    MediaSelection,
    classify_media,
)
from lm_input.application.events import GenerationChunk
from lm_input.core.config import SessionConfig, Settings
from lm_input.domain.chat import ChatMessage, Role
from lm_input.domain.media import ImageReference, VideoReference


class BlockingService:
    """Service that streams one chunk and then waits until cancelled."""

    def __init__(self):
        self.streaming = asyncio.Event()
        self.calls: list[tuple] = []

    async def load(self, model):
        pass

    async def generate(self, messages, model):
        self.calls.append(tuple(messages))
        yield GenerationChunk("partial")
        self.streaming.set()
        await asyncio.Event().wait()


@pytest.fixture
def session(scripted_service, session_settings):
    return ChatSession(scripted_service, "test-model", settings=session_settings)


class TestClassifyMedia:
    """Behavioral tests for classify_media()."""

    @pytest.mark.parametrize(
        ("location", "expected"),
        [
            ("photo.jpg", MediaKind.IMAGE),
            ("scan.PNG", MediaKind.IMAGE),
            ("clip.mp4", MediaKind.VIDEO),
            ("clip.mov", MediaKind.VIDEO),
            ("notes.txt", None),
            ("no_extension", None),
        ],
    )
    def test_kind_from_extension(self, location, expected):
        """Test classification by guessed media type."""
        assert classify_media(location) == expected


class TestMediaSelection:
    """Behavioral tests for MediaSelection."""

    def test_new_pick_replaces_same_kind(self):
        """Test that each kind holds only the latest pick."""
        selection = MediaSelection()

        selection.add("a.jpg")
        selection.add("b.png")
        selection.add("c.mp4")

        assert selection.images == ["b.png"]
        assert selection.videos == ["c.mp4"]

    def test_other_files_ignored(self):
        """Test that non-media files leave the selection empty."""
        selection = MediaSelection()
        assert selection.add("doc.pdf") is None
        assert selection.is_empty

    def test_inputs_are_references(self):
        """Test conversion to image and video inputs."""
        selection = MediaSelection(images=["a.jpg"], videos=["b.mp4"])

        assert selection.image_inputs() == (ImageReference("a.jpg"),)
        assert selection.video_inputs() == (VideoReference("b.mp4"),)


class TestSessionSetup:
    """Behavioral tests for a fresh ChatSession."""

    def test_transcript_seeded_with_system_prompt(self, session):
        """Test that the system prompt is the first message."""
        assert session.messages == [ChatMessage.system("You are a helpful assistant.")]
        assert not session.is_generating
        assert session.tokens_per_second == 0.0

    def test_empty_system_prompt_not_added(self, scripted_service):
        """Test that an empty system prompt leaves the transcript empty."""
        session = ChatSession(scripted_service, "m", settings=SessionConfig(system_prompt=""))
        assert session.messages == []

    def test_settings_default_to_environment(self, scripted_service, monkeypatch):
        """Test that settings are read from SESSION_* variables when not given."""
        monkeypatch.setenv("SESSION_SYSTEM_PROMPT", "Be brief.")
        Settings.get_settings.cache_clear()
        try:
            session = ChatSession(scripted_service, "m")
        finally:
            Settings.get_settings.cache_clear()

        assert session.messages[0].content == "Be brief."


class TestGenerate:
    """Behavioral tests for ChatSession.generate()."""

    @pytest.mark.asyncio
    async def test_reply_streamed_into_transcript(self, session, scripted_service):
        """Test that chunks are appended to a new assistant message."""
        session.prompt = "Hi there"

        await session.generate()

        assert [message.role for message in session.messages] == [
            Role.SYSTEM,
            Role.USER,
            Role.ASSISTANT,
        ]
        assert session.messages[1].content == "Hi there"
        assert session.messages[2].content == "Hello, world"
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_service_sees_transcript_without_placeholder(self, session, scripted_service):
        """Test that the empty assistant reply is not sent to the model."""
        session.prompt = "Hi"

        await session.generate()

        sent = scripted_service.calls[0]
        assert [message.role for message in sent] == [Role.SYSTEM, Role.USER]

    @pytest.mark.asyncio
    async def test_completion_info_recorded(self, session):
        """Test that completion metrics are stored and the model marked ready."""
        await session.generate()

        assert session.completion_info is not None
        assert session.completion_info.generation_tokens == 20
        assert session.tokens_per_second == 10.0
        assert session.is_model_ready

    @pytest.mark.asyncio
    async def test_selected_media_attached_and_cleared(self, session, scripted_service):
        """Test that picked media goes with the message and is then reset."""
        session.prompt = "Describe"
        session.media_selection.add("beach.jpg")
        session.media_selection.add("waves.mp4")

        await session.generate()

        user_message = scripted_service.calls[0][-1]
        assert user_message.images == (ImageReference("beach.jpg"),)
        assert user_message.videos == (VideoReference("waves.mp4"),)
        assert session.prompt == ""
        assert session.media_selection.is_empty

    @pytest.mark.asyncio
    async def test_error_recorded(self, session_settings):
        """Test that a failing generation records the error."""
        service = ScriptedService(events=[GenerationChunk("par")], error=RuntimeError("boom"))
        session = ChatSession(service, "m", settings=session_settings)
        session.is_model_ready = True

        await session.generate()

        assert session.error_message == "boom"
        assert not session.is_model_ready
        assert not session.is_generating
        assert session.messages[-1].content == "par"

    @pytest.mark.asyncio
    async def test_cancel_marks_reply(self, session_settings):
        """Test that cancel() keeps the partial reply and appends the marker."""
        service = BlockingService()
        session = ChatSession(service, "m", settings=session_settings)

        task = asyncio.create_task(session.generate())
        await service.streaming.wait()
        assert session.is_generating

        session.cancel()
        await task

        assert session.messages[-1].content == "partial\n[Cancelled]"
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_new_generation_cancels_previous(self, session_settings):
        """Test that only one generation is in flight at a time."""
        service = BlockingService()
        session = ChatSession(service, "m", settings=session_settings)

        session.prompt = "first"
        first = asyncio.create_task(session.generate())
        await service.streaming.wait()
        service.streaming.clear()

        session.prompt = "second"
        second = asyncio.create_task(session.generate())
        await service.streaming.wait()
        await first

        assert [message.content for message in session.messages] == [
            "You are a helpful assistant.",
            "first",
            "partial\n[Cancelled]",
            "second",
            "partial",
        ]
        assert session.is_generating

        session.cancel()
        await second

        assert session.messages[-1].content == "partial\n[Cancelled]"
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, session_settings):
        """Test that cancelling the caller's task marks the reply and re-raises."""
        service = BlockingService()
        session = ChatSession(service, "m", settings=session_settings)

        task = asyncio.create_task(session.generate())
        await service.streaming.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.messages[-1].content == "partial\n[Cancelled]"
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_clearing_chat_during_generation(self, session_settings):
        """Test that clearing the chat cancels and leaves the transcript empty."""
        service = BlockingService()
        session = ChatSession(service, "m", settings=session_settings)

        task = asyncio.create_task(session.generate())
        await service.streaming.wait()
        session.clear(ClearOption.CHAT)
        await task

        assert session.messages == []
        assert not session.is_model_ready
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_generation_after_clear_keeps_its_reply_unmarked(self):
        """Test that a reply started after clear(CHAT) never gets the old marker."""
        service = BlockingService()
        session = ChatSession(service, "m", settings=SessionConfig(system_prompt=""))

        session.prompt = "first"
        first = asyncio.create_task(session.generate())
        await service.streaming.wait()
        service.streaming.clear()

        session.clear(ClearOption.CHAT)
        session.prompt = "second"
        second = asyncio.create_task(session.generate())
        await first
        await service.streaming.wait()

        assert [message.content for message in session.messages] == ["second", "partial"]
        assert session.is_generating

        session.cancel()
        await second

        assert session.messages[-1].content == "partial\n[Cancelled]"
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_custom_cancelled_marker(self):
        """Test that the marker text comes from the settings."""
        service = BlockingService()
        session = ChatSession(
            service, "m", settings=SessionConfig(system_prompt="", cancelled_marker=" [stopped]")
        )

        task = asyncio.create_task(session.generate())
        await service.streaming.wait()
        session.cancel()
        await task

        assert session.messages[-1].content == "partial [stopped]"


class TestClear:
    """Behavioral tests for ChatSession.clear()."""

    @pytest.mark.asyncio
    async def test_prompt_option_keeps_transcript(self, session):
        """Test that PROMPT resets only the composer state."""
        await session.generate()
        session.prompt = "draft"
        session.media_selection.add("a.jpg")

        session.clear(ClearOption.PROMPT)

        assert session.prompt == ""
        assert session.media_selection.is_empty
        assert len(session.messages) == 3

    @pytest.mark.asyncio
    async def test_chat_and_meta_options(self, session):
        """Test that CHAT | META drops the transcript and metrics."""
        await session.generate()
        session.prompt = "draft"

        session.clear(ClearOption.CHAT | ClearOption.META)

        assert session.messages == []
        assert session.completion_info is None
        assert not session.is_model_ready
        assert session.prompt == "draft"

    def test_error_always_reset(self, session):
        """Test that any clear() resets the error message."""
        session.error_message = "old error"
        session.clear(ClearOption.META)
        assert session.error_message is None


class TestAddMedia:
    """Behavioral tests for ChatSession.add_media()."""

    def test_picked_file_selected(self, session):
        """Test that a picked image lands in the selection."""
        session.add_media("cat.jpeg")
        assert session.media_selection.images == ["cat.jpeg"]

    def test_picker_error_recorded(self, session):
        """Test that a failed pick sets the error message."""
        session.add_media(PermissionError("access denied"))

        assert session.error_message == "Failed to load media item.\n\nError: access denied"
        assert session.media_selection.is_empty


class TestPrepareModel:
    """Behavioral tests for ChatSession.prepare_model()."""

    @pytest.mark.asyncio
    async def test_success_marks_ready(self, session, scripted_service):
        """Test that a successful load marks the model ready."""
        await session.prepare_model()

        assert scripted_service.loaded == ["test-model"]
        assert session.is_model_ready
        assert not session.is_preparing_model

    @pytest.mark.asyncio
    async def test_failure_recorded(self, session_settings):
        """Test that a failed load records the error."""
        service = ScriptedService(load_error=OSError("download failed"))
        session = ChatSession(service, "m", settings=session_settings)

        await session.prepare_model()

        assert session.error_message == "download failed"
        assert not session.is_model_ready
        assert not session.is_preparing_model
