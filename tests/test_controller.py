"""Tests for toggle/controller.py – recording state machine."""

import asyncio
import threading
from unittest.mock import Mock

import pytest

from audio.recording import AudioChunk, AudioResult
from toggle.controller import MISSING_KEY_MESSAGE, RecordingController
from utils.errors import DeviceUnavailable, TranscriptionFailed
from utils.settings import Settings
from utils.state import AppState, RecordingState


@pytest.fixture
def controller(state, fake_kit):
    return RecordingController(
        state, fake_kit.recorder_factory, fake_kit.transcriber, fake_kit.clipboard
    )


def toggle(controller, source="test"):
    return asyncio.run(controller.toggle(source))


class TestHappyPath:
    def test_idle_to_recording(self, controller, state, fake_kit):
        assert toggle(controller) is None
        assert state.recording_state is RecordingState.RECORDING
        assert fake_kit.recorders[0].started
        assert state.has_audio_handle

    def test_full_cycle(self, controller, state, fake_kit):
        toggle(controller)
        assert toggle(controller) is None

        assert state.recording_state is RecordingState.IDLE
        assert fake_kit.transcriber.calls == [("sk-test", b"flac-bytes")]
        assert fake_kit.clipboard.copied == ["Hello world"]
        assert not state.has_audio_handle

    def test_chunked_result_uses_parallel_path(self, controller, state, fake_kit):
        chunks = [AudioChunk(0, b"a"), AudioChunk(1, b"b")]
        fake_kit.recorder_kwargs = {"result": AudioResult(chunks=chunks)}
        toggle(controller)
        toggle(controller)

        assert fake_kit.transcriber.calls == []
        assert fake_kit.transcriber.chunk_calls == [("sk-test", chunks)]
        assert fake_kit.clipboard.copied == ["Hello world"]

    def test_ui_notified_on_every_transition(self, controller, state):
        seen = []
        state.set_ui_refresh(seen.append)
        toggle(controller)
        toggle(controller)
        assert seen == [
            RecordingState.RECORDING,
            RecordingState.PROCESSING,
            RecordingState.IDLE,
        ]

    def test_empty_transcript_skips_clipboard(self, controller, state, fake_kit):
        fake_kit.transcriber.text = ""
        toggle(controller)
        assert toggle(controller) is None
        assert fake_kit.clipboard.copied == []
        assert state.recording_state is RecordingState.IDLE


class TestProcessing:
    def test_toggle_while_processing_is_ignored(self, controller, state, fake_kit):
        state.set_recording_state(RecordingState.PROCESSING)
        assert toggle(controller) is None
        assert state.recording_state is RecordingState.PROCESSING
        assert fake_kit.recorders == []
        assert fake_kit.transcriber.calls == []
        assert fake_kit.clipboard.copied == []

    def test_concurrent_stop_transcribes_once(self, state, fake_kit):
        """Two stops racing: only one transcription and clipboard write."""
        release = None

        class SlowTranscriber:
            calls = 0

            async def transcribe_chunks(self, api_key, chunks):
                SlowTranscriber.calls += 1
                await release.wait()
                return "text"

        fake_kit.recorder_kwargs = {"result": AudioResult(chunks=[AudioChunk(0, b"a")])}
        controller = RecordingController(
            state, fake_kit.recorder_factory, SlowTranscriber(), fake_kit.clipboard
        )

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            await controller.toggle("first")
            stop_a = asyncio.ensure_future(controller.toggle("hotkey"))
            await asyncio.sleep(0.05)
            assert state.recording_state is RecordingState.PROCESSING
            stop_b = await controller.toggle("ipc")
            release.set()
            return await stop_a, stop_b

        assert asyncio.run(scenario()) == (None, None)
        assert SlowTranscriber.calls == 1
        assert fake_kit.clipboard.copied == ["text"]
        assert state.recording_state is RecordingState.IDLE

    def test_stream_opened_off_the_event_loop(self, state, fake_kit):
        opened_on = []

        def factory():
            opened_on.append(threading.get_ident())
            return fake_kit.recorder_factory()

        controller = RecordingController(
            state, factory, fake_kit.transcriber, fake_kit.clipboard
        )

        async def scenario():
            await controller.toggle("test")
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())
        assert opened_on and opened_on[0] != loop_thread
        assert state.recording_state is RecordingState.RECORDING

    def test_toggle_during_slow_start_stops_afterwards(self, state, fake_kit):
        """A second toggle waits for the stream to open, then stops."""
        opening = threading.Event()
        release = threading.Event()

        def factory():
            opening.set()
            release.wait(1)
            return fake_kit.recorder_factory()

        controller = RecordingController(
            state, factory, fake_kit.transcriber, fake_kit.clipboard
        )

        async def scenario():
            start = asyncio.ensure_future(controller.toggle("hotkey"))
            await asyncio.get_running_loop().run_in_executor(None, opening.wait, 1)
            stop = asyncio.ensure_future(controller.toggle("ipc"))
            await asyncio.sleep(0.01)
            assert state.recording_state is RecordingState.IDLE
            release.set()
            return await start, await stop

        assert asyncio.run(scenario()) == (None, None)
        assert len(fake_kit.recorders) == 1
        assert fake_kit.clipboard.copied == ["Hello world"]
        assert state.recording_state is RecordingState.IDLE


class TestFailures:
    def test_missing_credential_stays_idle(self, fake_kit, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        state = AppState(Settings(openai_api_key=None))
        controller = RecordingController(
            state, fake_kit.recorder_factory, fake_kit.transcriber, fake_kit.clipboard
        )
        assert toggle(controller) == MISSING_KEY_MESSAGE
        assert state.recording_state is RecordingState.IDLE
        assert fake_kit.recorders == []

    def test_credential_removed_while_recording(
        self, controller, state, fake_kit, monkeypatch
    ):
        toggle(controller)
        state.api_key = None
        state.settings = Settings(openai_api_key=None)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert toggle(controller) == MISSING_KEY_MESSAGE
        assert state.recording_state is RecordingState.IDLE
        assert not state.has_audio_handle
        assert fake_kit.recorders[0].stopped
        assert fake_kit.transcriber.calls == []
        assert fake_kit.clipboard.copied == []

    def test_credential_from_environment(self, fake_kit, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        state = AppState(Settings(openai_api_key=None))
        controller = RecordingController(
            state, fake_kit.recorder_factory, fake_kit.transcriber, fake_kit.clipboard
        )
        toggle(controller)
        toggle(controller)
        assert fake_kit.transcriber.calls[0][0] == "sk-env"
        assert state.api_key == "sk-env"

    def test_device_unavailable_stays_idle(self, controller, state, fake_kit):
        fake_kit.recorder_kwargs = {"start_error": DeviceUnavailable("no mic")}
        assert toggle(controller) == "no mic"
        assert state.recording_state is RecordingState.IDLE
        assert not state.has_audio_handle

    def test_missing_audio_handle_returns_to_idle(self, controller, state, fake_kit):
        state.set_recording_state(RecordingState.RECORDING)
        assert toggle(controller) == "No active recording"
        assert state.recording_state is RecordingState.IDLE
        assert fake_kit.transcriber.calls == []
        assert fake_kit.clipboard.copied == []

    def test_empty_recording_returns_to_idle(self, controller, state, fake_kit):
        fake_kit.recorder_kwargs = {"stop_error": DeviceUnavailable("no audio captured")}
        toggle(controller)
        assert toggle(controller) == "no audio captured"
        assert state.recording_state is RecordingState.IDLE
        assert fake_kit.transcriber.calls == []

    def test_transcription_failure_returns_to_idle(self, controller, state, fake_kit):
        fake_kit.transcriber.error = TranscriptionFailed("rate limited")
        toggle(controller)
        assert toggle(controller) == "rate limited"
        assert state.recording_state is RecordingState.IDLE
        assert fake_kit.clipboard.copied == []

    def test_unexpected_error_still_returns_to_idle(self, controller, state, fake_kit):
        fake_kit.transcriber.error = RuntimeError("bug")
        toggle(controller)
        with pytest.raises(RuntimeError):
            toggle(controller)
        assert state.recording_state is RecordingState.IDLE

    def test_recording_possible_after_failure(self, controller, state, fake_kit):
        fake_kit.transcriber.error = TranscriptionFailed("boom")
        toggle(controller)
        toggle(controller)
        fake_kit.transcriber.error = None
        assert toggle(controller) is None
        assert state.recording_state is RecordingState.RECORDING


class TestStatus:
    def test_status(self, controller):
        assert controller.status() == {"state": "idle", "config_valid": True}

    def test_status_without_key(self, fake_kit, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        controller = RecordingController(
            AppState(Settings()), fake_kit.recorder_factory, Mock(), fake_kit.clipboard
        )
        assert controller.status()["config_valid"] is False
