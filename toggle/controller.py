"""Recording state machine: Idle → Recording → Processing → Idle.

Every trigger surface ends up in `RecordingController.toggle()` on the
dispatcher's event loop. The state read, the decision and the state write
happen under one asyncio lock, which also covers opening the audio stream
in the default executor. The stop path moves to PROCESSING before any
blocking work, so two near-simultaneous toggles can never both stop (or both
start) the same recording.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from audio.recording import AudioRecorder
from config import API_KEY_ENV
from utils.env import get_env_str
from utils.errors import MissingCredential, NoActiveRecording, WhisError
from utils.logging import get_session_id
from utils.state import AppState, RecordingState
from utils.timing import log_preview
from whis_platform.clipboard import copy_to_clipboard

logger = logging.getLogger("whis.toggle")

MISSING_KEY_MESSAGE = "No API key configured. Add it in Settings > API Keys."


class RecordingController:
    """Owns the start/stop/transcribe cycle.

    Args:
        state: Shared application state
        recorder_factory: Creates a recorder with start_recording()/stop_and_save()
        transcriber: transcribe(api_key, data) and async transcribe_chunks(api_key, chunks)
        clipboard: Callable that receives the final transcript
    """

    def __init__(
        self,
        state: AppState,
        recorder_factory: Callable[[], Any] = AudioRecorder,
        transcriber: Any = None,
        clipboard: Callable[[str], None] = copy_to_clipboard,
    ) -> None:
        if transcriber is None:
            from providers import get_transcriber

            transcriber = get_transcriber()
        self.state = state
        self._recorder_factory = recorder_factory
        self._transcriber = transcriber
        self._clipboard = clipboard
        self._transition_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Credential
    # -------------------------------------------------------------------------

    def resolve_api_key(self) -> str:
        """Cached key, then settings, then OPENAI_API_KEY.

        Raises:
            MissingCredential: no key anywhere
        """
        api_key = self.state.api_key
        if api_key:
            return api_key
        api_key = self.state.settings.openai_api_key or get_env_str(API_KEY_ENV)
        if not api_key:
            raise MissingCredential(MISSING_KEY_MESSAGE)
        self.state.api_key = api_key
        return api_key

    def has_credential(self) -> bool:
        return bool(
            self.state.api_key
            or self.state.settings.openai_api_key
            or get_env_str(API_KEY_ENV)
        )

    # -------------------------------------------------------------------------
    # Toggle
    # -------------------------------------------------------------------------

    async def toggle(self, source: str = "unknown") -> str | None:
        """Advances the state machine by one step.

        Returns:
            Error message for the caller, or None
        """
        async with self._transition_lock:
            current = self.state.recording_state
            logger.debug(f"Toggle from {source} in state {current.value}")

            if current is RecordingState.PROCESSING:
                logger.info(f"Toggle from {source} ignored: still processing")
                return None

            if current is RecordingState.IDLE:
                error = await self._start_recording(source)
            elif not self.state.transition(
                RecordingState.RECORDING, RecordingState.PROCESSING
            ):
                return None

        if current is RecordingState.IDLE:
            if error is None:
                self.state.notify_ui()
            return error

        self.state.notify_ui()
        logger.info(f"[{get_session_id()}] Processing...")
        return await self._stop_and_transcribe()

    async def _start_recording(self, source: str) -> str | None:
        try:
            self.resolve_api_key()
            recorder = await asyncio.get_running_loop().run_in_executor(
                None, self._open_recorder
            )
        except WhisError as e:
            logger.error(f"Failed to start recording: {e}")
            return str(e)

        self.state.store_audio_handle(recorder)
        self.state.set_recording_state(RecordingState.RECORDING)
        logger.info(f"[{get_session_id()}] Recording started (via {source})")
        return None

    def _open_recorder(self) -> Any:
        recorder = self._recorder_factory()
        recorder.start_recording()
        return recorder

    async def _stop_and_transcribe(self) -> str | None:
        loop = asyncio.get_running_loop()
        try:
            recorder = self.state.take_audio_handle()
            if recorder is None:
                raise NoActiveRecording("No active recording")

            result = await loop.run_in_executor(None, recorder.stop_and_save)
            api_key = self.resolve_api_key()

            if result.is_chunked:
                text = await self._transcriber.transcribe_chunks(api_key, result.chunks)
            else:
                text = await loop.run_in_executor(
                    None, self._transcriber.transcribe, api_key, result.data
                )

            if not text:
                logger.warning("Empty transcript")
                return None

            self._clipboard(text)
            logger.info(f"[{get_session_id()}] Done: {log_preview(text)}")
            return None
        except WhisError as e:
            logger.error(f"Failed to transcribe: {e}")
            return str(e)
        finally:
            self.state.set_recording_state(RecordingState.IDLE)
            self.state.notify_ui()

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status(self) -> dict:
        return {
            "state": self.state.recording_state.value,
            "config_valid": self.has_credential(),
        }


__all__ = ["RecordingController", "MISSING_KEY_MESSAGE"]
