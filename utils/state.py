"""Shared application state.

One AppState instance is created at startup and handed to every backend,
the dispatcher and the tray. Each field has its own lock; the UI refresh
hook is always called with no lock held, since it may read state again.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable

from utils.settings import Settings


class RecordingState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"


UiRefresh = Callable[[RecordingState], None]


class AppState:
    """Process-wide state aggregate with per-field locks."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._recording_state = RecordingState.IDLE
        self._state_lock = threading.Lock()

        self._audio_handle: Any = None
        self._audio_lock = threading.Lock()

        self._api_key: str | None = None
        self._api_key_lock = threading.Lock()

        self._settings = settings or Settings()
        self._settings_lock = threading.Lock()

        # Best-effort display data, only set when the portal backend is active
        self._portal_shortcut: str | None = None
        self._portal_bind_error: str | None = None
        self._portal_lock = threading.Lock()

        self._ui_refresh: UiRefresh | None = None
        self._ui_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Recording state
    # -------------------------------------------------------------------------

    @property
    def recording_state(self) -> RecordingState:
        with self._state_lock:
            return self._recording_state

    def set_recording_state(self, new: RecordingState) -> RecordingState:
        """Unconditionally sets the state, returns the previous one."""
        with self._state_lock:
            old = self._recording_state
            self._recording_state = new
            return old

    def transition(self, expected: RecordingState, new: RecordingState) -> bool:
        """Compare-and-set: only moves to `new` if the state is `expected`."""
        with self._state_lock:
            if self._recording_state is not expected:
                return False
            self._recording_state = new
            return True

    # -------------------------------------------------------------------------
    # Audio handle (moved, never shared)
    # -------------------------------------------------------------------------

    def store_audio_handle(self, handle: Any) -> None:
        with self._audio_lock:
            if self._audio_handle is not None:
                raise RuntimeError("audio handle already stored")
            self._audio_handle = handle

    def take_audio_handle(self) -> Any:
        """Moves the handle out of the state; a second call returns None."""
        with self._audio_lock:
            handle, self._audio_handle = self._audio_handle, None
            return handle

    @property
    def has_audio_handle(self) -> bool:
        with self._audio_lock:
            return self._audio_handle is not None

    # -------------------------------------------------------------------------
    # Credential cache
    # -------------------------------------------------------------------------

    @property
    def api_key(self) -> str | None:
        with self._api_key_lock:
            return self._api_key

    @api_key.setter
    def api_key(self, value: str | None) -> None:
        with self._api_key_lock:
            self._api_key = value

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        with self._settings_lock:
            return Settings(**self._settings.to_dict())

    @settings.setter
    def settings(self, value: Settings) -> None:
        with self._settings_lock:
            self._settings = value

    # -------------------------------------------------------------------------
    # Portal display data
    # -------------------------------------------------------------------------

    @property
    def portal_shortcut(self) -> str | None:
        with self._portal_lock:
            return self._portal_shortcut

    @portal_shortcut.setter
    def portal_shortcut(self, value: str | None) -> None:
        with self._portal_lock:
            self._portal_shortcut = value

    @property
    def portal_bind_error(self) -> str | None:
        with self._portal_lock:
            return self._portal_bind_error

    @portal_bind_error.setter
    def portal_bind_error(self, value: str | None) -> None:
        with self._portal_lock:
            self._portal_bind_error = value

    # -------------------------------------------------------------------------
    # UI refresh hook
    # -------------------------------------------------------------------------

    def set_ui_refresh(self, callback: UiRefresh | None) -> None:
        with self._ui_lock:
            self._ui_refresh = callback

    def notify_ui(self) -> None:
        """Pushes the current state into the tray/menu."""
        with self._ui_lock:
            callback = self._ui_refresh
        if callback is None:
            return
        callback(self.recording_state)


__all__ = ["AppState", "RecordingState", "UiRefresh"]
