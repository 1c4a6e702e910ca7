"""Native global hotkey backend (X11).

Registers the shortcut with pynput's GlobalHotKeys listener. The listener
thread only hands the press over to the toggle dispatcher; the recording
state machine never runs on the pynput thread.
"""

import logging
from typing import Callable

from utils.errors import BackendUnavailable
from utils.hotkey import parse_shortcut, to_pynput_hotkey

logger = logging.getLogger("whis.platform.hotkey")

# Hotkey callback type
HotkeyCallback = Callable[[], None]


class NativeHotkeyBackend:
    """Global hotkey via pynput (X11, also macOS/Windows).

    Supports live re-registration, so shortcut changes need no restart.
    """

    def __init__(self, on_toggle: HotkeyCallback) -> None:
        self.on_toggle = on_toggle
        self.shortcut: str | None = None
        self._listener = None

    def _on_activate(self) -> None:
        logger.info("Native shortcut triggered")
        self.on_toggle()

    def register(self, shortcut: str) -> None:
        """Parses and registers the shortcut.

        Raises:
            InvalidShortcut: unparsable shortcut, nothing is registered
            BackendUnavailable: pynput missing or listener could not start
        """
        hotkey = to_pynput_hotkey(parse_shortcut(shortcut))

        try:
            from pynput import keyboard
        except ImportError as e:
            raise BackendUnavailable(f"pynput not available: {e}") from e

        try:
            listener = keyboard.GlobalHotKeys({hotkey: self._on_activate})
            listener.start()
        except Exception as e:
            # pynput raises backend-specific errors (Xlib display, permissions)
            raise BackendUnavailable(f"Hotkey listener failed: {e}") from e

        self._listener = listener
        self.shortcut = shortcut
        logger.info(f"Native global shortcut registered: {shortcut} ({hotkey})")

    def unregister(self) -> None:
        """Stops the listener, if any."""
        listener, self._listener = self._listener, None
        self.shortcut = None
        if listener is None:
            return
        try:
            listener.stop()
        except Exception as e:
            logger.debug(f"Stopping hotkey listener failed: {e}")

    def update(self, shortcut: str) -> bool:
        """Replaces the registered shortcut.

        Returns:
            False: applied immediately, no restart needed
        """
        # Validate first so a bad shortcut leaves the old binding intact
        parse_shortcut(shortcut)
        self.unregister()
        self.register(shortcut)
        logger.info(f"Updated native global shortcut to: {shortcut}")
        return False

    @property
    def is_registered(self) -> bool:
        return self._listener is not None


__all__ = ["NativeHotkeyBackend", "HotkeyCallback"]
