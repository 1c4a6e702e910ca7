"""Caller-facing operations of Whis Desktop.

Used by the tray menu, the CLI and tests. Operations that talk to the
portal run on the dispatcher loop; the synchronous wrappers here block
the calling thread (never call them from the dispatcher loop itself).
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import replace

from config import API_KEY_PREFIX
from toggle.dispatcher import ToggleDispatcher
from utils.errors import MissingCredential
from utils.hotkey import parse_shortcut
from utils.settings import Settings
from utils.state import AppState
from whis_platform import environment, ipc, portal
from whis_platform.environment import BackendInfo
from whis_platform.shortcuts import ShortcutManager

logger = logging.getLogger("whis.commands")


def validate_api_key(api_key: str) -> bool:
    """Empty is valid (falls back to OPENAI_API_KEY), otherwise must look like an OpenAI key.

    Raises:
        MissingCredential: key has the wrong format
    """
    if not api_key:
        return True
    if not api_key.startswith(API_KEY_PREFIX):
        raise MissingCredential(
            f"Invalid key format. OpenAI keys start with '{API_KEY_PREFIX}'"
        )
    return True


def send_toggle() -> None:
    """Sender role of the IPC fallback (`whis-desktop --toggle`)."""
    ipc.send_toggle()


def get_toggle_command() -> str:
    return environment.get_toggle_command()


def reset_shortcut() -> None:
    """Clears GNOME's portal bindings so the next start can bind again."""
    portal.reset_portal_shortcuts()


class DesktopCommands:
    """Operations bound to the running application."""

    def __init__(
        self,
        state: AppState,
        dispatcher: ToggleDispatcher,
        shortcuts: ShortcutManager,
    ) -> None:
        self.state = state
        self.dispatcher = dispatcher
        self.shortcuts = shortcuts

    # -------------------------------------------------------------------------
    # Backend
    # -------------------------------------------------------------------------

    def get_backend_info(self) -> BackendInfo:
        return self.shortcuts.backend_info()

    def start_configure_shortcut(self) -> Future:
        """Opens the portal's shortcut dialog without waiting for it."""
        return self.dispatcher.submit(self.shortcuts.configure())

    def configure_shortcut(self, timeout: float | None = None) -> str | None:
        """Opens the portal's shortcut dialog and returns the resulting binding.

        Raises:
            UnsupportedProtocolVersion: portal older than version 2
            BackendUnavailable: active backend is not the portal
        """
        return self.start_configure_shortcut().result(timeout)

    def configure_shortcut_with_trigger(
        self, trigger: str, timeout: float | None = None
    ) -> str | None:
        future = self.dispatcher.submit(self.shortcuts.configure_with_trigger(trigger))
        return future.result(timeout)

    def update_shortcut(self, new_spec: str) -> bool:
        """Applies a new shortcut string.

        Returns:
            True if a restart is needed for it to take effect

        Raises:
            InvalidShortcut: unparseable, nothing is changed
        """
        canonical = str(parse_shortcut(new_spec))
        needs_restart = self.shortcuts.update(canonical)
        self.state.settings = replace(self.state.settings, shortcut=canonical)
        return needs_restart

    def read_cached_portal_shortcut(self) -> str | None:
        """Portal binding as last seen, else whatever dconf has."""
        cached = self.state.portal_shortcut
        if cached:
            return cached
        return portal.read_portal_shortcut_from_dconf()

    def portal_bind_error(self) -> str | None:
        return self.state.portal_bind_error

    # -------------------------------------------------------------------------
    # Settings & status
    # -------------------------------------------------------------------------

    def get_status(self) -> dict:
        return self.dispatcher.controller.status()

    def get_settings(self) -> Settings:
        """Re-reads settings from disk."""
        settings = Settings.load()
        self.state.settings = settings
        return settings

    def save_settings(self, settings: Settings) -> bool:
        """Persists settings and applies what changed.

        Returns:
            needs_restart
        """
        if settings.openai_api_key:
            validate_api_key(settings.openai_api_key)
        settings = replace(settings, shortcut=str(parse_shortcut(settings.shortcut)))
        current = self.state.settings
        api_key_changed = current.openai_api_key != settings.openai_api_key
        shortcut_changed = current.shortcut != settings.shortcut

        settings.save()
        self.state.settings = settings

        if api_key_changed:
            self.state.api_key = None
            logger.info("API key changed, cached credential cleared")

        if not shortcut_changed:
            return False
        return self.update_shortcut(settings.shortcut)

    send_toggle = staticmethod(send_toggle)
    get_toggle_command = staticmethod(get_toggle_command)
    reset_shortcut = staticmethod(reset_shortcut)
    validate_api_key = staticmethod(validate_api_key)


__all__ = [
    "DesktopCommands",
    "get_toggle_command",
    "reset_shortcut",
    "send_toggle",
    "validate_api_key",
]
