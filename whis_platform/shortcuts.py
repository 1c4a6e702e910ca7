"""Shortcut backend orchestration.

Builds the backend picked by `detect_backend()` and steps down to the CLI
fallback when it cannot be used. Each backend keeps the binding in its own
place (pynput in-process, portal/dconf, compositor config for the CLI
fallback); only the native backend can change it without a restart.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable

from utils.errors import BackendUnavailable, InvalidShortcut
from utils.state import AppState
from whis_platform.environment import (
    BackendInfo,
    BackendKind,
    SessionEnvironment,
    build_backend_info,
    cli_instructions,
    get_portal_version,
)
from whis_platform.hotkey import NativeHotkeyBackend
from whis_platform.portal import PortalShortcutBackend

logger = logging.getLogger("whis.platform.shortcuts")


class ShortcutManager:
    """Owns the active shortcut backend for the process lifetime."""

    def __init__(
        self,
        state: AppState,
        env: SessionEnvironment,
        kind: BackendKind,
        native_factory: Callable[[Callable[[], None]], NativeHotkeyBackend] = NativeHotkeyBackend,
        portal_backend: PortalShortcutBackend | None = None,
        version_probe: Callable[[], int] = get_portal_version,
    ) -> None:
        self.state = state
        self.env = env
        self.kind = kind
        self.active_kind = kind
        self.native: NativeHotkeyBackend | None = None
        self.portal = portal_backend
        if self.portal is None and kind is BackendKind.PORTAL_PROTOCOL:
            self.portal = PortalShortcutBackend(state)
        self.portal_task: Future | None = None
        self._native_factory = native_factory
        self._hotkey_trigger: Callable[[], None] | None = None
        self._version_probe = version_probe
        self._info: BackendInfo | None = None

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def setup(self, dispatcher) -> BackendKind:
        """Wires the backend to the dispatcher, returns the kind in use."""
        shortcut = self.state.settings.shortcut
        logger.info(
            f"Setting up shortcuts: {self.env.desktop_name} (backend: {self.kind.value})"
        )

        if self.kind is BackendKind.NATIVE_HOTKEY:
            self._hotkey_trigger = dispatcher.trigger("hotkey")
            try:
                self._register_native(shortcut)
            except (InvalidShortcut, BackendUnavailable) as e:
                logger.error(f"Failed to setup native shortcut: {e}")
                self._step_down(shortcut)
        elif self.kind is BackendKind.PORTAL_PROTOCOL:
            self.portal_task = dispatcher.submit(
                self._run_portal(shortcut, dispatcher.trigger("portal"))
            )
        else:
            self._step_down(shortcut)

        self._info = build_backend_info(self.env, self.active_kind, self._version_probe)
        return self.active_kind

    def _register_native(self, shortcut: str) -> None:
        backend = self._native_factory(self._hotkey_trigger)
        backend.register(shortcut)
        self.native = backend
        self.active_kind = BackendKind.NATIVE_HOTKEY

    async def _run_portal(self, shortcut: str, on_toggle: Callable[[], None]) -> None:
        try:
            await self.portal.setup(shortcut, on_toggle)
        except Exception as e:
            # Portal setup never returns normally; any exit is a failure
            logger.error(f"Portal shortcuts failed: {e}")
            self._step_down(shortcut)

    def _step_down(self, shortcut: str) -> None:
        if self.active_kind is not BackendKind.CLI_FALLBACK:
            logger.warning("Falling back to CLI mode")
        self.active_kind = BackendKind.CLI_FALLBACK
        lines = cli_instructions(self.env.desktop_name, shortcut)
        print()
        for line in lines:
            print(line)
            logger.info(line)
        print()

    # -------------------------------------------------------------------------
    # Runtime operations
    # -------------------------------------------------------------------------

    def backend_info(self) -> BackendInfo:
        """Backend description as settled by setup(), fixed for the process."""
        if self._info is None:
            raise RuntimeError("ShortcutManager.setup() was not called")
        return self._info

    def update(self, new_shortcut: str) -> bool:
        """Applies a new shortcut.

        Returns:
            True if a restart is needed, False if applied immediately
        """
        if self.kind is BackendKind.NATIVE_HOTKEY and self._hotkey_trigger is not None:
            if self.native is not None:
                return self.native.update(new_shortcut)
            # Startup registration failed, try again with the new shortcut
            self._register_native(new_shortcut)
            logger.info(f"Native global shortcut registered: {new_shortcut}")
            return False

        logger.info("Shortcut saved. Restart required for changes to take effect.")
        return True

    def _require_portal(self) -> PortalShortcutBackend:
        if self.kind is not BackendKind.PORTAL_PROTOCOL or self.portal is None:
            raise BackendUnavailable(
                "Shortcut configuration is only available with the GlobalShortcuts portal"
            )
        return self.portal

    async def configure(self) -> str | None:
        return await self._require_portal().open_configuration_dialog()

    async def configure_with_trigger(self, trigger: str) -> str | None:
        return await self._require_portal().configure_with_preferred_trigger(trigger)

    def shutdown(self) -> None:
        if self.native is not None:
            self.native.unregister()
            self.native = None


__all__ = ["ShortcutManager"]
