#!/usr/bin/env python3
"""
Entry point for Whis Desktop.

Without flags the tray application starts: global shortcut (native,
portal or CLI fallback), IPC listener and recording state machine.
With `--toggle` this process only pokes the running instance and exits.

Usage:
    whis-desktop
    whis-desktop --toggle
    whis-desktop --debug
"""

from __future__ import annotations

import logging
import threading
from typing import Annotated

import typer

from commands import DesktopCommands, send_toggle
from config import DEFAULT_SHORTCUT
from toggle import RecordingController, ToggleDispatcher
from ui.tray import TrayController
from utils.env import get_env_bool_default, load_environment
from utils.errors import IpcConnectFailed, SocketBindFailed
from utils.logging import error, get_session_id, log, setup_logging
from utils.settings import Settings
from utils.state import AppState
from whis_platform import BackendKind, IpcListener, ShortcutManager, detect_backend

logger = logging.getLogger("whis")

HELP_EPILOG = (
    f"Global shortcut: {DEFAULT_SHORTCUT} toggles recording (X11/Portal only). "
    "For Wayland without portal support, configure your compositor "
    "to run 'whis-desktop --toggle' on your preferred shortcut."
)

app = typer.Typer(
    help="whis-desktop - Voice to text desktop application",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


class WhisDesktop:
    """Wires state, dispatcher, shortcuts, IPC and tray for one process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.state = AppState(settings or Settings.load())
        self.dispatcher = ToggleDispatcher(RecordingController(self.state))
        self.shortcuts: ShortcutManager | None = None
        self.commands: DesktopCommands | None = None
        self.ipc: IpcListener | None = None
        self.tray: TrayController | None = None
        self._quit_event = threading.Event()

    def start(self) -> None:
        env, kind = detect_backend()
        logger.info(
            f"[{get_session_id()}] Session: {env.session_type.value}, "
            f"desktop: {env.desktop_name}, backend: {kind.value}"
        )

        self.dispatcher.start()
        self.shortcuts = ShortcutManager(self.state, env, kind)
        self.commands = DesktopCommands(self.state, self.dispatcher, self.shortcuts)

        self.tray = TrayController(
            self.state,
            on_toggle=self.dispatcher.trigger("tray"),
            on_quit=self.quit,
            on_configure=(
                self._configure_shortcut
                if kind is BackendKind.PORTAL_PROTOCOL
                else None
            ),
            shortcut_label=self._shortcut_label,
        )

        self.shortcuts.setup(self.dispatcher)

        self.ipc = IpcListener(on_toggle=self.dispatcher.trigger("ipc"))
        try:
            self.ipc.start()
        except SocketBindFailed as e:
            logger.error(f"IPC listener unavailable: {e}")
            self.ipc = None

    def run(self) -> None:
        """Starts everything and blocks until quit."""
        self.start()
        try:
            if self.tray.setup():
                self.tray.run()
            else:
                self._quit_event.wait()
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.shutdown()

    def quit(self) -> None:
        self._quit_event.set()
        if self.tray is not None:
            self.tray.stop()

    def shutdown(self) -> None:
        logger.info(f"[{get_session_id()}] Shutting down")
        if self.ipc is not None:
            self.ipc.stop()
        if self.shortcuts is not None:
            self.shortcuts.shutdown()
        self.dispatcher.stop()

    def _shortcut_label(self) -> str | None:
        if self.shortcuts is not None and self.shortcuts.active_kind is BackendKind.PORTAL_PROTOCOL:
            return self.commands.read_cached_portal_shortcut()
        return self.state.settings.shortcut

    def _configure_shortcut(self) -> None:
        future = self.commands.start_configure_shortcut()

        def done(f) -> None:
            exc = f.exception()
            if exc is not None:
                logger.error(f"Shortcut configuration failed: {exc}")
            else:
                logger.info(f"Shortcut configured: {f.result() or 'unchanged'}")
            self.state.notify_ui()

        future.add_done_callback(done)


@app.command(epilog=HELP_EPILOG)
def main(
    toggle: Annotated[
        bool,
        typer.Option("-t", "--toggle", help="Toggle recording in running instance"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(help="Enable debug logging"),
    ] = False,
) -> None:
    """Voice to text desktop application."""
    load_environment()
    debug = debug or get_env_bool_default("WHIS_DEBUG", False)
    setup_logging(debug=debug)

    if toggle:
        try:
            send_toggle()
        except IpcConnectFailed as e:
            error(f"Failed to toggle: {e}")
            log("Is whis-desktop running?")
            raise typer.Exit(1)
        return

    WhisDesktop().run()


def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
