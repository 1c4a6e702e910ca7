"""Unix socket IPC for `whis-desktop --toggle`.

Used where no global shortcut can be registered automatically (Wayland
without GlobalShortcuts portal): the user binds `whis-desktop --toggle`
in the compositor, and that short-lived process pokes the running app.

Protocol:
    whis-desktop --toggle            whis-desktop (running)
       │                               │
       │──── connect ─────────────────►│
       │──── "toggle" ────────────────►│ (reads ≤64 bytes, trims)
       │──── close ───────────────────►│
"""

from __future__ import annotations

import logging
import os
import socket
import threading
from pathlib import Path
from typing import Callable, Mapping

from config import (
    IPC_BUFFER_SIZE,
    SOCKET_FALLBACK_DIR,
    SOCKET_FILENAME,
    TOGGLE_COMMAND,
)
from utils.errors import IpcConnectFailed, SocketBindFailed

logger = logging.getLogger("whis.platform.ipc")


def get_socket_path(environ: Mapping[str, str] | None = None) -> Path:
    """$XDG_RUNTIME_DIR/whis-desktop.sock, or /tmp/whis-desktop.sock."""
    environ = os.environ if environ is None else environ
    runtime_dir = environ.get("XDG_RUNTIME_DIR")
    base = Path(runtime_dir) if runtime_dir else SOCKET_FALLBACK_DIR
    return base / SOCKET_FILENAME


# -----------------------------------------------------------------------------
# Sender - short-lived `--toggle` process
# -----------------------------------------------------------------------------


def send_toggle(path: Path | None = None) -> None:
    """Sends the toggle command to the running instance.

    Raises:
        IpcConnectFailed: nobody is listening (not retried)
    """
    path = path or get_socket_path()
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        try:
            sock.connect(str(path))
        except OSError as e:
            raise IpcConnectFailed(f"No running instance at {path}: {e}") from e
        sock.sendall(TOGGLE_COMMAND.encode("ascii"))
    logger.debug("Toggle command sent")


# -----------------------------------------------------------------------------
# Listener - running app
# -----------------------------------------------------------------------------


class IpcListener:
    """Accepts toggle commands on a Unix socket in a background thread.

    The accept loop runs on its own thread, which has no event loop;
    `on_toggle` must only hand the request over (ToggleDispatcher.request_toggle).

    Usage:
        listener = IpcListener(on_toggle=dispatcher.trigger("ipc"))
        listener.start()
    """

    def __init__(
        self, on_toggle: Callable[[], None], path: Path | None = None
    ) -> None:
        self._on_toggle = on_toggle
        self.path = path or get_socket_path()
        self._socket: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Binds the socket and starts the accept thread.

        Raises:
            SocketBindFailed: socket could not be created
        """
        if self._running:
            return

        # A previous unclean shutdown may have left the socket file behind
        self._remove_socket_file()

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(self.path))
            sock.listen()
        except OSError as e:
            sock.close()
            raise SocketBindFailed(f"Failed to create IPC socket {self.path}: {e}") from e

        self._socket = sock
        self._running = True
        self._thread = threading.Thread(
            target=self._accept_loop, daemon=True, name="IpcListener"
        )
        self._thread.start()
        logger.info(f"IPC listener started at {self.path}")

    def stop(self) -> None:
        """Closes the socket and removes the socket file."""
        self._running = False
        sock, self._socket = self._socket, None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        self._remove_socket_file()
        logger.info("IPC listener stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def _accept_loop(self) -> None:
        while self._running:
            sock = self._socket
            if sock is None:
                break
            try:
                conn, _ = sock.accept()
            except OSError as e:
                if not self._running:
                    break
                logger.warning(f"IPC connection error: {e}")
                continue
            with conn:
                self._handle_connection(conn)

    def _handle_connection(self, conn: socket.socket) -> None:
        try:
            data = conn.recv(IPC_BUFFER_SIZE)
        except OSError as e:
            logger.warning(f"IPC read error: {e}")
            return

        command = data.decode("utf-8", errors="replace").strip()
        if command != TOGGLE_COMMAND:
            logger.debug(f"IPC: ignoring unknown command {command!r}")
            return

        logger.info("IPC: toggle command received")
        try:
            self._on_toggle()
        except Exception:
            logger.exception("IPC toggle dispatch failed")

    def _remove_socket_file(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug(f"Could not remove socket file {self.path}: {e}")


__all__ = ["IpcListener", "get_socket_path", "send_toggle"]
