"""Desktop integration for Whis.

Shortcut backends, IPC and clipboard for Linux desktops.

Usage:
    from whis_platform import detect_backend, ShortcutManager

    env, kind = detect_backend()
    manager = ShortcutManager(state, env, kind)
    manager.setup(dispatcher)
"""

from .environment import (
    BackendInfo,
    BackendKind,
    SessionEnvironment,
    SessionType,
    build_backend_info,
    classify,
    detect_backend,
    get_toggle_command,
    select_backend,
)
from .ipc import IpcListener, get_socket_path, send_toggle
from .shortcuts import ShortcutManager

__all__ = [
    "BackendInfo",
    "BackendKind",
    "SessionEnvironment",
    "SessionType",
    "build_backend_info",
    "classify",
    "detect_backend",
    "get_toggle_command",
    "select_backend",
    "IpcListener",
    "get_socket_path",
    "send_toggle",
    "ShortcutManager",
]
