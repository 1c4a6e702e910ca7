"""Desktop session detection and shortcut backend selection.

X11 sessions get a native pynput hotkey. Wayland sessions use the
XDG GlobalShortcuts portal when the desktop offers it (GNOME 48+, KDE,
Hyprland) and otherwise fall back to `whis-desktop --toggle`, which the
user binds in the compositor.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from config import (
    APP_ID,
    FLATPAK_INFO_FILE,
    PORTAL_BUS_NAME,
    PORTAL_OBJECT_PATH,
    PORTAL_SHORTCUTS_INTERFACE,
    PROBE_TIMEOUT,
)

logger = logging.getLogger("whis.platform.environment")


class SessionType(Enum):
    X11 = "x11"
    WAYLAND = "wayland"
    OTHER = "other"


class BackendKind(Enum):
    NATIVE_HOTKEY = "NativeHotkey"
    PORTAL_PROTOCOL = "PortalProtocol"
    CLI_FALLBACK = "CliFallback"


@dataclass(frozen=True)
class SessionEnvironment:
    session_type: SessionType
    desktop_name: str
    wayland_display: bool = False

    @property
    def is_wayland(self) -> bool:
        return self.session_type is SessionType.WAYLAND or self.wayland_display


@dataclass(frozen=True)
class BackendInfo:
    """Read-only backend description for the settings UI."""

    kind: BackendKind
    requires_restart_on_change: bool
    desktop_name: str
    protocol_version: int

    def to_dict(self) -> dict:
        return {
            "backend": self.kind.value,
            "requires_restart": self.requires_restart_on_change,
            "compositor": self.desktop_name,
            "portal_version": self.protocol_version,
        }


# =============================================================================
# Environment
# =============================================================================


def classify(environ: Mapping[str, str] | None = None) -> SessionEnvironment:
    """Classifies the running desktop session. Never fails."""
    environ = os.environ if environ is None else environ

    raw_type = environ.get("XDG_SESSION_TYPE", "").strip().lower()
    try:
        session_type = SessionType(raw_type)
    except ValueError:
        logger.debug(f"Session type indeterminate ({raw_type!r}), treating as other")
        session_type = SessionType.OTHER

    desktop_name = (
        environ.get("XDG_CURRENT_DESKTOP")
        or environ.get("DESKTOP_SESSION")
        or "Unknown"
    )
    return SessionEnvironment(
        session_type=session_type,
        desktop_name=desktop_name,
        wayland_display=bool(environ.get("WAYLAND_DISPLAY")),
    )


def _busctl(*args: str) -> str | None:
    """Runs `busctl --user ...`, returns stdout or None on any failure."""
    try:
        result = subprocess.run(
            ["busctl", "--user", *args],
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"busctl {args[0]} failed: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def check_portal_available() -> bool:
    """True if the desktop portal exposes the GlobalShortcuts interface."""
    output = _busctl("introspect", PORTAL_BUS_NAME, PORTAL_OBJECT_PATH)
    return output is not None and "GlobalShortcuts" in output


def get_portal_version() -> int:
    """GlobalShortcuts portal version, 0 if unavailable."""
    output = _busctl(
        "get-property",
        PORTAL_BUS_NAME,
        PORTAL_OBJECT_PATH,
        PORTAL_SHORTCUTS_INTERFACE,
        "version",
    )
    if not output:
        return 0
    # Output format: "u 1" or "u 2"
    parts = output.split()
    if not parts:
        return 0
    try:
        return int(parts[-1])
    except ValueError:
        return 0


# =============================================================================
# Backend selection
# =============================================================================


def select_backend(env: SessionEnvironment, portal_available: bool) -> BackendKind:
    """Maps a classified session to exactly one backend kind."""
    if env.is_wayland:
        if portal_available:
            return BackendKind.PORTAL_PROTOCOL
        return BackendKind.CLI_FALLBACK
    return BackendKind.NATIVE_HOTKEY


def detect_backend(
    environ: Mapping[str, str] | None = None,
    probe: Callable[[], bool] = check_portal_available,
) -> tuple[SessionEnvironment, BackendKind]:
    """Classifies the session and picks a backend.

    The portal is only probed on Wayland.
    """
    env = classify(environ)
    portal_available = probe() if env.is_wayland else False
    kind = select_backend(env, portal_available)
    logger.info(
        f"Detected environment: {env.desktop_name} "
        f"({env.session_type.value}, backend: {kind.value})"
    )
    return env, kind


def build_backend_info(
    env: SessionEnvironment,
    kind: BackendKind,
    version_probe: Callable[[], int] = get_portal_version,
) -> BackendInfo:
    version = version_probe() if kind is BackendKind.PORTAL_PROTOCOL else 0
    return BackendInfo(
        kind=kind,
        requires_restart_on_change=kind is not BackendKind.NATIVE_HOTKEY,
        desktop_name=env.desktop_name,
        protocol_version=version,
    )


# =============================================================================
# CLI fallback helpers
# =============================================================================


def is_flatpak() -> bool:
    return FLATPAK_INFO_FILE.exists()


def get_toggle_command() -> str:
    """Command the user binds in the compositor for the CLI fallback."""
    if is_flatpak():
        return f"flatpak run {APP_ID} --toggle"
    return "whis-desktop --toggle"


def cli_instructions(desktop_name: str, shortcut: str) -> list[str]:
    """Compositor-specific setup hints when no global shortcut is available."""
    command = get_toggle_command()
    lines = [
        "=== Global Shortcuts Not Available ===",
        f"Compositor: {desktop_name}",
        "",
        "To use a keyboard shortcut, configure your compositor:",
        "",
    ]
    desktop = desktop_name.lower()
    if "gnome" in desktop:
        lines += [
            "GNOME: Settings → Keyboard → Custom Shortcuts",
            "  Name: Whis Toggle Recording",
            f"  Command: {command}",
            f"  Shortcut: {shortcut}",
        ]
    elif "kde" in desktop or "plasma" in desktop:
        lines += [
            "KDE: System Settings → Shortcuts → Custom Shortcuts",
            f"  Command: {command}",
        ]
    elif "sway" in desktop:
        lines += [
            "Sway: Add to ~/.config/sway/config:",
            f"  bindsym {shortcut.lower()} exec {command}",
        ]
    elif "hyprland" in desktop:
        *mods, key = shortcut.split("+")
        lines += [
            "Hyprland: Add to ~/.config/hypr/hyprland.conf:",
            f"  bind = {' '.join(m.upper() for m in mods)}, {key}, exec, {command}",
        ]
    else:
        lines.append(f"Configure your compositor to run: {command}")
    return lines


__all__ = [
    "SessionType",
    "BackendKind",
    "SessionEnvironment",
    "BackendInfo",
    "classify",
    "check_portal_available",
    "get_portal_version",
    "select_backend",
    "detect_backend",
    "build_backend_info",
    "is_flatpak",
    "get_toggle_command",
    "cli_instructions",
]
