"""Central configuration for Whis Desktop.

Shared constants for shortcuts, IPC, audio and transcription.
Avoids duplication between modules.
"""

from pathlib import Path

# =============================================================================
# Shortcut configuration
# =============================================================================

APP_ID = "ink.whis.Whis"
SHORTCUT_ID = "toggle-recording"
SHORTCUT_DESCRIPTION = "Toggle voice recording"
DEFAULT_SHORTCUT = "Ctrl+Shift+R"

# =============================================================================
# XDG Desktop Portal (GlobalShortcuts)
# =============================================================================

PORTAL_BUS_NAME = "org.freedesktop.portal.Desktop"
PORTAL_OBJECT_PATH = "/org/freedesktop/portal/desktop"
PORTAL_SHORTCUTS_INTERFACE = "org.freedesktop.portal.GlobalShortcuts"
PORTAL_REQUEST_INTERFACE = "org.freedesktop.portal.Request"

# ConfigureShortcuts was added in version 2 (GNOME 48+)
PORTAL_CONFIGURE_MIN_VERSION = 2

# GNOME keeps portal shortcut bindings in dconf
DCONF_SHORTCUTS_PATH = "/org/gnome/settings-daemon/global-shortcuts/"

# Timeout for busctl/dconf probes (seconds)
PROBE_TIMEOUT = 2

# =============================================================================
# IPC (whis-desktop --toggle)
# =============================================================================

SOCKET_FILENAME = "whis-desktop.sock"
SOCKET_FALLBACK_DIR = Path("/tmp")
IPC_BUFFER_SIZE = 64
TOGGLE_COMMAND = "toggle"

FLATPAK_INFO_FILE = Path("/.flatpak-info")

# =============================================================================
# Audio
# =============================================================================

# Whisper expects 16kHz mono
SAMPLE_RATE = 16000
CHANNELS = 1
BLOCKSIZE = 1024

# Recordings longer than this are split and transcribed in parallel
CHUNK_DURATION_SECONDS = 300

# =============================================================================
# Transcription
# =============================================================================

DEFAULT_TRANSCRIBE_MODEL = "whisper-1"
MAX_CONCURRENT_REQUESTS = 3
API_KEY_ENV = "OPENAI_API_KEY"
API_KEY_PREFIX = "sk-"

# =============================================================================
# Local paths
# =============================================================================

USER_CONFIG_DIR = Path.home() / ".config" / "whis"
SETTINGS_FILE = USER_CONFIG_DIR / "settings.json"

LOG_FILE = USER_CONFIG_DIR / "logs" / "whis-desktop.log"
FALLBACK_LOG_FILE = Path("/tmp/whis-desktop.log")


__all__ = [
    # Shortcuts
    "APP_ID",
    "SHORTCUT_ID",
    "SHORTCUT_DESCRIPTION",
    "DEFAULT_SHORTCUT",
    # Portal
    "PORTAL_BUS_NAME",
    "PORTAL_OBJECT_PATH",
    "PORTAL_SHORTCUTS_INTERFACE",
    "PORTAL_REQUEST_INTERFACE",
    "PORTAL_CONFIGURE_MIN_VERSION",
    "DCONF_SHORTCUTS_PATH",
    "PROBE_TIMEOUT",
    # IPC
    "SOCKET_FILENAME",
    "SOCKET_FALLBACK_DIR",
    "IPC_BUFFER_SIZE",
    "TOGGLE_COMMAND",
    "FLATPAK_INFO_FILE",
    # Audio
    "SAMPLE_RATE",
    "CHANNELS",
    "BLOCKSIZE",
    "CHUNK_DURATION_SECONDS",
    # Transcription
    "DEFAULT_TRANSCRIBE_MODEL",
    "MAX_CONCURRENT_REQUESTS",
    "API_KEY_ENV",
    "API_KEY_PREFIX",
    # Paths
    "USER_CONFIG_DIR",
    "SETTINGS_FILE",
    "LOG_FILE",
    "FALLBACK_LOG_FILE",
]
