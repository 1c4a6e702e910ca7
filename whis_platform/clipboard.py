"""Clipboard output for transcripts.

Flatpak on Wayland: pyperclip cannot reach the clipboard without window
focus, so the host's wl-copy is called through flatpak-spawn.
Everywhere else: pyperclip.
"""

import logging
import subprocess

import pyperclip

from utils.errors import ClipboardError
from whis_platform.environment import is_flatpak

logger = logging.getLogger("whis.platform.clipboard")


def _copy_via_flatpak_spawn(text: str) -> None:
    try:
        process = subprocess.run(
            ["flatpak-spawn", "--host", "wl-copy"],
            input=text.encode("utf-8"),
            capture_output=True,
            timeout=2,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise ClipboardError(f"flatpak-spawn wl-copy failed: {e}") from e
    if process.returncode != 0:
        raise ClipboardError(
            f"wl-copy exited with status {process.returncode}: "
            f"{process.stderr.decode(errors='replace').strip()}"
        )


def copy_to_clipboard(text: str) -> None:
    """Copies text to the clipboard.

    Raises:
        ClipboardError: no clipboard mechanism worked
    """
    if is_flatpak():
        _copy_via_flatpak_spawn(text)
    else:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Failed to copy text to clipboard: {e}") from e
    logger.debug(f"Clipboard: {len(text)} characters copied")


__all__ = ["copy_to_clipboard"]
