"""System tray icon for Whis Desktop (pystray + Pillow).

Reflects the recording state (icon color, tooltip, menu label) and
forwards clicks to the toggle dispatcher. pystray calls menu handlers on
its own thread; handlers only queue work.
"""

from __future__ import annotations

import logging
from typing import Callable

from utils.state import AppState, RecordingState

logger = logging.getLogger("whis.ui.tray")

TRAY_NAME = "whis-tray"
ICON_SIZE = 64

COLORS = {
    RecordingState.IDLE: (255, 255, 255),
    RecordingState.RECORDING: (255, 59, 48),
    RecordingState.PROCESSING: (255, 149, 0),
}

MENU_LABELS = {
    RecordingState.IDLE: "Start Recording",
    RecordingState.RECORDING: "Stop Recording",
    RecordingState.PROCESSING: "Processing...",
}

TOOLTIPS = {
    RecordingState.IDLE: "Whis - Click to record",
    RecordingState.RECORDING: "Whis - Recording... Click to stop",
    RecordingState.PROCESSING: "Whis - Processing...",
}

_icon_cache: dict = {}


def draw_microphone_icon(color: tuple[int, int, int], size: int = ICON_SIZE):
    """Microphone glyph on a transparent background, cached per color."""
    key = (color, size)
    if key in _icon_cache:
        return _icon_cache[key]

    from PIL import Image, ImageDraw

    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)

    center_x = size // 2
    mic_width = size * 5 // 16
    mic_top = size // 8
    mic_bottom = mic_top + size * 7 // 16
    mic_left = center_x - mic_width // 2
    mic_right = center_x + mic_width // 2
    line = max(2, size // 16)

    # Capsule
    draw.rounded_rectangle(
        [mic_left, mic_top, mic_right, mic_bottom], radius=mic_width // 2, fill=color
    )
    # Holder arc
    arc_margin = size // 16
    draw.arc(
        [
            mic_left - arc_margin,
            mic_top + mic_width // 2,
            mic_right + arc_margin,
            mic_bottom + arc_margin * 2,
        ],
        start=0,
        end=180,
        fill=color,
        width=line,
    )
    # Stand
    stand_top = mic_bottom + arc_margin * 2
    stand_bottom = size - size // 8
    draw.line([center_x, stand_top, center_x, stand_bottom], fill=color, width=line)
    draw.line(
        [center_x - mic_width // 2, stand_bottom, center_x + mic_width // 2, stand_bottom],
        fill=color,
        width=line,
    )

    _icon_cache[key] = image
    return image


class TrayController:
    """Tray icon bound to the shared AppState.

    Usage:
        tray = TrayController(state, on_toggle=dispatcher.trigger("tray"), on_quit=app.quit)
        if tray.setup():
            tray.run()  # blocks until quit
    """

    def __init__(
        self,
        state: AppState,
        on_toggle: Callable[[], None],
        on_quit: Callable[[], None],
        on_configure: Callable[[], None] | None = None,
        shortcut_label: Callable[[], str | None] | None = None,
    ) -> None:
        self.state = state
        self._on_toggle = on_toggle
        self._on_quit = on_quit
        self._on_configure = on_configure
        self._shortcut_label = shortcut_label
        self._icon = None

    def setup(self) -> bool:
        """Creates the pystray icon and registers the UI refresh hook.

        Returns:
            False if no tray is available (pystray/Pillow missing)
        """
        try:
            import pystray
        except ImportError as e:
            logger.warning(f"Tray icon disabled: {e}")
            return False

        items = [
            pystray.MenuItem(
                lambda _item: MENU_LABELS[self.state.recording_state],
                self._handle_toggle,
                default=True,
                enabled=lambda _item: self.state.recording_state
                is not RecordingState.PROCESSING,
            ),
            pystray.Menu.SEPARATOR,
        ]
        if self._shortcut_label is not None:
            items.append(
                pystray.MenuItem(
                    lambda _item: f"Shortcut: {self._shortcut_label() or 'not set'}",
                    None,
                    enabled=False,
                )
            )
        if self._on_configure is not None:
            items.append(
                pystray.MenuItem("Configure Shortcut...", self._handle_configure)
            )
        items.extend([pystray.Menu.SEPARATOR, pystray.MenuItem("Quit Whis", self._handle_quit)])

        current = self.state.recording_state
        self._icon = pystray.Icon(
            TRAY_NAME,
            draw_microphone_icon(COLORS[current]),
            TOOLTIPS[current],
            pystray.Menu(*items),
        )
        self.state.set_ui_refresh(self.refresh)
        return True

    def run(self) -> None:
        if self._icon is None:
            raise RuntimeError("TrayController.setup() was not called")
        self._icon.run()

    def stop(self) -> None:
        self.state.set_ui_refresh(None)
        if self._icon is not None:
            self._icon.stop()

    def refresh(self, new_state: RecordingState) -> None:
        """UI refresh hook: icon, tooltip and menu label for `new_state`."""
        icon = self._icon
        if icon is None:
            return
        icon.icon = draw_microphone_icon(COLORS[new_state])
        icon.title = TOOLTIPS[new_state]
        icon.update_menu()

    def _handle_toggle(self, _icon=None, _item=None) -> None:
        self._on_toggle()

    def _handle_configure(self, _icon=None, _item=None) -> None:
        self._on_configure()

    def _handle_quit(self, _icon=None, _item=None) -> None:
        logger.info("Quit requested from tray")
        self._on_quit()


__all__ = ["TrayController", "draw_microphone_icon", "COLORS", "MENU_LABELS", "TOOLTIPS"]
