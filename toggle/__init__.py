"""Toggle dispatch and the recording state machine.

Usage:
    from toggle import RecordingController, ToggleDispatcher

    dispatcher = ToggleDispatcher(RecordingController(state))
    dispatcher.start()
    dispatcher.request_toggle("tray")
"""

from .controller import RecordingController
from .dispatcher import ToggleDispatcher

__all__ = ["RecordingController", "ToggleDispatcher"]
