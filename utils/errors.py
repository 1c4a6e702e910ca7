"""Exception types for Whis Desktop.

Every failure either steps down to a less capable shortcut backend or
returns the recording state machine to idle. Nothing here is retried.
"""


class WhisError(Exception):
    """Base class for all Whis Desktop errors."""


# -----------------------------------------------------------------------------
# Shortcut backends
# -----------------------------------------------------------------------------


class BackendUnavailable(WhisError):
    """Shortcut backend cannot be used; caller steps down to the next one."""


class InvalidShortcut(WhisError, ValueError):
    """Shortcut string could not be parsed."""


class ProtocolBindFailed(WhisError):
    """Transport-level failure talking to the GlobalShortcuts portal."""


class ProtocolBindRejected(WhisError):
    """Portal answered the request with a non-success response code."""


class UnsupportedProtocolVersion(WhisError):
    """Portal is too old for the requested operation."""

    def __init__(self, version: int, required: int) -> None:
        self.version = version
        self.required = required
        super().__init__(
            f"ConfigureShortcuts requires Portal version {required}+, "
            f"but version {version} is available."
        )


# -----------------------------------------------------------------------------
# Recording / transcription
# -----------------------------------------------------------------------------


class DeviceUnavailable(WhisError):
    """Audio capture could not be started or produced no data."""


class MissingCredential(WhisError):
    """No API key in settings or environment."""


class NoActiveRecording(WhisError):
    """Stop requested but no audio handle was stored."""


class TranscriptionFailed(WhisError):
    """Transcription API call failed."""


class ClipboardError(WhisError):
    """Transcript could not be written to the clipboard."""


# -----------------------------------------------------------------------------
# IPC
# -----------------------------------------------------------------------------


class IpcConnectFailed(WhisError):
    """No running instance is listening on the IPC socket."""


class SocketBindFailed(WhisError):
    """IPC socket could not be bound; --toggle is unavailable for this run."""


__all__ = [
    "WhisError",
    "BackendUnavailable",
    "InvalidShortcut",
    "ProtocolBindFailed",
    "ProtocolBindRejected",
    "UnsupportedProtocolVersion",
    "DeviceUnavailable",
    "MissingCredential",
    "NoActiveRecording",
    "TranscriptionFailed",
    "ClipboardError",
    "IpcConnectFailed",
    "SocketBindFailed",
]
