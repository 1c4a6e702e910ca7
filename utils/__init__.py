"""Utility modules for Whis Desktop.

Shared helpers for logging and timing.

Usage:
    from utils import setup_logging, log, error, timed_operation

    setup_logging(debug=True)
    with timed_operation("OpenAI transcription"):
        text = transcribe()
"""

# NOTE:
# Keep this package-level re-export module small. Modules imported here
# must not import `config` at import time (utils.logging defers it).

from .logging import setup_logging, log, error, get_session_id
from .timing import timed_operation, format_duration, log_preview

__all__ = [
    "setup_logging",
    "log",
    "error",
    "get_session_id",
    "timed_operation",
    "log_preview",
    "format_duration",
]
