"""Logging setup for Whis Desktop.

Configures file logging with rotation and optional stderr output.
"""

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Logger singleton, modules log through child loggers ("whis.platform.ipc", ...)
logger = logging.getLogger("whis")

# Session id for correlating log lines of one process
_session_id: str = ""

_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _generate_session_id() -> str:
    """Short, readable session id (8 characters)."""
    return uuid.uuid4().hex[:8]


def get_session_id() -> str:
    """Returns the current session id."""
    global _session_id
    if not _session_id:
        _session_id = _generate_session_id()
    return _session_id


def _file_handler(path: Path) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, "%H:%M:%S"))
    return handler


def setup_logging(debug: bool = False) -> None:
    """Configures logging: rotating log file + optional stderr.

    Args:
        debug: If True, also log to stderr
    """
    # Lazy import: config stays free of logging concerns
    from config import FALLBACK_LOG_FILE, LOG_FILE

    get_session_id()

    # Avoid duplicate handlers on repeated calls
    if logger.handlers:
        logger.setLevel(logging.DEBUG if debug else logging.INFO)
        return

    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    handler_added = False
    try:
        logger.addHandler(_file_handler(LOG_FILE))
        handler_added = True
    except PermissionError:
        # Home not writable (e.g. sandbox): fall back to /tmp
        try:
            logger.addHandler(_file_handler(FALLBACK_LOG_FILE))
            handler_added = True
        except OSError:
            pass
    except OSError:
        # Logging must never block app startup
        pass

    if not handler_added or debug:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        stderr_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(stderr_handler)


def log(message: str) -> None:
    """Status message on stderr (keeps stdout clean for the CLI)."""
    print(message, file=sys.stderr)


def error(message: str) -> None:
    """Error message on stderr."""
    print(f"Error: {message}", file=sys.stderr)
