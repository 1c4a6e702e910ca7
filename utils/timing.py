"""Latency logging for transcription calls.

`timed_operation` wraps one provider request (or one fan-out of chunk
requests) and logs how long it took, or how long it ran before failing.
`log_preview` keeps transcripts short and single-line in the log file.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from .logging import get_session_id

_default_logger = logging.getLogger("whis.providers")


def format_duration(milliseconds: float) -> str:
    """`850ms` below one second, `1.25s` above."""
    if milliseconds >= 1000:
        return f"{milliseconds / 1000:.2f}s"
    return f"{milliseconds:.0f}ms"


def log_preview(text: str, max_length: int = 50) -> str:
    """Single-line excerpt of a transcript, with its length when cut."""
    flat = " ".join(text.split())
    if len(flat) <= max_length:
        return flat
    return f"{flat[:max_length]}... ({len(flat)} chars)"


@contextmanager
def timed_operation(
    name: str,
    logger: logging.Logger | None = None,
    *,
    with_session: bool = True,
) -> Iterator[None]:
    """Logs the wall time of the wrapped block.

    Success is logged at INFO, a raised exception at WARNING before it
    propagates.

    Usage:
        with timed_operation("OpenAI transcription", logger):
            response = client.audio.transcriptions.create(...)
    """
    op_logger = logger or _default_logger
    prefix = f"[{get_session_id()}] " if with_session else ""
    start = time.perf_counter()
    try:
        yield
    except BaseException:
        elapsed = format_duration((time.perf_counter() - start) * 1000)
        op_logger.warning(f"{prefix}{name} failed after {elapsed}")
        raise
    elapsed = format_duration((time.perf_counter() - start) * 1000)
    op_logger.info(f"{prefix}{name}: {elapsed}")


__all__ = ["format_duration", "log_preview", "timed_operation"]
