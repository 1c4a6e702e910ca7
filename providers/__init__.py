"""Transcription providers for Whis Desktop.

Usage:
    from providers import get_transcriber

    transcriber = get_transcriber()
    text = transcriber.transcribe(api_key, flac_bytes)
"""

from config import DEFAULT_TRANSCRIBE_MODEL

from .openai import OpenAITranscriber, parallel_transcribe, transcribe_audio


def get_transcriber(mode: str = "openai", model: str | None = None) -> OpenAITranscriber:
    """Factory for transcription providers.

    Raises:
        ValueError: unknown provider
    """
    if mode == "openai":
        return OpenAITranscriber(model or DEFAULT_TRANSCRIBE_MODEL)
    raise ValueError(f"Unknown provider: {mode}")


__all__ = [
    "OpenAITranscriber",
    "get_transcriber",
    "parallel_transcribe",
    "transcribe_audio",
]
