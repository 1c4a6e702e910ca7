"""OpenAI Whisper API provider.

Single recordings go through the blocking client (the caller runs it in an
executor); chunked recordings fan out over AsyncOpenAI.
"""

from __future__ import annotations

import asyncio
import logging

from audio.recording import AudioChunk
from config import DEFAULT_TRANSCRIBE_MODEL, MAX_CONCURRENT_REQUESTS
from utils.errors import TranscriptionFailed
from utils.timing import log_preview, timed_operation

logger = logging.getLogger("whis.providers.openai")

UPLOAD_FILENAME = "audio.flac"
UPLOAD_CONTENT_TYPE = "audio/flac"


def _upload(data: bytes) -> tuple[str, bytes, str]:
    return (UPLOAD_FILENAME, data, UPLOAD_CONTENT_TYPE)


def _response_text(response) -> str:
    # format="text" returns a plain string, anything else an object
    if isinstance(response, str):
        return response.strip()
    return str(getattr(response, "text", response)).strip()


def transcribe_audio(
    api_key: str, data: bytes, model: str = DEFAULT_TRANSCRIBE_MODEL
) -> str:
    """Transcribes one FLAC payload (blocking).

    Raises:
        TranscriptionFailed: API or network error
    """
    from openai import OpenAI, OpenAIError

    logger.info(f"OpenAI: {model}, {len(data) // 1024}KB")
    try:
        client = OpenAI(api_key=api_key)
        with timed_operation("OpenAI transcription", logger):
            response = client.audio.transcriptions.create(
                model=model, file=_upload(data), response_format="text"
            )
    except OpenAIError as e:
        raise TranscriptionFailed(f"OpenAI transcription failed: {e}") from e

    text = _response_text(response)
    logger.debug(f"Result: {log_preview(text, 100)}")
    return text


async def parallel_transcribe(
    api_key: str,
    chunks: list[AudioChunk],
    max_concurrent: int | None = None,
    model: str = DEFAULT_TRANSCRIBE_MODEL,
) -> str:
    """Transcribes chunks concurrently and joins them in index order.

    Args:
        api_key: OpenAI API key
        chunks: Ordered audio chunks
        max_concurrent: Upper bound for in-flight requests (default 3)
        model: Transcription model

    Raises:
        TranscriptionFailed: any chunk failed
    """
    from openai import AsyncOpenAI, OpenAIError

    semaphore = asyncio.Semaphore(max_concurrent or MAX_CONCURRENT_REQUESTS)
    client = AsyncOpenAI(api_key=api_key)

    async def transcribe_chunk(chunk: AudioChunk) -> tuple[int, str]:
        async with semaphore:
            logger.debug(f"Chunk {chunk.index}: {len(chunk.data) // 1024}KB")
            response = await client.audio.transcriptions.create(
                model=model, file=_upload(chunk.data), response_format="text"
            )
            return chunk.index, _response_text(response)

    logger.info(f"OpenAI: {model}, {len(chunks)} chunks")
    try:
        with timed_operation(f"OpenAI transcription of {len(chunks)} chunks", logger):
            results = await asyncio.gather(*(transcribe_chunk(c) for c in chunks))
    except OpenAIError as e:
        raise TranscriptionFailed(f"OpenAI transcription failed: {e}") from e
    finally:
        await client.close()

    text = " ".join(part for _, part in sorted(results) if part)
    logger.debug(f"Result: {log_preview(text, 100)}")
    return text


class OpenAITranscriber:
    """Transcriber used by the recording controller."""

    name = "openai"

    def __init__(self, model: str = DEFAULT_TRANSCRIBE_MODEL) -> None:
        self.model = model

    def transcribe(self, api_key: str, data: bytes) -> str:
        return transcribe_audio(api_key, data, model=self.model)

    async def transcribe_chunks(self, api_key: str, chunks: list[AudioChunk]) -> str:
        return await parallel_transcribe(api_key, chunks, model=self.model)


__all__ = ["OpenAITranscriber", "parallel_transcribe", "transcribe_audio"]
