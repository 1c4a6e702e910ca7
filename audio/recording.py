"""Microphone capture for Whis Desktop.

Records with sounddevice into memory and encodes FLAC with soundfile.
Long recordings are split into chunks that are transcribed in parallel.
"""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass, field

from config import BLOCKSIZE, CHANNELS, CHUNK_DURATION_SECONDS, SAMPLE_RATE
from utils.errors import DeviceUnavailable
from utils.logging import get_session_id

logger = logging.getLogger("whis.audio")


@dataclass(frozen=True)
class AudioChunk:
    """One encoded slice of a long recording, ordered by index."""

    index: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class AudioResult:
    """Finalized capture: exactly one of `data` or `chunks` is set."""

    data: bytes | None = field(default=None, repr=False)
    chunks: list[AudioChunk] | None = None

    @property
    def is_chunked(self) -> bool:
        return self.chunks is not None


def encode_flac(samples, sample_rate: int = SAMPLE_RATE) -> bytes:
    import soundfile as sf

    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="FLAC")
    return buffer.getvalue()


class AudioRecorder:
    """Reusable microphone recorder.

    Usage:
        recorder = AudioRecorder()
        recorder.start_recording()
        # ... later ...
        result = recorder.stop_and_save()
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        blocksize: int = BLOCKSIZE,
        chunk_seconds: int = CHUNK_DURATION_SECONDS,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.blocksize = blocksize
        self.chunk_seconds = chunk_seconds

        self._recorded_chunks: list = []
        self._stream = None
        self._recording_start: float = 0

    def _audio_callback(self, indata, _frames, _time_info, _status):
        """Collects audio blocks while recording."""
        self._recorded_chunks.append(indata.copy())

    def start_recording(self) -> None:
        """Opens the default input device and starts capturing.

        Raises:
            DeviceUnavailable: no usable input device
        """
        import sounddevice as sd

        self._recorded_chunks = []
        self._recording_start = time.perf_counter()

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                blocksize=self.blocksize,
                dtype="float32",
                callback=self._audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, OSError) as e:
            raise DeviceUnavailable(f"Failed to open audio input: {e}") from e

        self._stream = stream
        logger.info(f"[{get_session_id()}] Recording started")

    def stop_and_save(self) -> AudioResult:
        """Stops capturing and encodes the recording.

        Returns:
            AudioResult with a single FLAC payload, or ordered chunks for
            recordings longer than `chunk_seconds`

        Raises:
            DeviceUnavailable: nothing was captured
        """
        import numpy as np

        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

        recording_duration = time.perf_counter() - self._recording_start
        logger.info(f"[{get_session_id()}] Recording: {recording_duration:.1f}s")

        if not self._recorded_chunks:
            logger.error(f"[{get_session_id()}] No audio captured")
            raise DeviceUnavailable("no audio captured")

        samples = np.concatenate(self._recorded_chunks)
        self._recorded_chunks = []

        frames_per_chunk = self.sample_rate * self.chunk_seconds
        if len(samples) <= frames_per_chunk:
            return AudioResult(data=encode_flac(samples, self.sample_rate))

        chunks = [
            AudioChunk(
                index=index,
                data=encode_flac(samples[start : start + frames_per_chunk], self.sample_rate),
            )
            for index, start in enumerate(range(0, len(samples), frames_per_chunk))
        ]
        logger.info(f"[{get_session_id()}] Split into {len(chunks)} chunks")
        return AudioResult(chunks=chunks)

    @property
    def is_recording(self) -> bool:
        """True while the input stream is active."""
        return self._stream is not None and self._stream.active


__all__ = ["AudioChunk", "AudioRecorder", "AudioResult", "encode_flac"]
