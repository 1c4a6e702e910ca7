"""Audio module for Whis Desktop.

Usage:
    from audio import AudioRecorder

    recorder = AudioRecorder()
    recorder.start_recording()
    # ... later ...
    result = recorder.stop_and_save()
"""

from .recording import AudioChunk, AudioRecorder, AudioResult, encode_flac

__all__ = ["AudioChunk", "AudioRecorder", "AudioResult", "encode_flac"]
