"""Tests for providers/openai.py – OpenAI transcription (client mocked)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from audio.recording import AudioChunk
from providers import get_transcriber
from providers.openai import OpenAITranscriber, parallel_transcribe, transcribe_audio
from utils.errors import TranscriptionFailed


class TestTranscribeAudio:
    def test_sends_flac_upload(self):
        with patch("openai.OpenAI") as mock_client_cls:
            client = mock_client_cls.return_value
            client.audio.transcriptions.create.return_value = " Hello world \n"
            text = transcribe_audio("sk-test", b"flac")

        assert text == "Hello world"
        mock_client_cls.assert_called_once_with(api_key="sk-test")
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("audio.flac", b"flac", "audio/flac")
        assert kwargs["response_format"] == "text"

    def test_api_error(self):
        with patch("openai.OpenAI") as mock_client_cls:
            mock_client_cls.return_value.audio.transcriptions.create.side_effect = (
                openai.OpenAIError("invalid api key")
            )
            with pytest.raises(TranscriptionFailed, match="invalid api key"):
                transcribe_audio("sk-test", b"flac")


class TestParallelTranscribe:
    def _client(self, responses):
        client = MagicMock()
        client.close = AsyncMock()

        async def create(model, file, response_format):
            await asyncio.sleep(responses[file[1]][1])
            return responses[file[1]][0]

        client.audio.transcriptions.create = create
        return client

    def test_results_ordered_by_index(self):
        # Later chunks finish first
        responses = {b"a": ("first", 0.03), b"b": ("second", 0.02), b"c": ("third", 0.0)}
        chunks = [AudioChunk(0, b"a"), AudioChunk(1, b"b"), AudioChunk(2, b"c")]
        with patch("openai.AsyncOpenAI", return_value=self._client(responses)):
            text = asyncio.run(parallel_transcribe("sk-test", chunks))
        assert text == "first second third"

    def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def create(model, file, response_format):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return "x"

        client = MagicMock()
        client.close = AsyncMock()
        client.audio.transcriptions.create = create
        chunks = [AudioChunk(i, bytes([i])) for i in range(8)]
        with patch("openai.AsyncOpenAI", return_value=client):
            asyncio.run(parallel_transcribe("sk-test", chunks, max_concurrent=2))
        assert peak == 2

    def test_chunk_failure(self):
        async def create(model, file, response_format):
            raise openai.OpenAIError("timeout")

        client = MagicMock()
        client.close = AsyncMock()
        client.audio.transcriptions.create = create
        with patch("openai.AsyncOpenAI", return_value=client):
            with pytest.raises(TranscriptionFailed):
                asyncio.run(parallel_transcribe("sk-test", [AudioChunk(0, b"a")]))
        client.close.assert_awaited_once()


class TestTranscriber:
    def test_factory(self):
        transcriber = get_transcriber()
        assert isinstance(transcriber, OpenAITranscriber)
        assert transcriber.model == "whisper-1"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_transcriber("deepgram")

    def test_delegates(self):
        with patch("providers.openai.transcribe_audio", return_value="hi") as mock_fn:
            assert OpenAITranscriber("gpt-4o-transcribe").transcribe("sk", b"x") == "hi"
        mock_fn.assert_called_once_with("sk", b"x", model="gpt-4o-transcribe")
