"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent
from fastapi.concurrency import run_in_threadpool

from app.config.settings import TranscribeConfig, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineTranscript:
    """Raw transcript returned by the speech engine."""

    transcript: str
    language_code: str | None = None


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully."""


class TranscribeService:
    """High-level facade for streaming one recorded file to Amazon Transcribe."""

    def __init__(self, config: TranscribeConfig | None = None) -> None:
        self._config = config or settings.transcribe
        self._language_code = self._config.language_code
        self._media_sample_rate_hz = self._config.sample_rate_hz
        self._media_encoding = self._config.media_encoding

        # Ensure credentials are available to the SDK
        if settings.aws.access_key:
            os.environ["AWS_ACCESS_KEY_ID"] = settings.aws.access_key
        if settings.aws.secret_key:
            os.environ["AWS_SECRET_ACCESS_KEY"] = settings.aws.secret_key

        self._client = TranscribeStreamingClient(region=self._config.region)

    async def transcribe_audio(self, audio_bytes: bytes) -> EngineTranscript:
        """Stream audio to Transcribe and return the full transcript."""

        if not audio_bytes:
            raise TranscriptionError("The submitted audio file is empty.")

        try:
            pcm_data = await self._convert_to_pcm(audio_bytes)
        except TranscriptionError:
            raise
        except Exception as exc:
            raise TranscriptionError(f"Audio conversion failed: {exc}") from exc

        try:
            stream = await self._client.start_stream_transcription(
                language_code=self._language_code,
                media_sample_rate_hz=self._media_sample_rate_hz,
                media_encoding=self._media_encoding,
            )
        except Exception as exc:
            raise TranscriptionError(f"Could not open transcription stream: {exc}") from exc

        handler = _CollectingTranscriptHandler(stream.output_stream)

        async def write_chunks():
            # 16-bit mono PCM: sample_rate * 2 bytes per second of audio.
            chunk_size = 8192
            bytes_per_sec = self._media_sample_rate_hz * 2
            sleep_time = chunk_size / bytes_per_sec

            logger.info(
                "Starting stream. Total bytes: %s. Chunk size: %s. Sleep: %.4fs",
                len(pcm_data),
                chunk_size,
                sleep_time,
            )

            for i in range(0, len(pcm_data), chunk_size):
                chunk = pcm_data[i : i + chunk_size]
                await stream.input_stream.send_audio_event(audio_chunk=chunk)
                # Transcribe rejects audio pushed much faster than real time.
                await asyncio.sleep(sleep_time)

            await stream.input_stream.end_stream()

        try:
            await asyncio.gather(write_chunks(), handler.handle_events())
        except Exception as exc:
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        logger.info("Transcription complete. Length: %s", len(handler.transcript))
        return EngineTranscript(
            transcript=handler.transcript.strip(),
            language_code=self._language_code,
        )

    async def _convert_to_pcm(self, audio_bytes: bytes) -> bytes:
        """Convert input audio to raw PCM s16le via ffmpeg using a thread."""
        return await run_in_threadpool(self._convert_to_pcm_sync, audio_bytes)

    def _convert_to_pcm_sync(self, audio_bytes: bytes) -> bytes:
        """Synchronous ffmpeg conversion using a temporary file to support seeking."""

        with tempfile.NamedTemporaryFile(delete=False, suffix=".tmp") as tmp_file:
            tmp_file.write(audio_bytes)
            tmp_path = tmp_file.name

        try:
            process = subprocess.run(
                [
                    "ffmpeg",
                    "-y",
                    "-i", tmp_path,
                    "-f", "s16le",
                    "-ac", "1",
                    "-ar", str(self._media_sample_rate_hz),
                    "pipe:1",
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            if not process.stdout:
                logger.warning(
                    "ffmpeg produced empty output. stderr: %s",
                    process.stderr.decode("utf-8", errors="replace"),
                )
            return process.stdout
        except FileNotFoundError as exc:
            raise TranscriptionError("ffmpeg is not installed.") from exc
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg)
            raise TranscriptionError(f"ffmpeg failed to convert audio to PCM: {error_msg}") from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


class _CollectingTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self.transcript = ""

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        results = transcript_event.transcript.results
        for result in results:
            if not result.is_partial:
                for alt in result.alternatives:
                    self.transcript += alt.transcript + " "


__all__ = ["EngineTranscript", "TranscribeService", "TranscriptionError"]
