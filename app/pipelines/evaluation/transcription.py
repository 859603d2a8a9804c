"""Transcription stage of the evaluation pipeline.

``TranscriptionStage.transcribe`` never raises for engine trouble: a missing
engine, unreadable audio, a transport error or a timeout all substitute the
deterministic fallback transcript for the audio reference.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.engines import SpeechEngine
from app.services.transcribe import TranscriptionError
from app.telemetry import observe_stage, record_fallback

from .fallbacks import fallback_transcript, speech_metrics
from .types import ResultSource, TranscriptionResult

logger = logging.getLogger("app.services.evaluation_pipeline")
transcript_logger = logging.getLogger("app.logs.transcript")


class TranscriptionStage:
    def __init__(
        self,
        engine: SpeechEngine | None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._engine = engine
        self._timeout = timeout_seconds or settings.pipeline.transcription_timeout_seconds

    async def transcribe(
        self,
        audio_reference: str,
        duration_seconds: float | None = None,
    ) -> TranscriptionResult:
        started = time.perf_counter()
        try:
            if self._engine is None:
                return self._fallback(audio_reference, duration_seconds, "unavailable")

            try:
                text = await asyncio.wait_for(
                    self._call_engine(audio_reference),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Transcription timed out after %ss audio=%s", self._timeout, audio_reference
                )
                return self._fallback(audio_reference, duration_seconds, "timeout")
            except (TranscriptionError, OSError) as exc:
                logger.warning("Transcription engine failed audio=%s: %s", audio_reference, exc)
                return self._fallback(audio_reference, duration_seconds, "engine_error")

            transcript_logger.info("engine | audio=%s | text=%s", audio_reference, text)
            return TranscriptionResult(
                text=text,
                metrics=speech_metrics(text, duration_seconds),
                source=ResultSource.ENGINE,
            )
        finally:
            observe_stage("transcription", time.perf_counter() - started)

    async def _call_engine(self, audio_reference: str) -> str:
        audio_bytes = await run_in_threadpool(Path(audio_reference).read_bytes)
        result = await self._engine.transcribe_audio(audio_bytes)
        return (result.transcript or "").strip()

    @staticmethod
    def _fallback(
        audio_reference: str,
        duration_seconds: float | None,
        reason: str,
    ) -> TranscriptionResult:
        record_fallback("transcription", reason)
        text = fallback_transcript(audio_reference)
        transcript_logger.info("fallback | audio=%s | reason=%s", audio_reference, reason)
        return TranscriptionResult(
            text=text,
            metrics=speech_metrics(text, duration_seconds),
            source=ResultSource.FALLBACK,
        )


__all__ = ["TranscriptionStage"]
