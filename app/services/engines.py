"""Startup-time assembly of the external engine clients.

Both engines are optional. :func:`build_engines` returns an
:class:`EngineHandles` whose slots hold either a live client or ``None``
(unavailable); the pipeline stages branch on that instead of probing a
lazily created global.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from app.config.settings import Settings, settings as default_settings
from app.services.llm_client import BedrockLlmClient
from app.services.transcribe import EngineTranscript, TranscribeService

logger = logging.getLogger(__name__)


class SpeechEngine(Protocol):
    async def transcribe_audio(self, audio_bytes: bytes) -> EngineTranscript: ...


class EvaluationEngine(Protocol):
    async def invoke(self, *, system_prompt: str, user_prompt: str, **kwargs) -> str | None: ...


@dataclass(frozen=True)
class EngineHandles:
    """Live engine clients, or ``None`` where an engine is unavailable."""

    speech: SpeechEngine | None = None
    evaluation: EvaluationEngine | None = None

    @property
    def speech_available(self) -> bool:
        return self.speech is not None

    @property
    def evaluation_available(self) -> bool:
        return self.evaluation is not None


def build_engines(config: Settings | None = None) -> EngineHandles:
    """Construct engine clients, marking any that cannot be created as unavailable."""

    config = config or default_settings
    speech: SpeechEngine | None = None
    evaluation: EvaluationEngine | None = None

    if config.transcribe.enabled:
        try:
            speech = TranscribeService(config.transcribe)
        except Exception as exc:  # pragma: no cover - configuration issue
            logger.warning("Amazon Transcribe unavailable, using fallback transcripts: %s", exc)
    else:
        logger.info("Amazon Transcribe disabled; fallback transcripts will be used.")

    if config.bedrock.enabled:
        try:
            evaluation = BedrockLlmClient(config.bedrock)
        except Exception as exc:  # pragma: no cover - configuration issue
            logger.warning("Bedrock unavailable, using default scores: %s", exc)
    else:
        logger.info("Bedrock disabled; default scores will be used.")

    return EngineHandles(speech=speech, evaluation=evaluation)


__all__ = ["EngineHandles", "EvaluationEngine", "SpeechEngine", "build_engines"]
