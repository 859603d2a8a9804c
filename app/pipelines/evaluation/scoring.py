"""Scoring stage of the evaluation pipeline.

The engine's prose answer is reduced to an :class:`EvaluationPayload` by
``EvaluationPayload.from_response``. Empty transcripts, a missing engine,
transport errors, timeouts and malformed payloads all yield the default-score
result; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import time

from app.config.settings import settings
from app.services.engines import EvaluationEngine
from app.services.llm_client import LlmInvocationError
from app.services.response_contract import EvaluationPayload, ResponseContractError
from app.telemetry import observe_stage, record_fallback

from .fallbacks import default_scoring_result, speech_metrics
from .prompts import SCORING_SYSTEM_PROMPT, build_scoring_prompt
from .types import ResultSource, ScoringResult

logger = logging.getLogger("app.services.evaluation_pipeline")


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


class ScoringStage:
    def __init__(
        self,
        engine: EvaluationEngine | None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._engine = engine
        self._timeout = timeout_seconds or settings.pipeline.scoring_timeout_seconds

    async def score(
        self,
        transcript: str | None,
        duration_seconds: float | None = None,
    ) -> ScoringResult:
        if not transcript or not transcript.strip():
            logger.info("Empty transcript; skipping the evaluation engine.")
            return self._fallback("empty_transcript")

        if self._engine is None:
            return self._fallback("unavailable")

        metrics = speech_metrics(transcript, duration_seconds)
        user_prompt = build_scoring_prompt(transcript, metrics)

        started = time.perf_counter()
        try:
            raw_response = await asyncio.wait_for(
                self._engine.invoke(
                    system_prompt=SCORING_SYSTEM_PROMPT,
                    user_prompt=user_prompt,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Evaluation engine timed out after %ss", self._timeout)
            return self._fallback("timeout")
        except LlmInvocationError as exc:
            logger.warning("Evaluation engine call failed: %s", exc)
            return self._fallback("engine_error")
        finally:
            observe_stage("scoring", time.perf_counter() - started)

        logger.info(
            "Raw evaluation response words=%s wpm=%s: %s",
            metrics.word_count,
            metrics.words_per_minute,
            _truncate(raw_response or ""),
        )

        try:
            payload = EvaluationPayload.from_response(raw_response)
        except ResponseContractError as exc:
            logger.warning("Evaluation response rejected: %s", exc)
            return self._fallback("malformed_response")

        return ScoringResult(
            scores=payload.scores,
            feedback=payload.feedback,
            source=ResultSource.ENGINE,
        )

    @staticmethod
    def _fallback(reason: str) -> ScoringResult:
        record_fallback("scoring", reason)
        return default_scoring_result()


__all__ = ["ScoringStage"]
