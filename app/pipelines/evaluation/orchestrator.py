"""Drives one submission through transcription, scoring and persistence."""

from __future__ import annotations

import logging
import time

from app.services.record_store import EvaluationRecordStore
from app.telemetry import record_job_outcome

from .fallbacks import FAILURE_FEEDBACK
from .scoring import ScoringStage
from .transcription import TranscriptionStage
from .types import JobStage, PipelineJob

logger = logging.getLogger("app.services.evaluation_pipeline")


class InvalidStageTransition(RuntimeError):
    """Raised when a job is moved along an edge the state machine lacks."""


_TRANSITIONS: dict[JobStage, frozenset[JobStage]] = {
    JobStage.PENDING: frozenset({JobStage.TRANSCRIBING}),
    JobStage.TRANSCRIBING: frozenset({JobStage.SCORING, JobStage.FAILED}),
    JobStage.SCORING: frozenset({JobStage.DONE, JobStage.FAILED}),
    JobStage.DONE: frozenset(),
    JobStage.FAILED: frozenset(),
}


def advance(job: PipelineJob, target: JobStage) -> None:
    """Move ``job`` to ``target`` or raise :class:`InvalidStageTransition`."""

    if target not in _TRANSITIONS[job.stage]:
        raise InvalidStageTransition(f"{job.stage.value} -> {target.value}")
    job.history.append(job.stage)
    job.stage = target


class EvaluationOrchestrator:
    """Runs the Pending -> Transcribing -> Scoring -> Done state machine."""

    def __init__(
        self,
        store: EvaluationRecordStore,
        transcription: TranscriptionStage,
        scoring: ScoringStage,
    ) -> None:
        self._store = store
        self._transcription = transcription
        self._scoring = scoring

    async def run(self, job: PipelineJob) -> PipelineJob:
        started = time.perf_counter()
        logger.info("Starting evaluation participant=%s", job.participant_id)
        advance(job, JobStage.TRANSCRIBING)

        try:
            transcription = await self._transcription.transcribe(
                job.audio_reference,
                job.duration_seconds,
            )
            # Visible to pollers even while scoring is still running.
            await self._store.set_transcript(job.participant_id, transcription.text)
            logger.info(
                "Transcript stored participant=%s source=%s words=%s",
                job.participant_id,
                transcription.source.value,
                transcription.word_count,
            )

            advance(job, JobStage.SCORING)
            result = await self._scoring.score(transcription.text, job.duration_seconds)
            await self._store.set_result(job.participant_id, result.scores, result.feedback)
            advance(job, JobStage.DONE)
        except Exception as exc:
            job.error = repr(exc)
            logger.exception(
                "Evaluation failed participant=%s stage=%s",
                job.participant_id,
                job.stage.value,
            )
            advance(job, JobStage.FAILED)
            record_job_outcome(JobStage.FAILED.value)
            await self._store.set_failure(job.participant_id, FAILURE_FEEDBACK)
            return job

        record_job_outcome(JobStage.DONE.value)
        logger.info(
            "Evaluation done participant=%s overall=%s source=%s in %.2fs",
            job.participant_id,
            result.scores.overall,
            result.source.value,
            time.perf_counter() - started,
        )
        return job


__all__ = ["EvaluationOrchestrator", "InvalidStageTransition", "advance"]
