"""Pipeline-facing operations consumed by the HTTP layer.

``submit`` is fire-and-forget: it validates the request synchronously, then
hands a :class:`PipelineJob` to the worker pool and returns. Clients poll
``get_status`` until ``evaluation_complete`` (or ``evaluation_failed``) is set.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import Settings, settings as default_settings
from app.pipelines.evaluation import (
    EvaluationOrchestrator,
    EvaluationWorkerPool,
    JobAlreadyRunning,
    PipelineJob,
    ScoringStage,
    StatusSnapshot,
    TranscriptionStage,
)
from app.models.evaluation_record import EvaluationRecord
from app.services import aggregation
from app.services.engines import EngineHandles, build_engines
from app.services.record_store import EvaluationRecordStore, RecordSort
from app.services.response_contract import SpeechFeedback, SpeechScores

logger = logging.getLogger(__name__)

CONTACT_PATTERN = re.compile(r"^[6-9]\d{9}$")
MAX_NAME_LENGTH = 100


class InvalidSubmission(ValueError):
    """Raised when registration or submission input is missing or malformed."""


class SubmissionRejected(RuntimeError):
    """Raised when a record cannot accept a new submission."""


def _snapshot(record) -> StatusSnapshot:
    scores = record.score_map()
    feedback = None
    if record.has_feedback():
        feedback = SpeechFeedback(
            detailed=record.feedback_detailed or "",
            strengths=record.feedback_strengths or [],
            areas_to_improve=record.feedback_areas_to_improve or [],
            improvement_tips=record.feedback_improvement_tips or [],
        )
    return StatusSnapshot(
        participant_id=record.id,
        evaluation_complete=bool(record.evaluation_complete),
        evaluation_failed=bool(record.evaluation_failed),
        scores=SpeechScores(**scores) if scores is not None else None,
        feedback=feedback,
        transcript=record.transcript,
    )


class EvaluationService:
    def __init__(self, store: EvaluationRecordStore, pool: EvaluationWorkerPool) -> None:
        self.store = store
        self.pool = pool

    async def register(self, name: str | None, contact: str | None) -> UUID:
        clean_name = (name or "").strip()
        clean_contact = (contact or "").strip()
        if not clean_name or not clean_contact:
            raise InvalidSubmission("Name and mobile number are required.")
        if len(clean_name) > MAX_NAME_LENGTH:
            raise InvalidSubmission(f"Name cannot exceed {MAX_NAME_LENGTH} characters.")
        if not CONTACT_PATTERN.fullmatch(clean_contact):
            raise InvalidSubmission("Please enter a valid 10-digit mobile number.")
        return await self.store.create(clean_name, clean_contact)

    async def contact_exists(self, contact: str) -> bool:
        return await self.store.contact_exists(contact.strip())

    async def ensure_submittable(self, participant_id: UUID) -> None:
        """Raise unless the record exists and can take a new submission."""

        if self.pool.is_active(participant_id):
            raise SubmissionRejected("An evaluation is already in progress.")
        await self._ensure_not_evaluated(participant_id)

    async def _ensure_not_evaluated(self, participant_id: UUID) -> None:
        record = await self.store.get(participant_id)
        if record.evaluation_complete:
            raise SubmissionRejected("You have already submitted your response.")

    async def submit(
        self,
        participant_id: UUID,
        audio_reference: str | None,
        duration_seconds: float | None = None,
    ) -> None:
        """Validate, record the audio reference and schedule the pipeline run.

        The participant is reserved in the pool before the first await, so of
        two concurrent submissions exactly one touches the record.
        """

        if not audio_reference:
            raise InvalidSubmission("Participant ID and audio file are required.")
        if duration_seconds is not None and duration_seconds <= 0:
            duration_seconds = None

        try:
            self.pool.reserve(participant_id)
        except JobAlreadyRunning as exc:
            raise SubmissionRejected("An evaluation is already in progress.") from exc

        try:
            await self._ensure_not_evaluated(participant_id)
            await self.store.set_audio_reference(participant_id, audio_reference)
        except BaseException:
            self.pool.release(participant_id)
            raise

        self.pool.submit(
            PipelineJob(
                participant_id=participant_id,
                audio_reference=audio_reference,
                duration_seconds=duration_seconds,
            ),
            reserved=True,
        )
        logger.info("Queued evaluation participant=%s", participant_id)

    async def get_status(self, participant_id: UUID) -> StatusSnapshot:
        return _snapshot(await self.store.get(participant_id))

    async def list_participants(
        self,
        completed: bool | None = None,
        sort: RecordSort = RecordSort.RANKING,
    ) -> Sequence[EvaluationRecord]:
        """Every record (or only completed/pending ones) for the judge view."""

        return await self.store.list_sorted(completed=completed, sort=sort)

    async def participant_details(self, participant_id: UUID) -> EvaluationRecord:
        return await self.store.get(participant_id)

    async def leaderboard(self, limit: int | None = None, offset: int | None = 0):
        return await aggregation.leaderboard(self.store, limit, offset)

    async def statistics(self) -> aggregation.Statistics:
        return await aggregation.statistics(self.store)

    async def export_csv(self) -> str:
        return await aggregation.export_csv(self.store)

    async def drain(self) -> None:
        await self.pool.drain()


def build_evaluation_service(
    engines: EngineHandles | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    config: Settings | None = None,
) -> EvaluationService:
    """Wire the store, both stages, the orchestrator and the worker pool."""

    config = config or default_settings
    engines = engines if engines is not None else build_engines(config)
    store = EvaluationRecordStore(session_factory)
    orchestrator = EvaluationOrchestrator(
        store,
        TranscriptionStage(
            engines.speech,
            timeout_seconds=config.pipeline.transcription_timeout_seconds,
        ),
        ScoringStage(
            engines.evaluation,
            timeout_seconds=config.pipeline.scoring_timeout_seconds,
        ),
    )
    pool = EvaluationWorkerPool(orchestrator, config.pipeline.max_concurrent_jobs)
    return EvaluationService(store, pool)


__all__ = [
    "CONTACT_PATTERN",
    "EvaluationService",
    "InvalidSubmission",
    "SubmissionRejected",
    "build_evaluation_service",
]
