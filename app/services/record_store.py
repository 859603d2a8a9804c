"""Repository owning the lifetime of challenge evaluation records.

Every mutation of an :class:`~app.models.EvaluationRecord` goes through
:class:`EvaluationRecordStore`. ``set_result`` is the only write that flips
``evaluation_complete`` to true, and it writes the eight scores in the same
UPDATE statement so a completed record can never be observed without them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import session_scope
from app.models.evaluation_record import SCORE_FIELDS, EvaluationRecord, utcnow
from app.services.response_contract import SpeechFeedback, SpeechScores

logger = logging.getLogger(__name__)


class RecordStoreError(RuntimeError):
    """Base class for record store failures."""


class DuplicateContact(RecordStoreError):
    """Raised when a record already exists for the given contact."""

    def __init__(self, contact: str) -> None:
        super().__init__(f"A submission already exists for contact {contact!r}.")
        self.contact = contact


class RecordNotFound(RecordStoreError):
    """Raised when no record matches the requested identifier."""

    def __init__(self, record_id: UUID) -> None:
        super().__init__(f"Evaluation record {record_id} not found.")
        self.record_id = record_id


class RecordAlreadyEvaluated(RecordStoreError):
    """Raised when a completed record would be scored a second time."""


class RecordSort(str, Enum):
    """Supported orderings for :meth:`EvaluationRecordStore.list_sorted`."""

    RANKING = "ranking"
    SUBMITTED_ASC = "submitted_asc"
    SUBMITTED_DESC = "submitted_desc"


def _order_by(sort: RecordSort) -> tuple:
    if sort is RecordSort.RANKING:
        # Pending records have NULL scores; push them behind every scored one.
        return (
            EvaluationRecord.overall.is_(None),
            EvaluationRecord.overall.desc(),
            EvaluationRecord.submitted_at.asc(),
        )
    if sort is RecordSort.SUBMITTED_DESC:
        return (EvaluationRecord.submitted_at.desc(),)
    return (EvaluationRecord.submitted_at.asc(),)


def _feedback_values(feedback: SpeechFeedback) -> dict[str, object]:
    return {
        "feedback_detailed": feedback.detailed,
        "feedback_strengths": list(feedback.strengths),
        "feedback_areas_to_improve": list(feedback.areas_to_improve),
        "feedback_improvement_tips": list(feedback.improvement_tips),
    }


class EvaluationRecordStore:
    """Async SQLAlchemy repository for :class:`EvaluationRecord` rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    async def create(self, name: str, contact: str) -> UUID:
        """Insert a new record and return its identifier."""

        async with self._session() as session:
            existing = await session.execute(
                select(EvaluationRecord.id).where(
                    EvaluationRecord.participant_contact == contact
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateContact(contact)

            record = EvaluationRecord(
                participant_name=name,
                participant_contact=contact,
                evaluation_complete=False,
                evaluation_failed=False,
                submitted_at=utcnow(),
            )
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as exc:
                # Lost a race against a concurrent registration for the same contact.
                await session.rollback()
                raise DuplicateContact(contact) from exc

            logger.info("Created evaluation record id=%s", record.id)
            return record.id

    async def contact_exists(self, contact: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                select(func.count(EvaluationRecord.id)).where(
                    EvaluationRecord.participant_contact == contact
                )
            )
            return bool(result.scalar_one())

    async def get(self, record_id: UUID) -> EvaluationRecord:
        async with self._session() as session:
            record = await session.get(EvaluationRecord, record_id)
            if record is None:
                raise RecordNotFound(record_id)
            return record

    async def _update(self, record_id: UUID, *conditions, **values) -> int:
        async with self._session() as session:
            result = await session.execute(
                update(EvaluationRecord)
                .where(EvaluationRecord.id == record_id, *conditions)
                .values(**values)
            )
            await session.commit()
            return result.rowcount

    async def set_audio_reference(self, record_id: UUID, audio_reference: str) -> None:
        """Point the record at newly stored audio and clear any earlier failure."""

        updated = await self._update(
            record_id,
            audio_reference=audio_reference,
            evaluation_failed=False,
        )
        if not updated:
            raise RecordNotFound(record_id)

    async def set_transcript(self, record_id: UUID, transcript: str) -> None:
        updated = await self._update(record_id, transcript=transcript)
        if not updated:
            raise RecordNotFound(record_id)

    async def set_result(
        self,
        record_id: UUID,
        scores: SpeechScores,
        feedback: SpeechFeedback,
    ) -> None:
        """Persist scores, feedback and completion in a single statement."""

        score_values = scores.as_columns()
        for name in SCORE_FIELDS:
            value = score_values.get(name)
            if value is None or not 0 <= value <= 100:
                raise ValueError(f"Score {name}={value!r} is outside [0, 100].")

        updated = await self._update(
            record_id,
            EvaluationRecord.evaluation_complete.is_(False),
            **score_values,
            **_feedback_values(feedback),
            evaluation_complete=True,
            evaluation_failed=False,
            evaluated_at=utcnow(),
        )
        if not updated:
            record = await self.get(record_id)
            if record.evaluation_complete:
                raise RecordAlreadyEvaluated(
                    f"Evaluation record {record_id} was already scored."
                )
            raise RecordStoreError(f"Evaluation record {record_id} was not updated.")

    async def set_failure(self, record_id: UUID, feedback: SpeechFeedback) -> None:
        """Attach failure feedback; the record stays incomplete and unscored."""

        updated = await self._update(
            record_id,
            EvaluationRecord.evaluation_complete.is_(False),
            **_feedback_values(feedback),
            evaluation_failed=True,
        )
        if not updated:
            logger.warning("Failure feedback not stored for record id=%s", record_id)

    async def list_sorted(
        self,
        *,
        completed: bool | None = None,
        sort: RecordSort = RecordSort.RANKING,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[EvaluationRecord]:
        query = select(EvaluationRecord)
        if completed is not None:
            query = query.where(EvaluationRecord.evaluation_complete.is_(completed))
        query = query.order_by(*_order_by(sort)).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self._session() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def count(self, *, completed: bool | None = None) -> int:
        query = select(func.count(EvaluationRecord.id))
        if completed is not None:
            query = query.where(EvaluationRecord.evaluation_complete.is_(completed))
        async with self._session() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    async def score_averages(self) -> dict[str, float | None]:
        """Average each metric over completed records (None when there are none)."""

        columns = [
            func.avg(getattr(EvaluationRecord, name)).label(name)
            for name in SCORE_FIELDS
        ]
        async with self._session() as session:
            result = await session.execute(
                select(*columns).where(EvaluationRecord.evaluation_complete.is_(True))
            )
            row = result.one()
        return {
            name: (float(value) if value is not None else None)
            for name, value in row._mapping.items()
        }


__all__ = [
    "DuplicateContact",
    "EvaluationRecordStore",
    "RecordAlreadyEvaluated",
    "RecordNotFound",
    "RecordSort",
    "RecordStoreError",
]
