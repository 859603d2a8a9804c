"""SQLAlchemy model for challenge evaluation records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, String, Text, Uuid

from app.models.base import Base

SCORE_FIELDS: tuple[str, ...] = (
    "overall",
    "fluency",
    "pronunciation",
    "grammar",
    "vocabulary",
    "confidence",
    "structure",
    "filler_words",
)


def utcnow() -> datetime:
    """Return a naive UTC timestamp for persistence."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class EvaluationRecord(Base):
    __tablename__ = "challenge_participants"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    participant_name = Column(String(100), nullable=False)
    participant_contact = Column(String(20), unique=True, nullable=False, index=True)
    audio_reference = Column(String(512), nullable=True)
    transcript = Column(Text, nullable=True)

    overall = Column(Float, nullable=True, index=True)
    fluency = Column(Float, nullable=True)
    pronunciation = Column(Float, nullable=True)
    grammar = Column(Float, nullable=True)
    vocabulary = Column(Float, nullable=True)
    confidence = Column(Float, nullable=True)
    structure = Column(Float, nullable=True)
    filler_words = Column(Float, nullable=True)

    feedback_detailed = Column(Text, nullable=True)
    feedback_strengths = Column(JSON, nullable=True)
    feedback_areas_to_improve = Column(JSON, nullable=True)
    feedback_improvement_tips = Column(JSON, nullable=True)

    evaluation_complete = Column(Boolean, nullable=False, default=False, index=True)
    evaluation_failed = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=False, default=utcnow)
    evaluated_at = Column(DateTime, nullable=True)

    def score_map(self) -> dict[str, float] | None:
        """Return the eight scores, or None while any of them is missing."""

        values = {name: getattr(self, name) for name in SCORE_FIELDS}
        if any(value is None for value in values.values()):
            return None
        return {name: float(value) for name, value in values.items()}

    def has_feedback(self) -> bool:
        return self.feedback_detailed is not None or any(
            getattr(self, name)
            for name in (
                "feedback_strengths",
                "feedback_areas_to_improve",
                "feedback_improvement_tips",
            )
        )


__all__ = ["EvaluationRecord", "SCORE_FIELDS", "utcnow"]
