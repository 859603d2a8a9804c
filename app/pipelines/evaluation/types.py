"""Typed containers shared across the evaluation pipeline.

These live in their own module so the stages (`transcription`, `scoring`,
`orchestrator`, `workers`) can import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID

from app.services.response_contract import SpeechFeedback, SpeechScores


class ResultSource(str, Enum):
    """Where a stage result came from."""

    ENGINE = "engine"
    FALLBACK = "fallback"


class JobStage(str, Enum):
    """Lifecycle of one pipeline run."""

    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    SCORING = "scoring"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SpeechMetrics:
    """Speech-rate figures derived from a transcript and its duration."""

    word_count: int
    words_per_minute: int
    duration_seconds: float


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    metrics: SpeechMetrics
    source: ResultSource

    @property
    def word_count(self) -> int:
        return self.metrics.word_count

    @property
    def words_per_minute(self) -> int:
        return self.metrics.words_per_minute


@dataclass(frozen=True)
class ScoringResult:
    scores: SpeechScores
    feedback: SpeechFeedback
    source: ResultSource


@dataclass
class PipelineJob:
    """Working state for one submission; never persisted."""

    participant_id: UUID
    audio_reference: str
    duration_seconds: Optional[float] = None
    stage: JobStage = JobStage.PENDING
    error: Optional[str] = None
    history: list[JobStage] = field(default_factory=list)


@dataclass(frozen=True)
class StatusSnapshot:
    """What a polling client sees for one record."""

    participant_id: UUID
    evaluation_complete: bool
    evaluation_failed: bool
    scores: Optional[SpeechScores]
    feedback: Optional[SpeechFeedback]
    transcript: Optional[str]
