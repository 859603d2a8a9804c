"""Pydantic schemas for challenge endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Participant registration payload."""

    name: str = Field(..., description="Participant display name")
    mobile: str = Field(..., description="10-digit mobile number, unique per participant")


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "Registration successful"
    participant_id: str = Field(..., description="Identifier used for submission and polling")


class ContactCheckResponse(BaseModel):
    exists: bool


class SubmitResponse(BaseModel):
    success: bool = True
    message: str = "Audio submitted successfully. Evaluation in progress..."


class ScoresView(BaseModel):
    overall: float
    fluency: float
    pronunciation: float
    grammar: float
    vocabulary: float
    confidence: float
    structure: float
    filler_words: float = Field(..., serialization_alias="fillerWords")

    model_config = ConfigDict(from_attributes=True)


class FeedbackView(BaseModel):
    detailed: str
    improvement_tips: list[str] = Field(..., serialization_alias="improvementTips")
    strengths: list[str]
    areas_to_improve: list[str] = Field(..., serialization_alias="areasToImprove")

    model_config = ConfigDict(from_attributes=True)


class EvaluationStatusResponse(BaseModel):
    """Snapshot returned to polling clients."""

    success: bool = True
    evaluation_complete: bool = Field(..., serialization_alias="evaluationComplete")
    evaluation_failed: bool = Field(..., serialization_alias="evaluationFailed")
    scores: Optional[ScoresView] = None
    feedback: Optional[FeedbackView] = None
    transcript: Optional[str] = None


class LeaderboardEntryView(BaseModel):
    rank: int
    participant_id: str
    name: str
    mobile: str = Field(..., description="Masked mobile number")
    overall: float
    fluency: float
    confidence: float
    submitted_at: datetime


class LeaderboardResponse(BaseModel):
    success: bool = True
    participants: list[LeaderboardEntryView]
    total: int
    page: int
    total_pages: int


class StatisticsView(BaseModel):
    total_participants: int
    evaluated_count: int
    pending_evaluation: int
    average_scores: dict[str, float]


class StatisticsResponse(BaseModel):
    success: bool = True
    stats: StatisticsView


class ParticipantDetailView(BaseModel):
    """Full record for judges; the contact is not masked."""

    participant_id: str
    name: str
    mobile: str
    audio_reference: Optional[str] = None
    transcript: Optional[str] = None
    scores: Optional[ScoresView] = None
    feedback: Optional[FeedbackView] = None
    evaluation_complete: bool = Field(..., serialization_alias="evaluationComplete")
    evaluation_failed: bool = Field(..., serialization_alias="evaluationFailed")
    submitted_at: datetime
    evaluated_at: Optional[datetime] = None


class ParticipantListResponse(BaseModel):
    success: bool = True
    participants: list[ParticipantDetailView]
    total: int


class ParticipantDetailResponse(BaseModel):
    success: bool = True
    participant: ParticipantDetailView
