"""Pydantic schemas acting as views in the MVC architecture."""

from .challenge import (
    ContactCheckResponse,
    EvaluationStatusResponse,
    FeedbackView,
    LeaderboardEntryView,
    LeaderboardResponse,
    ParticipantDetailResponse,
    ParticipantDetailView,
    ParticipantListResponse,
    RegisterRequest,
    RegisterResponse,
    ScoresView,
    StatisticsResponse,
    StatisticsView,
    SubmitResponse,
)
from .common import ErrorResponse

__all__ = [
    "ContactCheckResponse",
    "ErrorResponse",
    "EvaluationStatusResponse",
    "FeedbackView",
    "LeaderboardEntryView",
    "LeaderboardResponse",
    "ParticipantDetailResponse",
    "ParticipantDetailView",
    "ParticipantListResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ScoresView",
    "StatisticsResponse",
    "StatisticsView",
    "SubmitResponse",
]
