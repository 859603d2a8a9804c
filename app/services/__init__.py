"""Service layer helpers for external integrations and persistence."""

from .llm_client import BedrockLlmClient, LlmInvocationError
from .record_store import (
    DuplicateContact,
    EvaluationRecordStore,
    RecordAlreadyEvaluated,
    RecordNotFound,
    RecordSort,
)
from .transcribe import EngineTranscript, TranscribeService, TranscriptionError

__all__ = [
    "BedrockLlmClient",
    "LlmInvocationError",
    "DuplicateContact",
    "EvaluationRecordStore",
    "RecordAlreadyEvaluated",
    "RecordNotFound",
    "RecordSort",
    "EngineTranscript",
    "TranscribeService",
    "TranscriptionError",
]
