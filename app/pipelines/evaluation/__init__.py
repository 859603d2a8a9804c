"""Evaluation pipeline package.

Modules follow the order in which one submission is processed:

1. `transcription` - audio to text, or a deterministic fallback transcript.
2. `prompts` - assemble the evaluation prompt with speech-rate metrics.
3. `scoring` - call the evaluation engine and validate its JSON payload.
4. `orchestrator` - the Pending -> Transcribing -> Scoring -> Done machine.
5. `workers` - bounded pool of asyncio tasks running orchestrator jobs.
"""

from .fallbacks import (
    DEFAULT_FEEDBACK_MESSAGE,
    FAILURE_FEEDBACK,
    FALLBACK_TRANSCRIPTS,
    NEUTRAL_SCORE,
    audio_fingerprint,
    default_scoring_result,
    fallback_transcript,
    speech_metrics,
)
from .orchestrator import EvaluationOrchestrator, InvalidStageTransition, advance
from .prompts import SCORING_SYSTEM_PROMPT, build_scoring_prompt
from .scoring import ScoringStage
from .transcription import TranscriptionStage
from .types import (
    JobStage,
    PipelineJob,
    ResultSource,
    ScoringResult,
    SpeechMetrics,
    StatusSnapshot,
    TranscriptionResult,
)
from .workers import EvaluationWorkerPool, JobAlreadyRunning

__all__ = [
    "DEFAULT_FEEDBACK_MESSAGE",
    "FAILURE_FEEDBACK",
    "FALLBACK_TRANSCRIPTS",
    "NEUTRAL_SCORE",
    "SCORING_SYSTEM_PROMPT",
    "EvaluationOrchestrator",
    "EvaluationWorkerPool",
    "InvalidStageTransition",
    "JobAlreadyRunning",
    "JobStage",
    "PipelineJob",
    "ResultSource",
    "ScoringResult",
    "ScoringStage",
    "SpeechMetrics",
    "StatusSnapshot",
    "TranscriptionResult",
    "TranscriptionStage",
    "advance",
    "audio_fingerprint",
    "build_scoring_prompt",
    "default_scoring_result",
    "fallback_transcript",
    "speech_metrics",
]
