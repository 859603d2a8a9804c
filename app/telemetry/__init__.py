"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    EVALUATION_JOBS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_FALLBACKS,
    STAGE_LATENCY,
    observe_request,
    observe_stage,
    record_fallback,
    record_job_outcome,
)

__all__ = [
    "ERROR_COUNTER",
    "EVALUATION_JOBS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_FALLBACKS",
    "STAGE_LATENCY",
    "observe_request",
    "observe_stage",
    "record_fallback",
    "record_job_outcome",
]
