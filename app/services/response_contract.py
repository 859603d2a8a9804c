"""Pydantic models for validating the evaluation engine's JSON responses.

The engine answers in prose that *should* embed one JSON object. Parsing is
done in two phases: :func:`locate_json_candidate` finds the candidate span
(a fenced ``json`` block, else the first brace-balanced object) and
:meth:`EvaluationPayload.from_response` validates it against a strict schema.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ResponseContractError(RuntimeError):
    """Raised when the engine response contract cannot be validated."""


_FENCED_JSON_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)


def _score_field(alias: str | None = None) -> Any:
    # Strict fields reject numeric strings and booleans instead of coercing them.
    return Field(..., ge=0, le=100, strict=True, allow_inf_nan=False, alias=alias)


class SpeechScores(BaseModel):
    """The eight named metrics, each a number in [0, 100]."""

    overall: float = _score_field()
    fluency: float = _score_field()
    pronunciation: float = _score_field()
    grammar: float = _score_field()
    vocabulary: float = _score_field()
    confidence: float = _score_field()
    structure: float = _score_field()
    filler_words: float = _score_field(alias="fillerWords")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def uniform(cls, value: float) -> "SpeechScores":
        return cls(
            overall=value,
            fluency=value,
            pronunciation=value,
            grammar=value,
            vocabulary=value,
            confidence=value,
            structure=value,
            filler_words=value,
        )

    def as_columns(self) -> dict[str, float]:
        """Return scores keyed by their record column names."""

        return {name: float(value) for name, value in self.model_dump().items()}


class SpeechFeedback(BaseModel):
    detailed: str = ""
    strengths: list[str] = Field(default_factory=list)
    areas_to_improve: list[str] = Field(default_factory=list, alias="areasToImprove")
    improvement_tips: list[str] = Field(default_factory=list, alias="improvementTips")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("detailed", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("strengths", "areas_to_improve", "improvement_tips", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


class EvaluationPayload(BaseModel):
    scores: SpeechScores
    feedback: SpeechFeedback = Field(default_factory=SpeechFeedback)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_response(cls, payload: Optional[str]) -> "EvaluationPayload":
        candidate = locate_json_candidate(payload or "")
        if candidate is None:
            raise ResponseContractError("No JSON object found in the engine response.")
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as exc:
            raise ResponseContractError(f"Engine returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ResponseContractError("Engine JSON payload is not an object.")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ResponseContractError(
                f"Engine JSON payload failed validation: {exc.error_count()} error(s)"
            ) from exc


def locate_json_candidate(text: str) -> str | None:
    """Return the JSON text to parse from a free-form engine answer."""

    if not text:
        return None

    fenced = _FENCED_JSON_PATTERN.search(text)
    if fenced:
        return fenced.group(1)

    return _first_balanced_object(text)


def _first_balanced_object(text: str) -> str | None:
    """Find the first top-level ``{...}`` span, ignoring braces inside strings."""

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


__all__ = [
    "EvaluationPayload",
    "ResponseContractError",
    "SpeechFeedback",
    "SpeechScores",
    "locate_json_candidate",
]
