"""ScoringStage behaviour against a scripted evaluation engine."""

from __future__ import annotations

import asyncio
import json

from app.pipelines.evaluation import (
    NEUTRAL_SCORE,
    ResultSource,
    SCORING_SYSTEM_PROMPT,
    ScoringStage,
)
from app.services.llm_client import LlmInvocationError

TRANSCRIPT = "Hello, my name is Test Speaker and I build reliable software for a living."

ENGINE_ANSWER = json.dumps(
    {
        "scores": {
            "overall": 72,
            "fluency": 70,
            "pronunciation": 68,
            "grammar": 75,
            "vocabulary": 71,
            "confidence": 66,
            "structure": 74,
            "fillerWords": 80,
        },
        "feedback": {
            "detailed": "A confident, well organised introduction.",
            "improvementTips": ["Slow down slightly"],
            "strengths": ["Clear structure"],
            "areasToImprove": ["Pacing"],
        },
    }
)


class ScriptedEngine:
    def __init__(self, answer=None, *, error=None, delay=0.0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.calls = []

    async def invoke(self, *, system_prompt, user_prompt, **kwargs):
        self.calls.append((system_prompt, user_prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer


def _assert_neutral(result):
    assert result.source is ResultSource.FALLBACK
    assert set(result.scores.as_columns().values()) == {float(NEUTRAL_SCORE)}


def test_engine_answer_becomes_scores():
    engine = ScriptedEngine("Evaluation follows.\n```json\n" + ENGINE_ANSWER + "\n```")
    result = asyncio.run(ScoringStage(engine, timeout_seconds=1).score(TRANSCRIPT, 30))

    assert result.source is ResultSource.ENGINE
    assert result.scores.overall == 72
    assert result.feedback.strengths == ["Clear structure"]

    system_prompt, user_prompt = engine.calls[0]
    assert system_prompt == SCORING_SYSTEM_PROMPT
    assert TRANSCRIPT in user_prompt
    assert "Metrics: 14 words, 28 WPM" in user_prompt
    assert "Analyze this 30-second introduction." in user_prompt


def test_empty_transcript_skips_the_engine():
    engine = ScriptedEngine(ENGINE_ANSWER)
    stage = ScoringStage(engine, timeout_seconds=1)

    _assert_neutral(asyncio.run(stage.score("")))
    _assert_neutral(asyncio.run(stage.score("   \n")))
    _assert_neutral(asyncio.run(stage.score(None)))
    assert engine.calls == []


def test_missing_engine_yields_defaults():
    _assert_neutral(asyncio.run(ScoringStage(None, timeout_seconds=1).score(TRANSCRIPT)))


def test_slow_engine_times_out_to_defaults():
    engine = ScriptedEngine(ENGINE_ANSWER, delay=1.0)
    result = asyncio.run(ScoringStage(engine, timeout_seconds=0.05).score(TRANSCRIPT))

    _assert_neutral(result)
    assert len(engine.calls) == 1


def test_transport_error_yields_defaults():
    engine = ScriptedEngine(error=LlmInvocationError("throttled"))
    _assert_neutral(asyncio.run(ScoringStage(engine, timeout_seconds=1).score(TRANSCRIPT)))


def test_malformed_answer_yields_defaults():
    engine = ScriptedEngine("I think the speaker did well, maybe 7/10.")
    _assert_neutral(asyncio.run(ScoringStage(engine, timeout_seconds=1).score(TRANSCRIPT)))


def test_out_of_range_answer_yields_defaults():
    engine = ScriptedEngine(ENGINE_ANSWER.replace('"overall": 72', '"overall": 140'))
    _assert_neutral(asyncio.run(ScoringStage(engine, timeout_seconds=1).score(TRANSCRIPT)))


def test_empty_answer_yields_defaults():
    engine = ScriptedEngine(None)
    _assert_neutral(asyncio.run(ScoringStage(engine, timeout_seconds=1).score(TRANSCRIPT)))
