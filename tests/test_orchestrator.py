"""End-to-end pipeline runs: orchestrator state machine and worker pool."""

from __future__ import annotations

import asyncio
import json

import pytest

from app.pipelines.evaluation import (
    EvaluationOrchestrator,
    EvaluationWorkerPool,
    InvalidStageTransition,
    JobAlreadyRunning,
    JobStage,
    NEUTRAL_SCORE,
    PipelineJob,
    ScoringStage,
    TranscriptionStage,
    advance,
    fallback_transcript,
)
from app.services.transcribe import EngineTranscript

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
            "detailed": "Good introduction.",
            "improvementTips": ["Slow down"],
            "strengths": ["Structure"],
            "areasToImprove": ["Pace"],
        },
    }
)


class SlowSpeechEngine:
    def __init__(self, delay: float = 1.0) -> None:
        self.delay = delay

    async def transcribe_audio(self, audio_bytes):
        await asyncio.sleep(self.delay)
        return EngineTranscript(transcript="never delivered")


class GatedSpeechEngine:
    def __init__(self) -> None:
        self.gate = asyncio.Event()

    async def transcribe_audio(self, audio_bytes):
        await self.gate.wait()
        return EngineTranscript(transcript="I am a gated speaker")


class RecordingEvaluationEngine:
    """Returns a fixed answer and lets a hook inspect state mid-scoring."""

    def __init__(self, answer: str, on_invoke=None) -> None:
        self.answer = answer
        self.on_invoke = on_invoke
        self.prompts = []

    async def invoke(self, *, system_prompt, user_prompt, **kwargs):
        self.prompts.append(user_prompt)
        if self.on_invoke is not None:
            await self.on_invoke()
        return self.answer


class ExplodingScoringStage:
    async def score(self, transcript, duration_seconds=None):
        raise RuntimeError("scoring crashed")


def test_transcription_timeout_still_produces_a_scored_record(open_store, audio_file):
    async def scenario():
        async with open_store() as store:
            record_id = await store.create("Asha Rao", "9876543210")
            await store.set_audio_reference(record_id, str(audio_file))
            evaluation_engine = RecordingEvaluationEngine(ENGINE_ANSWER)
            orchestrator = EvaluationOrchestrator(
                store,
                TranscriptionStage(SlowSpeechEngine(), timeout_seconds=0.05),
                ScoringStage(evaluation_engine, timeout_seconds=1),
            )

            job = await orchestrator.run(PipelineJob(record_id, str(audio_file), 45))

            assert job.stage is JobStage.DONE
            assert job.history == [JobStage.PENDING, JobStage.TRANSCRIBING, JobStage.SCORING]
            assert job.error is None

            expected_transcript = fallback_transcript(str(audio_file))
            record = await store.get(record_id)
            assert record.transcript == expected_transcript
            assert record.evaluation_complete is True
            assert record.overall == 72
            assert record.filler_words == 80
            assert record.feedback_areas_to_improve == ["Pace"]
            assert expected_transcript.split(".")[0] in evaluation_engine.prompts[0]

    asyncio.run(scenario())


def test_transcript_is_visible_before_scoring_finishes(open_store, audio_file):
    async def scenario():
        async with open_store() as store:
            record_id = await store.create("Asha Rao", "9876543210")
            seen = {}

            async def inspect():
                record = await store.get(record_id)
                seen["transcript"] = record.transcript
                seen["complete"] = record.evaluation_complete

            orchestrator = EvaluationOrchestrator(
                store,
                TranscriptionStage(None, timeout_seconds=1),
                ScoringStage(RecordingEvaluationEngine(ENGINE_ANSWER, inspect), timeout_seconds=1),
            )
            await orchestrator.run(PipelineJob(record_id, str(audio_file)))

            assert seen == {
                "transcript": fallback_transcript(str(audio_file)),
                "complete": False,
            }

    asyncio.run(scenario())


def test_empty_transcript_scores_neutral(open_store, audio_file):
    class SilentEngine:
        async def transcribe_audio(self, audio_bytes):
            return EngineTranscript(transcript="")

    async def scenario():
        async with open_store() as store:
            record_id = await store.create("Asha Rao", "9876543210")
            evaluation_engine = RecordingEvaluationEngine(ENGINE_ANSWER)
            orchestrator = EvaluationOrchestrator(
                store,
                TranscriptionStage(SilentEngine(), timeout_seconds=1),
                ScoringStage(evaluation_engine, timeout_seconds=1),
            )

            job = await orchestrator.run(PipelineJob(record_id, str(audio_file)))

            assert job.stage is JobStage.DONE
            assert evaluation_engine.prompts == []
            record = await store.get(record_id)
            assert record.transcript == ""
            assert record.evaluation_complete is True
            assert set(record.score_map().values()) == {float(NEUTRAL_SCORE)}

    asyncio.run(scenario())


def test_unexpected_error_marks_the_record_failed(open_store, audio_file):
    async def scenario():
        async with open_store() as store:
            record_id = await store.create("Asha Rao", "9876543210")
            orchestrator = EvaluationOrchestrator(
                store,
                TranscriptionStage(None, timeout_seconds=1),
                ExplodingScoringStage(),
            )

            job = await orchestrator.run(PipelineJob(record_id, str(audio_file)))

            assert job.stage is JobStage.FAILED
            assert "scoring crashed" in job.error
            record = await store.get(record_id)
            assert record.evaluation_complete is False
            assert record.evaluation_failed is True
            assert record.score_map() is None
            assert record.feedback_improvement_tips == ["Try recording again with clearer audio"]
            # The transcript written before the failure is kept.
            assert record.transcript == fallback_transcript(str(audio_file))

    asyncio.run(scenario())


def test_invalid_transitions_are_rejected(audio_file):
    job = PipelineJob(participant_id=None, audio_reference=str(audio_file))

    with pytest.raises(InvalidStageTransition):
        advance(job, JobStage.DONE)
    with pytest.raises(InvalidStageTransition):
        advance(job, JobStage.FAILED)

    advance(job, JobStage.TRANSCRIBING)
    advance(job, JobStage.SCORING)
    advance(job, JobStage.DONE)
    with pytest.raises(InvalidStageTransition):
        advance(job, JobStage.FAILED)
    assert job.stage is JobStage.DONE


def test_worker_pool_runs_jobs_and_drains(open_store, audio_file):
    async def scenario():
        async with open_store() as store:
            first = await store.create("First", "9000000001")
            second = await store.create("Second", "9000000002")
            pool = EvaluationWorkerPool(
                EvaluationOrchestrator(
                    store,
                    TranscriptionStage(None, timeout_seconds=1),
                    ScoringStage(RecordingEvaluationEngine(ENGINE_ANSWER), timeout_seconds=1),
                ),
                max_concurrency=1,
            )

            pool.submit(PipelineJob(first, str(audio_file)))
            pool.submit(PipelineJob(second, str(audio_file)))
            assert pool.in_flight == 2

            await pool.drain()

            assert pool.in_flight == 0
            assert not pool.is_active(first)
            for record_id in (first, second):
                record = await store.get(record_id)
                assert record.evaluation_complete is True
                assert record.overall == 72

    asyncio.run(scenario())


def test_worker_pool_allows_one_job_per_participant(open_store, audio_file):
    async def scenario():
        async with open_store() as store:
            record_id = await store.create("Asha Rao", "9876543210")
            speech = GatedSpeechEngine()
            pool = EvaluationWorkerPool(
                EvaluationOrchestrator(
                    store,
                    TranscriptionStage(speech, timeout_seconds=5),
                    ScoringStage(None, timeout_seconds=1),
                )
            )

            pool.submit(PipelineJob(record_id, str(audio_file)))
            assert pool.is_active(record_id)
            with pytest.raises(JobAlreadyRunning):
                pool.submit(PipelineJob(record_id, str(audio_file)))

            speech.gate.set()
            await pool.drain()

            record = await store.get(record_id)
            assert record.transcript == "I am a gated speaker"
            assert record.evaluation_complete is True

    asyncio.run(scenario())
