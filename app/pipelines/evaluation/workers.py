"""Supervised asyncio worker pool for evaluation jobs."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from .orchestrator import EvaluationOrchestrator
from .types import PipelineJob

logger = logging.getLogger("app.services.evaluation_pipeline")


class JobAlreadyRunning(RuntimeError):
    """Raised when a participant already has a job in flight."""


class EvaluationWorkerPool:
    """Spawn one task per submission, bounded by a semaphore.

    At most one job per participant is in flight, which keeps the
    transcript write ahead of the result write for every record.
    """

    def __init__(self, orchestrator: EvaluationOrchestrator, max_concurrency: int = 4) -> None:
        self._orchestrator = orchestrator
        self._max_concurrency = max_concurrency
        self._semaphore: asyncio.Semaphore | None = None
        self._tasks: set[asyncio.Task] = set()
        self._active: set[UUID] = set()

    def is_active(self, participant_id: UUID) -> bool:
        return participant_id in self._active

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def reserve(self, participant_id: UUID) -> None:
        """Claim ``participant_id`` before any await so concurrent callers cannot both pass."""

        if participant_id in self._active:
            raise JobAlreadyRunning(f"Participant {participant_id} is already being evaluated.")
        self._active.add(participant_id)

    def release(self, participant_id: UUID) -> None:
        """Drop a reservation that never turned into a job."""

        self._active.discard(participant_id)

    def submit(self, job: PipelineJob, *, reserved: bool = False) -> asyncio.Task:
        """Schedule ``job`` and return immediately; must run inside the event loop.

        Pass ``reserved=True`` when the caller already holds the participant
        through :meth:`reserve`.
        """

        if not reserved:
            self.reserve(job.participant_id)

        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)

        task = asyncio.create_task(
            self._run(job),
            name=f"evaluation-{job.participant_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._on_done(job, done))
        return task

    async def _run(self, job: PipelineJob) -> PipelineJob:
        async with self._semaphore:
            return await self._orchestrator.run(job)

    def _on_done(self, job: PipelineJob, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._active.discard(job.participant_id)
        if task.cancelled():
            logger.warning("Evaluation task cancelled participant=%s", job.participant_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unhandled error in evaluation task participant=%s",
                job.participant_id,
                exc_info=exc,
            )

    async def drain(self) -> None:
        """Wait for every in-flight job to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["EvaluationWorkerPool", "JobAlreadyRunning"]
