"""Read-side ranking, statistics and export over completed evaluations."""

from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from app.models.evaluation_record import SCORE_FIELDS, EvaluationRecord
from app.services.record_store import EvaluationRecordStore, RecordSort

DEFAULT_LEADERBOARD_LIMIT = 50
MAX_LEADERBOARD_LIMIT = 100

_EXPORT_HEADER = (
    "Rank",
    "Name",
    "Contact",
    "Overall",
    "Fluency",
    "Pronunciation",
    "Grammar",
    "Vocabulary",
    "Confidence",
    "Structure",
    "Filler Words",
    "Evaluation Complete",
    "Submitted At",
)


def mask_contact(contact: str) -> str:
    """Hide all but the last four digits of a 10-digit mobile number."""

    if contact and len(contact) == 10:
        return f"+91******{contact[-4:]}"
    return contact


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    participant_id: UUID
    name: str
    masked_contact: str
    overall: float
    fluency: float
    confidence: float
    submitted_at: datetime


@dataclass(frozen=True)
class LeaderboardPage:
    entries: list[LeaderboardEntry]
    total: int
    page: int
    total_pages: int


@dataclass(frozen=True)
class Statistics:
    total_count: int
    evaluated_count: int
    pending_count: int
    averages: dict[str, float]


def _normalise_window(limit: int | None, offset: int | None) -> tuple[int, int]:
    safe_limit = limit if limit and limit > 0 else DEFAULT_LEADERBOARD_LIMIT
    safe_limit = min(safe_limit, MAX_LEADERBOARD_LIMIT)
    safe_offset = offset if offset and offset > 0 else 0
    return safe_limit, safe_offset


async def leaderboard(
    store: EvaluationRecordStore,
    limit: int | None = DEFAULT_LEADERBOARD_LIMIT,
    offset: int | None = 0,
) -> LeaderboardPage:
    """Completed records ranked by overall score, earlier submissions first on ties."""

    safe_limit, safe_offset = _normalise_window(limit, offset)
    records = await store.list_sorted(
        completed=True,
        sort=RecordSort.RANKING,
        limit=safe_limit,
        offset=safe_offset,
    )
    total = await store.count(completed=True)

    entries = [
        LeaderboardEntry(
            rank=safe_offset + position,
            participant_id=record.id,
            name=record.participant_name,
            masked_contact=mask_contact(record.participant_contact),
            overall=record.overall,
            fluency=record.fluency,
            confidence=record.confidence,
            submitted_at=record.submitted_at,
        )
        for position, record in enumerate(records, start=1)
    ]
    return LeaderboardPage(
        entries=entries,
        total=total,
        page=safe_offset // safe_limit + 1,
        total_pages=math.ceil(total / safe_limit),
    )


async def statistics(store: EvaluationRecordStore) -> Statistics:
    """Counts plus per-metric averages over completed records (0.0 when none)."""

    total = await store.count()
    evaluated = await store.count(completed=True)
    raw_averages = await store.score_averages()
    averages = {
        name: round(raw_averages.get(name) or 0.0, 2)
        for name in SCORE_FIELDS
    }
    return Statistics(
        total_count=total,
        evaluated_count=evaluated,
        pending_count=total - evaluated,
        averages=averages,
    )


def _export_row(rank: int, record: EvaluationRecord) -> list[object]:
    scores = [
        "" if getattr(record, name) is None else getattr(record, name)
        for name in SCORE_FIELDS
    ]
    return [
        rank,
        record.participant_name,
        record.participant_contact,
        *scores,
        "yes" if record.evaluation_complete else "no",
        record.submitted_at.isoformat() if record.submitted_at else "",
    ]


def render_csv(records: Sequence[EvaluationRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(_EXPORT_HEADER)
    for rank, record in enumerate(records, start=1):
        writer.writerow(_export_row(rank, record))
    return buffer.getvalue()


async def export_csv(store: EvaluationRecordStore) -> str:
    """Every record, scored ones ranked first, as CSV text."""

    records = await store.list_sorted(sort=RecordSort.RANKING)
    return render_csv(records)


__all__ = [
    "LeaderboardEntry",
    "LeaderboardPage",
    "Statistics",
    "export_csv",
    "leaderboard",
    "mask_contact",
    "render_csv",
    "statistics",
]
