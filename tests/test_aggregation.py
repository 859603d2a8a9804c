"""Leaderboard ranking, statistics and CSV export."""

from __future__ import annotations

import asyncio
import csv
from datetime import datetime, timedelta
import io

import pytest

from app.services import aggregation
from app.services.response_contract import SpeechFeedback, SpeechScores

FEEDBACK = SpeechFeedback(detailed="ok")
BASE_TIME = datetime(2025, 1, 15, 9, 30)


async def _scored(store, name, contact, overall, minutes):
    record_id = await store.create(name, contact)
    # Pin submission time so tie-breaks do not depend on insert speed.
    await store._update(record_id, submitted_at=BASE_TIME + timedelta(minutes=minutes))
    if overall is not None:
        scores = SpeechScores.uniform(overall).model_copy(update={"fluency": overall - 1})
        await store.set_result(record_id, scores, FEEDBACK)
    return record_id


def test_mask_contact():
    assert aggregation.mask_contact("9876543210") == "+91******3210"
    assert aggregation.mask_contact("12345") == "12345"


def test_leaderboard_orders_by_overall_then_submission_time(open_store):
    async def scenario():
        async with open_store() as store:
            late_tie = await _scored(store, "Late", "9000000001", 80, minutes=10)
            top = await _scored(store, "Top", "9000000002", 91, minutes=20)
            early_tie = await _scored(store, "Early", "9000000003", 80, minutes=1)
            await _scored(store, "Pending", "9000000004", None, minutes=0)

            page = await aggregation.leaderboard(store)

            assert [entry.participant_id for entry in page.entries] == [top, early_tie, late_tie]
            assert [entry.rank for entry in page.entries] == [1, 2, 3]
            assert page.entries[0].masked_contact == "+91******0002"
            assert page.entries[0].fluency == 90
            assert page.total == 3
            assert page.page == 1
            assert page.total_pages == 1

    asyncio.run(scenario())


def test_leaderboard_paging_and_limit_clamp(open_store):
    async def scenario():
        async with open_store() as store:
            for index in range(5):
                await _scored(store, f"P{index}", f"900000001{index}", 50 + index, minutes=index)

            page = await aggregation.leaderboard(store, limit=2, offset=2)
            assert [entry.rank for entry in page.entries] == [3, 4]
            assert [entry.overall for entry in page.entries] == [52, 51]
            assert page.page == 2
            assert page.total_pages == 3

            clamped = await aggregation.leaderboard(store, limit=500, offset=-3)
            assert len(clamped.entries) == 5
            assert clamped.entries[0].rank == 1

            defaulted = await aggregation.leaderboard(store, limit=0)
            assert len(defaulted.entries) == 5

    asyncio.run(scenario())


def test_statistics_with_no_records(open_store):
    async def scenario():
        async with open_store() as store:
            stats = await aggregation.statistics(store)

            assert stats.total_count == 0
            assert stats.evaluated_count == 0
            assert stats.pending_count == 0
            assert set(stats.averages) == {
                "overall",
                "fluency",
                "pronunciation",
                "grammar",
                "vocabulary",
                "confidence",
                "structure",
                "filler_words",
            }
            assert set(stats.averages.values()) == {0.0}

    asyncio.run(scenario())


def test_statistics_average_completed_records_only(open_store):
    async def scenario():
        async with open_store() as store:
            await _scored(store, "A", "9000000001", 70, minutes=0)
            await _scored(store, "B", "9000000002", 81, minutes=1)
            await _scored(store, "C", "9000000003", 65, minutes=2)
            await _scored(store, "Pending", "9000000004", None, minutes=3)

            stats = await aggregation.statistics(store)

            assert stats.total_count == 4
            assert stats.evaluated_count == 3
            assert stats.pending_count == 1
            assert stats.averages["overall"] == pytest.approx(72.0)
            assert stats.averages["fluency"] == pytest.approx(71.0)
            assert stats.averages["grammar"] == round(216 / 3, 2)

    asyncio.run(scenario())


def test_export_lists_every_record(open_store):
    async def scenario():
        async with open_store() as store:
            await _scored(store, "Pending", "9000000004", None, minutes=0)
            await _scored(store, "Top", "9000000002", 88, minutes=1)
            return await aggregation.export_csv(store)

    rows = list(csv.reader(io.StringIO(asyncio.run(scenario()))))

    assert rows[0][:3] == ["Rank", "Name", "Contact"]
    assert rows[0][-2:] == ["Evaluation Complete", "Submitted At"]
    assert len(rows) == 3
    assert rows[1][:4] == ["1", "Top", "9000000002", "88.0"]
    assert rows[1][-2] == "yes"
    assert rows[2][1] == "Pending"
    assert rows[2][3] == ""
    assert rows[2][-2] == "no"
    assert rows[2][-1] == BASE_TIME.isoformat()
