"""Progress store merge and the best-effort writer."""
import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from emotrain.core.errors import PersistenceFailure
from emotrain.schemas.progress import ProgressEvent
from emotrain.services.progress import (
    SAVE_FAILED_NOTICE,
    ProgressWriter,
    list_progress,
    upsert_progress,
)


async def test_upsert_merges(db):
    t1 = datetime(2026, 3, 1, tzinfo=timezone.utc)
    t2 = datetime(2026, 3, 2, tzinfo=timezone.utc)

    await upsert_progress(db, "p1", "family-conflict", 100, True, t1, scenario_title="Family")
    record = await upsert_progress(db, "p1", "family-conflict", 50, False, t2)

    assert record.score == 100
    assert record.completed is True
    assert record.attempts == 2
    assert record.last_attempted.replace(tzinfo=timezone.utc) == t2
    assert record.scenario_title == "Family"


async def test_records_are_per_patient_and_scenario(db):
    await upsert_progress(db, "p1", "family-conflict", 100, True)
    await upsert_progress(db, "p1", "workplace-feedback", 50, True)
    await upsert_progress(db, "p2", "family-conflict", 0, True)

    mine = await list_progress(db, "p1")
    assert [(r.scenario_id, r.score) for r in mine] == [
        ("family-conflict", 100),
        ("workplace-feedback", 50),
    ]
    assert [r.score for r in await list_progress(db, "p2")] == [0]


async def test_writer_saves(session_factory, db):
    notices = []
    writer = ProgressWriter(session_factory)
    event = ProgressEvent(scenario_id="social-anxiety", score=67, completed=True)

    assert await writer.write("p1", event, notices, scenario_title="Meeting New People") is True
    assert notices == []

    records = await list_progress(db, "p1")
    assert records[0].score == 67
    assert records[0].attempts == 1


async def test_writer_skips_without_patient(session_factory):
    notices = []
    event = ProgressEvent(scenario_id="social-anxiety", score=67, completed=True)
    assert await ProgressWriter(session_factory).write(None, event, notices) is False
    assert notices == []


async def test_writer_failure_becomes_notice(tmp_path):
    # no tables: every write fails
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'broken.db'}")
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    notices = []
    event = ProgressEvent(scenario_id="social-anxiety", score=67, completed=True)

    assert await ProgressWriter(factory).write("p1", event, notices) is False
    assert notices == [SAVE_FAILED_NOTICE]
    await engine.dispose()


def test_event_score_bounds():
    with pytest.raises(ValueError):
        ProgressEvent(scenario_id="x", score=101, completed=True)


async def test_concurrent_writes_all_count(session_factory, db):
    writer = ProgressWriter(session_factory)
    notices = []
    events = [
        ProgressEvent(scenario_id="family-conflict", score=score, completed=score == 100)
        for score in (20, 100, 40, 60, 80)
    ]

    results = await asyncio.gather(*(writer.write("p1", e, notices) for e in events))

    assert results == [True] * 5
    assert notices == []
    records = await list_progress(db, "p1")
    assert len(records) == 1
    assert records[0].attempts == 5
    assert records[0].score == 100
    assert records[0].completed is True


async def test_failed_rollback_still_reports_persistence_failure(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'broken.db'}")
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def rollback():
        raise OperationalError("ROLLBACK", {}, Exception("disk I/O error"))

    async with factory() as db:
        monkeypatch.setattr(db, "rollback", rollback)
        with pytest.raises(PersistenceFailure):
            await upsert_progress(db, "p1", "social-anxiety", 67, True)
    await engine.dispose()
