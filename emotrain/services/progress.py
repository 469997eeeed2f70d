"""Progress store: merge writes into scenario_progress, best-effort from the player."""
import logging
from datetime import datetime, timezone

from sqlalchemy import case, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from emotrain.core.errors import PersistenceFailure
from emotrain.models.progress import ScenarioProgress
from emotrain.schemas.progress import ProgressEvent
from emotrain.services.scoring import merge_progress

logger = logging.getLogger(__name__)

SAVE_FAILED_NOTICE = "Failed to save progress"

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


async def upsert_progress(
    db: AsyncSession,
    patient_id: str,
    scenario_id: str,
    score: int,
    completed: bool,
    timestamp: datetime | None = None,
    scenario_title: str | None = None,
) -> ScenarioProgress:
    """Insert or merge one progress write (best score, sticky completion, attempts + 1).

    The merge happens in a single statement, so concurrent writes for the same
    (patient, scenario) never collide on the unique key or lose an attempt.

    Raises PersistenceFailure if the database rejects the write.
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    try:
        return await _upsert(db, patient_id, scenario_id, score, completed, timestamp, scenario_title)
    except SQLAlchemyError as e:
        try:
            await db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning("Rollback after failed progress save also failed: %s", rollback_error)
        raise PersistenceFailure(f"Could not save progress for {scenario_id!r}: {e}") from e


async def _upsert(db, patient_id, scenario_id, score, completed, timestamp, scenario_title):
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise PersistenceFailure(f"Progress upsert is not supported on {dialect!r}")

    # Values for a first write; the conflict branch folds into the stored row
    first = merge_progress(None, None, None, score, completed, timestamp)
    table = ScenarioProgress.__table__
    stmt = insert(table).values(
        patient_id=patient_id,
        scenario_id=scenario_id,
        scenario_title=scenario_title,
        score=first.score,
        completed=first.completed,
        attempts=first.attempts,
        last_attempted=first.last_attempted,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.patient_id, table.c.scenario_id],
        set_={
            "score": case(
                (stmt.excluded.score > table.c.score, stmt.excluded.score),
                else_=table.c.score,
            ),
            "completed": or_(table.c.completed, stmt.excluded.completed),
            "attempts": table.c.attempts + 1,
            "last_attempted": stmt.excluded.last_attempted,
            "scenario_title": func.coalesce(stmt.excluded.scenario_title, table.c.scenario_title),
            "updated_at": func.now(),
        },
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(ScenarioProgress)
        .where(
            ScenarioProgress.patient_id == patient_id,
            ScenarioProgress.scenario_id == scenario_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_progress(db: AsyncSession, patient_id: str) -> list[ScenarioProgress]:
    result = await db.execute(
        select(ScenarioProgress)
        .where(ScenarioProgress.patient_id == patient_id)
        .order_by(ScenarioProgress.id)
    )
    return list(result.scalars().all())


class ProgressWriter:
    """Fire-and-forget writes for the player.

    Runs after the response has gone out; a failure is logged and turned into
    a notice for the user, never raised, and never retried.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def write(
        self,
        patient_id: str | None,
        event: ProgressEvent,
        notices: list[str],
        scenario_title: str | None = None,
    ) -> bool:
        if not patient_id:
            logger.info("No patient id for %s, skipping progress save", event.scenario_id)
            return False
        try:
            async with self.session_factory() as db:
                await upsert_progress(
                    db,
                    patient_id=patient_id,
                    scenario_id=event.scenario_id,
                    score=event.score,
                    completed=event.completed,
                    scenario_title=scenario_title,
                )
        except PersistenceFailure as e:
            logger.warning(
                "Progress save failed for patient %s, scenario %s: %s",
                patient_id,
                event.scenario_id,
                e,
            )
            notices.append(SAVE_FAILED_NOTICE)
            return False
        logger.debug("Progress saved for patient %s, scenario %s", patient_id, event.scenario_id)
        return True
