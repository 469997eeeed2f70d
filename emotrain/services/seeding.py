"""Seed the scenarios table from the bundled catalog file."""
import logging
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from emotrain.models.scenario import Scenario
from emotrain.services.catalog import load_catalog_file, scenario_to_row

logger = logging.getLogger(__name__)


async def seed_scenarios(db: AsyncSession, path: Path) -> int:
    """Insert bundled scenarios if the table is empty. Returns how many were added."""
    result = await db.execute(select(func.count(Scenario.id)))
    if result.scalar_one() > 0:
        return 0

    scenarios = load_catalog_file(path)
    for order, scenario in enumerate(scenarios):
        db.add(scenario_to_row(scenario, sort_order=order))
    await db.commit()
    logger.info("Seeded %d scenarios from %s", len(scenarios), path)
    return len(scenarios)
