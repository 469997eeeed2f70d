"""
Pytest configuration and fixtures: temp SQLite database, API client, tokens.
"""
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from emotrain.core.security import Role, SessionContext, create_session_token
from emotrain.db.base import Base
from emotrain.db.session import get_db, get_session_factory
from emotrain.schemas.scenario import (
    ChoiceSchema,
    ChoiceSegment,
    Difficulty,
    NarrativeSegment,
    RecognitionSegment,
    ScenarioSchema,
)
from emotrain.services.playthroughs import PlaythroughRegistry

THERAPIST = SessionContext(user_id="therapist-1", display_name="Dr. Lee", role=Role.THERAPIST)
OTHER_THERAPIST = SessionContext(user_id="therapist-2", display_name="Dr. Park", role=Role.THERAPIST)
USER = SessionContext(user_id="user-1", display_name="Sam")
OTHER_USER = SessionContext(user_id="user-2", display_name="Robin")


def auth_headers(ctx: SessionContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(ctx)}"}


def make_three_segment_scenario(scenario_id: str = "family-conflict") -> ScenarioSchema:
    """Recognition, choice (healthy option at index 1), narrative."""
    return ScenarioSchema(
        id=scenario_id,
        title="Family Dinner Disagreement",
        description="A disagreement about chores.",
        difficulty=Difficulty.BEGINNER,
        emotions=["Frustration", "Empathy"],
        story=[
            RecognitionSegment(
                id=1,
                narrative="Your mother mentions the dishes.",
                question="What is your mother feeling?",
                emotion_options=["Frustration", "Joy", "Fear"],
                correct_emotion="Frustration",
                emotion_explanation="Strained voice, repeated unmet expectations.",
            ),
            ChoiceSegment(
                id=2,
                narrative="You feel defensive.",
                choices=[
                    ChoiceSchema(
                        text="That's not fair!",
                        emotional_response="Defensiveness",
                        is_healthy=False,
                        feedback="Try acknowledging the concern first.",
                    ),
                    ChoiceSchema(
                        text="You're right, let's find a better system.",
                        emotional_response="Accountability",
                        is_healthy=True,
                        feedback="You acknowledged the concern.",
                    ),
                    ChoiceSchema(
                        text="Leave the table.",
                        emotional_response="Withdrawal",
                        is_healthy=False,
                        feedback="Avoidance leaves the issue unresolved.",
                    ),
                ],
            ),
            NarrativeSegment(id=3, narrative="The family agrees on a schedule."),
        ],
    )


@pytest.fixture
def scenario() -> ScenarioSchema:
    return make_three_segment_scenario()


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite file per test, tables created from the models."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client against the app, wired to the temp database.

    The lifespan (table creation, seeding) is not run; tests seed what they need.
    """
    from emotrain.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.playthroughs = PlaythroughRegistry()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
