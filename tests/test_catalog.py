"""Scenario JSON parsing at the boundary, and the database-backed catalog."""
import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from emotrain.core.config import get_settings
from emotrain.core.errors import CatalogUnavailable, MalformedScenarioData, ScenarioNotFound
from emotrain.models.scenario import Scenario
from emotrain.schemas.scenario import (
    ChoiceSegment,
    Difficulty,
    NarrativeSegment,
    RecognitionSegment,
)
from emotrain.services.catalog import (
    ScenarioCatalog,
    load_catalog_file,
    parse_scenario,
    parse_segment,
)
from emotrain.services.seeding import seed_scenarios

CHOICES = [
    {"text": "Shout", "emotionalResponse": "Anger", "isHealthy": False, "feedback": "Hm."},
    {"text": "Talk", "emotionalResponse": "Openness", "isHealthy": True, "feedback": "Good."},
]


def _raw_scenario(**overrides):
    raw = {
        "id": "imported",
        "title": "Imported",
        "description": "From an author",
        "difficulty": "Beginner",
        "emotions": ["Joy"],
        "story": [{"id": 1, "narrative": "Once."}],
    }
    raw.update(overrides)
    return raw


def test_recognition_segment():
    segment, anomalies = parse_segment(
        {
            "id": 1,
            "narrative": "Text",
            "emotionRecognitionQuestion": "How?",
            "emotionOptions": ["Joy", "Fear"],
            "correctEmotion": "Fear",
            "imageUrl": "https://example.com/a.jpg",
        },
        0,
    )
    assert isinstance(segment, RecognitionSegment)
    assert segment.correct_emotion == "Fear"
    assert segment.image_url == "https://example.com/a.jpg"
    assert anomalies == []


def test_choice_segment():
    segment, anomalies = parse_segment(
        {"id": 2, "narrative": "Text", "characterEmotion": "Hurt", "choices": CHOICES}, 1
    )
    assert isinstance(segment, ChoiceSegment)
    assert [c.is_healthy for c in segment.choices] == [False, True]
    assert segment.character_emotion == "Hurt"
    assert anomalies == []


def test_plain_narrative():
    segment, anomalies = parse_segment({"id": 3, "narrative": "The end."}, 2)
    assert isinstance(segment, NarrativeSegment)
    assert anomalies == []


def test_both_modes_keeps_recognition():
    segment, anomalies = parse_segment(
        {
            "id": 1,
            "narrative": "Text",
            "emotionRecognitionQuestion": "How?",
            "emotionOptions": ["Joy", "Fear"],
            "correctEmotion": "Joy",
            "choices": CHOICES,
        },
        0,
    )
    assert isinstance(segment, RecognitionSegment)
    assert any("choices ignored" in a for a in anomalies)


def test_incomplete_recognition_falls_back_to_choices():
    segment, anomalies = parse_segment(
        {
            "id": 1,
            "narrative": "Text",
            "emotionRecognitionQuestion": "How?",
            "emotionOptions": ["Joy"],
            "correctEmotion": "Anger",
            "choices": CHOICES,
        },
        0,
    )
    assert isinstance(segment, ChoiceSegment)
    assert any("incomplete recognition" in a for a in anomalies)


def test_incomplete_recognition_becomes_narrative():
    segment, anomalies = parse_segment({"id": 1, "narrative": "Text", "correctEmotion": "Joy"}, 0)
    assert isinstance(segment, NarrativeSegment)
    assert anomalies


def test_malformed_choices_dropped():
    segment, anomalies = parse_segment(
        {"id": 1, "narrative": "Text", "choices": [CHOICES[1], {"text": "No flag"}, "junk"]}, 0
    )
    assert isinstance(segment, ChoiceSegment)
    assert len(segment.choices) == 1
    assert len(anomalies) == 2


def test_no_usable_choices_becomes_narrative():
    segment, anomalies = parse_segment({"id": 1, "narrative": "Text", "choices": []}, 0)
    assert isinstance(segment, NarrativeSegment)
    assert any("no usable choices" in a for a in anomalies)


def test_non_object_segment():
    segment, anomalies = parse_segment("oops", 4)
    assert isinstance(segment, NarrativeSegment)
    assert segment.id == 5
    assert anomalies


def test_parse_scenario_difficulty_case_insensitive():
    scenario, anomalies = parse_scenario(_raw_scenario(difficulty="advanced"))
    assert scenario.difficulty == Difficulty.ADVANCED
    assert anomalies == []


@pytest.mark.parametrize(
    "raw",
    [
        "not an object",
        _raw_scenario(id=""),
        _raw_scenario(title=None),
        _raw_scenario(difficulty="Expert"),
        _raw_scenario(story=[]),
        _raw_scenario(story="once upon a time"),
    ],
)
def test_unplayable_scenarios_rejected(raw):
    with pytest.raises(MalformedScenarioData):
        parse_scenario(raw)


def test_bundled_catalog_is_clean():
    scenarios = load_catalog_file(get_settings().catalog_path)
    assert [s.id for s in scenarios] == [
        "family-conflict",
        "workplace-feedback",
        "friendship-betrayal",
        "social-anxiety",
        "romantic-miscommunication",
        "academic-pressure",
    ]
    for s in scenarios:
        assert s.question_count == 3
        assert isinstance(s.story[0], RecognitionSegment)
        assert isinstance(s.story[1], ChoiceSegment)
        assert sum(c.is_healthy for c in s.story[1].choices) == 1
    assert len(scenarios[4].story) == 5


async def test_seed_then_read_back(db):
    added = await seed_scenarios(db, get_settings().catalog_path)
    assert added == 6
    # second run leaves a populated table alone
    assert await seed_scenarios(db, get_settings().catalog_path) == 0

    catalog = ScenarioCatalog(db)
    assert await catalog.count() == 6
    listed = await catalog.list_scenarios()
    assert listed[0].id == "family-conflict"
    assert listed[-1].id == "academic-pressure"

    scenario = await catalog.get_scenario("workplace-feedback")
    assert isinstance(scenario.story[1], ChoiceSegment)
    assert scenario.story[0].question == "What emotion might you be experiencing right now?"


async def test_get_unknown_scenario(db):
    with pytest.raises(ScenarioNotFound):
        await ScenarioCatalog(db).get_scenario("nope")


async def test_save_appends_and_replaces_in_place(db):
    catalog = ScenarioCatalog(db)
    first, _ = parse_scenario(_raw_scenario(id="first"))
    second, _ = parse_scenario(_raw_scenario(id="second"))
    await catalog.save_scenario(first)
    await catalog.save_scenario(second)

    renamed, _ = parse_scenario(_raw_scenario(id="first", title="Renamed"))
    await catalog.save_scenario(renamed)

    listed = await catalog.list_scenarios()
    assert [s.id for s in listed] == ["first", "second"]
    assert listed[0].title == "Renamed"


async def test_unreadable_row_skipped(db):
    db.add(
        Scenario(
            id="broken",
            title="Broken",
            description="",
            difficulty="Beginner",
            emotions_json="[]",
            story_json="{not json",
            sort_order=0,
        )
    )
    good, _ = parse_scenario(_raw_scenario(id="good", story=[{"id": 1, "narrative": "x"}]))
    db.add(
        Scenario(
            id="good",
            title="Good",
            description="",
            difficulty="Beginner",
            emotions_json=json.dumps(["Joy"]),
            story_json=json.dumps([s.model_dump() for s in good.story]),
            sort_order=1,
        )
    )
    await db.commit()

    catalog = ScenarioCatalog(db)
    assert [s.id for s in await catalog.list_scenarios()] == ["good"]
    with pytest.raises(ScenarioNotFound):
        await catalog.get_scenario("broken")


async def test_missing_table_is_catalog_unavailable(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    async with AsyncSession(engine) as session:
        with pytest.raises(CatalogUnavailable):
            await ScenarioCatalog(session).list_scenarios()
    async with AsyncSession(engine) as session:
        with pytest.raises(ScenarioNotFound):
            await ScenarioCatalog(session).get_scenario("family-conflict")
    await engine.dispose()
