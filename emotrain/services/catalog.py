"""Scenario catalog: parse external scenario JSON and read/write catalog rows.

Scenario content comes from authored JSON, the database, or AI generation, so
its shape is checked here, once, instead of at use time. Segment problems are
degraded (and reported as anomalies); scenario-level problems are rejected.

Segment shape accepted (camelCase as authored, or the snake_case we store):
    {id, narrative, imageUrl?, characterEmotion?, emotionExplanation?,
     emotionRecognitionQuestion?, emotionOptions?, correctEmotion?,
     choices?: [{text, emotionalResponse, isHealthy, feedback}]}
"""
import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from emotrain.core.errors import CatalogUnavailable, MalformedScenarioData, ScenarioNotFound
from emotrain.models.scenario import Scenario
from emotrain.schemas.scenario import (
    ChoiceSchema,
    ChoiceSegment,
    Difficulty,
    NarrativeSegment,
    RecognitionSegment,
    ScenarioSchema,
    Segment,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _get(raw: dict, *keys: str, default: Any = None) -> Any:
    """First present key wins, so authored and stored shapes both parse."""
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _parse_choice(raw: Any) -> ChoiceSchema | None:
    if not isinstance(raw, dict):
        return None
    text = _opt_str(raw.get("text"))
    healthy = _get(raw, "isHealthy", "is_healthy")
    if text is None or not isinstance(healthy, bool):
        return None
    return ChoiceSchema(
        text=text,
        emotional_response=_opt_str(_get(raw, "emotionalResponse", "emotional_response")) or "",
        is_healthy=healthy,
        feedback=_opt_str(raw.get("feedback")) or "",
    )


def parse_segment(raw: Any, index: int) -> tuple[Segment, list[str]]:
    """Turn one raw segment into a Segment variant plus any anomalies found.

    When a segment carries both a recognition question and choices, the
    recognition question is kept and the choices are dropped.
    """
    anomalies: list[str] = []
    where = f"segment {index + 1}"

    if not isinstance(raw, dict):
        anomalies.append(f"{where}: not an object, shown as empty narrative")
        return NarrativeSegment(id=index + 1, narrative=""), anomalies

    seg_id = raw.get("id")
    if not isinstance(seg_id, int) or isinstance(seg_id, bool):
        seg_id = index + 1

    narrative = raw.get("narrative")
    if not isinstance(narrative, str):
        anomalies.append(f"{where}: missing narrative")
        narrative = ""

    common = {
        "id": seg_id,
        "narrative": narrative,
        "image_url": _opt_str(_get(raw, "imageUrl", "image_url")),
        "character_emotion": _opt_str(_get(raw, "characterEmotion", "character_emotion")),
        "emotion_explanation": _opt_str(_get(raw, "emotionExplanation", "emotion_explanation")),
    }

    question = _get(raw, "emotionRecognitionQuestion", "question", default=_MISSING)
    options = _get(raw, "emotionOptions", "emotion_options", default=_MISSING)
    correct = _get(raw, "correctEmotion", "correct_emotion", default=_MISSING)
    has_recognition = any(v is not _MISSING and v is not None for v in (question, options, correct))

    raw_choices = raw.get("choices")
    choices = []
    if raw_choices is not None:
        if isinstance(raw_choices, list):
            for n, raw_choice in enumerate(raw_choices):
                choice = _parse_choice(raw_choice)
                if choice is None:
                    anomalies.append(f"{where}: choice {n + 1} malformed, dropped")
                else:
                    choices.append(choice)
        else:
            anomalies.append(f"{where}: choices is not a list")

    if has_recognition:
        option_list = (
            [o for o in options if isinstance(o, str) and o.strip()]
            if isinstance(options, list)
            else []
        )
        if _opt_str(question) and option_list and correct in option_list:
            if raw_choices:
                anomalies.append(
                    f"{where}: has both a recognition question and choices; choices ignored"
                )
            return (
                RecognitionSegment(
                    question=question,
                    emotion_options=option_list,
                    correct_emotion=correct,
                    **common,
                ),
                anomalies,
            )
        anomalies.append(f"{where}: incomplete recognition question, ignored")

    if choices:
        return ChoiceSegment(choices=choices, **common), anomalies
    if raw_choices is not None:
        anomalies.append(f"{where}: no usable choices, shown as narrative")
    return NarrativeSegment(**common), anomalies


def _parse_difficulty(value: Any) -> Difficulty | None:
    if not isinstance(value, str):
        return None
    for difficulty in Difficulty:
        if difficulty.value.lower() == value.strip().lower():
            return difficulty
    return None


def parse_scenario(raw: Any) -> tuple[ScenarioSchema, list[str]]:
    """Validate one scenario; raises MalformedScenarioData if it cannot be played."""
    if not isinstance(raw, dict):
        raise MalformedScenarioData("Scenario must be a JSON object")

    scenario_id = _opt_str(raw.get("id"))
    if scenario_id is None:
        raise MalformedScenarioData("Scenario id is required")
    scenario_id = scenario_id.strip()

    title = _opt_str(raw.get("title"))
    if title is None:
        raise MalformedScenarioData(f"Scenario {scenario_id!r}: title is required")

    difficulty = _parse_difficulty(raw.get("difficulty"))
    if difficulty is None:
        raise MalformedScenarioData(
            f"Scenario {scenario_id!r}: unknown difficulty {raw.get('difficulty')!r}"
        )

    story = raw.get("story")
    if not isinstance(story, list) or not story:
        raise MalformedScenarioData(f"Scenario {scenario_id!r}: story must be a non-empty list")

    anomalies: list[str] = []
    emotions = raw.get("emotions", [])
    if not isinstance(emotions, list):
        anomalies.append("emotions is not a list, ignored")
        emotions = []
    emotions = [e for e in emotions if isinstance(e, str) and e.strip()]

    segments = []
    for index, raw_segment in enumerate(story):
        segment, segment_anomalies = parse_segment(raw_segment, index)
        segments.append(segment)
        anomalies.extend(segment_anomalies)

    description = raw.get("description")
    scenario = ScenarioSchema(
        id=scenario_id,
        title=title,
        description=description if isinstance(description, str) else "",
        difficulty=difficulty,
        emotions=emotions,
        story=segments,
    )
    for anomaly in anomalies:
        logger.warning("Scenario %s: %s", scenario_id, anomaly)
    return scenario, anomalies


def load_catalog_file(path: Path) -> list[ScenarioSchema]:
    """Read bundled catalog JSON (a list of scenarios); unplayable entries are skipped."""
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise MalformedScenarioData(f"{path}: expected a list of scenarios")

    scenarios = []
    for raw in data:
        try:
            scenario, _ = parse_scenario(raw)
        except MalformedScenarioData as e:
            logger.warning("Skipping bundled scenario: %s", e)
            continue
        scenarios.append(scenario)
    return scenarios


def scenario_to_row(scenario: ScenarioSchema, sort_order: int = 0) -> Scenario:
    return Scenario(
        id=scenario.id,
        title=scenario.title,
        description=scenario.description,
        difficulty=scenario.difficulty.value,
        emotions_json=json.dumps(scenario.emotions),
        story_json=json.dumps([s.model_dump(exclude_none=True) for s in scenario.story]),
        sort_order=sort_order,
    )


def row_to_scenario(row: Scenario) -> ScenarioSchema:
    try:
        raw = {
            "id": row.id,
            "title": row.title,
            "description": row.description,
            "difficulty": row.difficulty,
            "emotions": json.loads(row.emotions_json or "[]"),
            "story": json.loads(row.story_json),
        }
    except (TypeError, ValueError) as e:
        raise MalformedScenarioData(f"Scenario {row.id!r}: stored JSON unreadable: {e}") from e
    scenario, _ = parse_scenario(raw)
    return scenario


class ScenarioCatalog:
    """Catalog backed by the scenarios table, in catalog (sort) order."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_scenarios(self) -> list[ScenarioSchema]:
        try:
            result = await self.db.execute(
                select(Scenario).order_by(Scenario.sort_order, Scenario.created_at, Scenario.id)
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise CatalogUnavailable(f"Could not read scenarios: {e}") from e

        scenarios = []
        for row in rows:
            try:
                scenarios.append(row_to_scenario(row))
            except MalformedScenarioData as e:
                logger.warning("Skipping stored scenario: %s", e)
        return scenarios

    async def get_scenario(self, scenario_id: str) -> ScenarioSchema:
        """Raises ScenarioNotFound when the id is unknown, unplayable or unreadable."""
        try:
            result = await self.db.execute(select(Scenario).where(Scenario.id == scenario_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Could not load scenario %s: %s", scenario_id, e)
            raise ScenarioNotFound(scenario_id) from e
        if row is None:
            raise ScenarioNotFound(scenario_id)
        try:
            return row_to_scenario(row)
        except MalformedScenarioData as e:
            logger.warning("Stored scenario %s is not playable: %s", scenario_id, e)
            raise ScenarioNotFound(scenario_id) from e

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Scenario.id)))
        return result.scalar_one()

    async def save_scenario(self, scenario: ScenarioSchema) -> None:
        """Insert or replace; new ids go to the end of the catalog order."""
        existing = await self.db.get(Scenario, scenario.id)
        if existing is not None:
            row = scenario_to_row(scenario, existing.sort_order)
            for column in ("title", "description", "difficulty", "emotions_json", "story_json"):
                setattr(existing, column, getattr(row, column))
        else:
            result = await self.db.execute(select(func.max(Scenario.sort_order)))
            current_max = result.scalar_one_or_none()
            sort_order = 0 if current_max is None else current_max + 1
            self.db.add(scenario_to_row(scenario, sort_order))
        await self.db.commit()
