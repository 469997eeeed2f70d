"""API routes: JSON for scenarios, recommendations, play-throughs, progress."""
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from emotrain.core.config import get_settings
from emotrain.core.errors import NotAuthorized
from emotrain.db.session import get_db
from emotrain.routers.deps import CurrentSession, Registry, TherapistSession, Writer
from emotrain.schemas.playthrough import (
    AnswerFeedbackSchema,
    ChoiceAnswerSchema,
    EmotionAnswerSchema,
    PlaythroughOutSchema,
    PlaythroughStartSchema,
    RecommendationInSchema,
    RecommendationOutSchema,
)
from emotrain.schemas.progress import ProgressOutSchema
from emotrain.schemas.scenario import (
    ScenarioImportOutSchema,
    ScenarioSchema,
    ScenarioSummarySchema,
)
from emotrain.services.catalog import ScenarioCatalog, parse_scenario
from emotrain.services.patients import get_patient
from emotrain.services.playthroughs import Playthrough
from emotrain.services.progress import ProgressWriter, list_progress
from emotrain.services.recommendation import TOPICS, analyze_context, recommend_from_source

router = APIRouter(prefix="/api", tags=["api"])
settings = get_settings()

Db = Annotated[AsyncSession, Depends(get_db)]


def _to_state(pt: Playthrough, feedback: AnswerFeedbackSchema | None = None) -> PlaythroughOutSchema:
    player = pt.player
    return PlaythroughOutSchema(
        id=pt.id,
        scenario_id=player.scenario_id,
        scenario_title=player.scenario.title,
        patient_id=pt.patient_id,
        position=player.position,
        segment_count=player.segment_count,
        segment=player.current_segment,
        selected_emotion=player.selected_emotion,
        selected_choice=player.selected_choice,
        answered=player.is_answered,
        can_advance=player.can_advance,
        correct_answers=player.correct_answers,
        total_questions=player.total_questions,
        accuracy=player.accuracy,
        progress_percent=player.progress_percent,
        complete=player.is_complete,
        final_score=player.final_score if player.is_complete else None,
        notices=pt.take_notices(),
        feedback=feedback,
    )


def _schedule_writes(pt: Playthrough, background_tasks: BackgroundTasks, writer: ProgressWriter) -> None:
    """Progress writes run after the response; failures come back as notices."""
    for event in pt.take_events():
        background_tasks.add_task(
            writer.write,
            pt.patient_id,
            event,
            pt.notices,
            pt.player.scenario.title,
        )


# ---------- scenarios ----------

@router.get("/scenarios", response_model=list[ScenarioSummarySchema])
async def list_scenarios(db: Db):
    """Catalog in display order, without stories."""
    scenarios = await ScenarioCatalog(db).list_scenarios()
    return [
        ScenarioSummarySchema(
            id=s.id,
            title=s.title,
            description=s.description,
            difficulty=s.difficulty,
            emotions=s.emotions,
            segment_count=len(s.story),
            question_count=s.question_count,
        )
        for s in scenarios
    ]


@router.get("/scenarios/{scenario_id}", response_model=ScenarioSchema)
async def get_scenario(scenario_id: str, db: Db):
    return await ScenarioCatalog(db).get_scenario(scenario_id)


@router.post("/scenarios/import", response_model=ScenarioImportOutSchema, status_code=201)
async def import_scenario(
    ctx: TherapistSession,
    db: Db,
    raw: Annotated[Any, Body()],
):
    """Validate authored or generated scenario JSON and store it.

    Segment problems are repaired and listed in ``anomalies``; a scenario that
    cannot be played at all is rejected with 422.
    """
    scenario, anomalies = parse_scenario(raw)
    await ScenarioCatalog(db).save_scenario(scenario)
    return ScenarioImportOutSchema(scenario=scenario, anomalies=anomalies)


@router.post("/recommendations", response_model=RecommendationOutSchema)
async def recommend_scenario(body: RecommendationInSchema, db: Db):
    """Suggest a scenario for what the user wrote about their situation."""
    catalog = ScenarioCatalog(db)
    scenario_id, used_fallback = await recommend_from_source(body.text, catalog.list_scenarios)
    analysis = analyze_context(body.text)
    return RecommendationOutSchema(
        scenario_id=scenario_id,
        topics=[name for name, _, _ in TOPICS if name in analysis.topics],
        emotions=list(analysis.emotions),
        used_fallback=used_fallback,
    )


# ---------- play-throughs ----------

@router.post("/playthroughs", response_model=PlaythroughOutSchema, status_code=201)
async def start_playthrough(
    body: PlaythroughStartSchema,
    ctx: CurrentSession,
    db: Db,
    registry: Registry,
):
    """Start a scenario. Users play as themselves; a therapist may play for a patient."""
    patient_id = ctx.user_id
    if body.patient_id and body.patient_id != ctx.user_id:
        if not ctx.is_therapist:
            raise NotAuthorized("Only a therapist can play on behalf of a patient")
        patient = await get_patient(db, ctx.user_id, body.patient_id, active_only=True)
        patient_id = patient.id

    scenario = await ScenarioCatalog(db).get_scenario(body.scenario_id)
    pt = registry.start(
        owner_id=ctx.user_id,
        patient_id=patient_id,
        scenario=scenario,
        report_partial=settings.save_partial_progress,
    )
    return _to_state(pt)


@router.get("/playthroughs/{playthrough_id}", response_model=PlaythroughOutSchema)
async def get_playthrough(playthrough_id: str, ctx: CurrentSession, registry: Registry):
    return _to_state(registry.get(playthrough_id, ctx.user_id))


@router.post("/playthroughs/{playthrough_id}/emotion", response_model=PlaythroughOutSchema)
async def answer_emotion(
    playthrough_id: str,
    body: EmotionAnswerSchema,
    ctx: CurrentSession,
    registry: Registry,
    writer: Writer,
    background_tasks: BackgroundTasks,
):
    """Answer the current recognition question."""
    pt = registry.get(playthrough_id, ctx.user_id)
    segment = pt.player.current_segment
    correct = pt.player.select_emotion(body.label)
    if correct:
        message = "Correct! Well recognized."
    else:
        message = f"Not quite. The emotion was {segment.correct_emotion}."
    feedback = AnswerFeedbackSchema(
        correct=correct,
        message=message,
        explanation=segment.emotion_explanation,
    )
    _schedule_writes(pt, background_tasks, writer)
    return _to_state(pt, feedback)


@router.post("/playthroughs/{playthrough_id}/choice", response_model=PlaythroughOutSchema)
async def answer_choice(
    playthrough_id: str,
    body: ChoiceAnswerSchema,
    ctx: CurrentSession,
    registry: Registry,
    writer: Writer,
    background_tasks: BackgroundTasks,
):
    """Pick a response option on the current choice segment."""
    pt = registry.get(playthrough_id, ctx.user_id)
    segment = pt.player.current_segment
    healthy = pt.player.select_choice(body.choice_index)
    feedback = AnswerFeedbackSchema(
        correct=healthy,
        message="Healthy emotional response!" if healthy else "Consider a more constructive approach.",
        explanation=segment.choices[body.choice_index].feedback,
    )
    _schedule_writes(pt, background_tasks, writer)
    return _to_state(pt, feedback)


@router.post("/playthroughs/{playthrough_id}/advance", response_model=PlaythroughOutSchema)
async def advance_playthrough(
    playthrough_id: str,
    ctx: CurrentSession,
    registry: Registry,
    writer: Writer,
    background_tasks: BackgroundTasks,
):
    """Continue to the next segment; on the last one, finish and save the score."""
    pt = registry.get(playthrough_id, ctx.user_id)
    pt.player.advance()
    registry.touch(pt)
    _schedule_writes(pt, background_tasks, writer)
    return _to_state(pt)


@router.post("/playthroughs/{playthrough_id}/restart", response_model=PlaythroughOutSchema)
async def restart_playthrough(playthrough_id: str, ctx: CurrentSession, registry: Registry):
    """Practice the same scenario again from the start."""
    pt = registry.get(playthrough_id, ctx.user_id)
    pt.player.restart()
    registry.touch(pt)
    return _to_state(pt)


@router.delete("/playthroughs/{playthrough_id}", status_code=204)
async def abandon_playthrough(playthrough_id: str, ctx: CurrentSession, registry: Registry):
    """Leave mid-scenario; the play-through is dropped without a completion write."""
    registry.discard(playthrough_id, ctx.user_id)


# ---------- progress ----------

@router.get("/progress", response_model=list[ProgressOutSchema])
async def my_progress(ctx: CurrentSession, db: Db):
    return await list_progress(db, ctx.user_id)


@router.get("/progress/{patient_id}", response_model=list[ProgressOutSchema])
async def patient_progress(patient_id: str, ctx: TherapistSession, db: Db):
    """Progress for one of the calling therapist's patients."""
    patient = await get_patient(db, ctx.user_id, patient_id)
    return await list_progress(db, patient.id)
