"""Pydantic schemas for the play-through HTTP surface."""
from pydantic import BaseModel, Field

from emotrain.schemas.scenario import Segment


class PlaythroughStartSchema(BaseModel):
    scenario_id: str
    patient_id: str | None = None  # therapists play on behalf of a patient


class EmotionAnswerSchema(BaseModel):
    label: str


class ChoiceAnswerSchema(BaseModel):
    choice_index: int = Field(ge=0)


class AnswerFeedbackSchema(BaseModel):
    correct: bool
    message: str
    explanation: str | None = None


class PlaythroughOutSchema(BaseModel):
    id: str
    scenario_id: str
    scenario_title: str
    patient_id: str | None
    position: int
    segment_count: int
    segment: Segment | None
    selected_emotion: str | None
    selected_choice: int | None
    answered: bool
    can_advance: bool
    correct_answers: int
    total_questions: int
    accuracy: int | None
    progress_percent: int
    complete: bool
    final_score: int | None
    notices: list[str]
    feedback: AnswerFeedbackSchema | None = None


class RecommendationInSchema(BaseModel):
    text: str = ""


class RecommendationOutSchema(BaseModel):
    scenario_id: str
    topics: list[str]
    emotions: list[str]
    used_fallback: bool
