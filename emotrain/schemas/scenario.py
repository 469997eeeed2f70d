"""Pydantic schemas for scenarios, segments and choices.

Segment is a tagged union on ``kind``: a segment either asks a recognition
question, offers choices, or is pure narrative. Never both.
"""
import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class Difficulty(str, enum.Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ChoiceSchema(BaseModel):
    text: str
    emotional_response: str
    is_healthy: bool
    feedback: str


class _SegmentBase(BaseModel):
    id: int
    narrative: str
    image_url: str | None = None
    character_emotion: str | None = None
    emotion_explanation: str | None = None


class NarrativeSegment(_SegmentBase):
    kind: Literal["narrative"] = "narrative"


class RecognitionSegment(_SegmentBase):
    kind: Literal["recognition"] = "recognition"
    question: str
    emotion_options: list[str] = Field(min_length=1)
    correct_emotion: str


class ChoiceSegment(_SegmentBase):
    kind: Literal["choice"] = "choice"
    choices: list[ChoiceSchema] = Field(min_length=1)


Segment = Annotated[
    Union[RecognitionSegment, ChoiceSegment, NarrativeSegment],
    Field(discriminator="kind"),
]


class ScenarioSchema(BaseModel):
    id: str
    title: str
    description: str = ""
    difficulty: Difficulty
    emotions: list[str] = Field(default_factory=list)
    story: list[Segment] = Field(min_length=1)

    @property
    def question_count(self) -> int:
        return sum(1 for s in self.story if s.kind != "narrative")


class ScenarioSummarySchema(BaseModel):
    """Catalog listing entry (no story)."""

    id: str
    title: str
    description: str
    difficulty: Difficulty
    emotions: list[str]
    segment_count: int
    question_count: int


class ScenarioImportOutSchema(BaseModel):
    scenario: ScenarioSchema
    anomalies: list[str]
