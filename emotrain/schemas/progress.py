"""Pydantic schemas for progress records and progress events."""
from datetime import datetime

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    """What the player hands to the progress store: inputs only, no merge."""

    scenario_id: str
    score: int = Field(ge=0, le=100)
    completed: bool


class ProgressOutSchema(BaseModel):
    patient_id: str
    scenario_id: str
    scenario_title: str | None
    score: int
    completed: bool
    attempts: int
    last_attempted: datetime | None

    class Config:
        from_attributes = True
