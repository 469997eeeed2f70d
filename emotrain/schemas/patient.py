"""Pydantic schemas for caregiver patient records."""
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field


def _check_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value


def _check_email(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if "@" not in value:
        raise ValueError("Please enter a valid email")
    return value.lower()


PatientName = Annotated[str, Field(max_length=255), AfterValidator(_check_name)]
OptionalEmail = Annotated[str | None, AfterValidator(_check_email)]


class PatientCreateSchema(BaseModel):
    name: PatientName
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = None
    email: OptionalEmail = None
    notes: str | None = None


class PatientUpdateSchema(BaseModel):
    """Partial update; fields left out are unchanged, explicit null clears."""

    name: PatientName | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = None
    email: OptionalEmail = None
    notes: str | None = None


class PatientOutSchema(BaseModel):
    id: str
    name: str
    age: int | None
    gender: str | None
    email: str | None
    notes: str | None
    status: str
    created_at: datetime | None
    last_active: datetime | None = None
    completed_scenarios: int = 0
    total_scenarios: int = 0

    class Config:
        from_attributes = True
