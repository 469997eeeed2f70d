"""Caregiver routes: a therapist's patient records. Therapist role only."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from emotrain.db.session import get_db
from emotrain.models.patient import Patient
from emotrain.routers.deps import TherapistSession
from emotrain.schemas.patient import PatientCreateSchema, PatientOutSchema, PatientUpdateSchema
from emotrain.services.catalog import ScenarioCatalog
from emotrain.services.patients import (
    PatientActivity,
    archive_patient,
    create_patient,
    get_patient,
    list_patients,
    patient_activity,
    update_patient,
)

router = APIRouter(prefix="/api/caregiver", tags=["caregiver"])

Db = Annotated[AsyncSession, Depends(get_db)]


def _out(patient: Patient, activity: PatientActivity | None, total: int) -> PatientOutSchema:
    out = PatientOutSchema.model_validate(patient)
    if activity is not None:
        out.completed_scenarios = activity.completed_scenarios
        out.last_active = activity.last_active
    out.total_scenarios = total
    return out


async def _single_out(db: AsyncSession, patient: Patient) -> PatientOutSchema:
    activity = await patient_activity(db, [patient.id])
    total = await ScenarioCatalog(db).count()
    return _out(patient, activity.get(patient.id), total)


@router.get("/patients", response_model=list[PatientOutSchema])
async def get_patients(ctx: TherapistSession, db: Db, include_archived: bool = False):
    """The calling therapist's patients with completed/total scenarios and last activity."""
    patients = await list_patients(db, ctx.user_id, include_archived=include_archived)
    activity = await patient_activity(db, [p.id for p in patients])
    total = await ScenarioCatalog(db).count()
    return [_out(p, activity.get(p.id), total) for p in patients]


@router.post("/patients", response_model=PatientOutSchema, status_code=201)
async def add_patient(body: PatientCreateSchema, ctx: TherapistSession, db: Db):
    patient = await create_patient(db, ctx.user_id, body)
    return await _single_out(db, patient)


@router.get("/patients/{patient_id}", response_model=PatientOutSchema)
async def get_one_patient(patient_id: str, ctx: TherapistSession, db: Db):
    patient = await get_patient(db, ctx.user_id, patient_id)
    return await _single_out(db, patient)


@router.patch("/patients/{patient_id}", response_model=PatientOutSchema)
async def edit_patient(patient_id: str, body: PatientUpdateSchema, ctx: TherapistSession, db: Db):
    """Patient settings. Only fields present in the body change."""
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        raise HTTPException(status_code=400, detail="Name cannot be cleared")
    patient = await get_patient(db, ctx.user_id, patient_id)
    patient = await update_patient(db, patient, changes)
    return await _single_out(db, patient)


@router.delete("/patients/{patient_id}", response_model=PatientOutSchema)
async def remove_patient(patient_id: str, ctx: TherapistSession, db: Db):
    """Archive the patient; records and progress are kept."""
    patient = await get_patient(db, ctx.user_id, patient_id)
    patient = await archive_patient(db, patient)
    return await _single_out(db, patient)
