"""Patient records a therapist manages, and their activity summary."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from emotrain.core.errors import PatientNotFound
from emotrain.models.patient import STATUS_ACTIVE, STATUS_ARCHIVED, Patient
from emotrain.models.progress import ScenarioProgress
from emotrain.schemas.patient import PatientCreateSchema

logger = logging.getLogger(__name__)


@dataclass
class PatientActivity:
    completed_scenarios: int = 0
    last_active: datetime | None = None


async def list_patients(
    db: AsyncSession, therapist_id: str, include_archived: bool = False
) -> list[Patient]:
    query = select(Patient).where(Patient.therapist_id == therapist_id)
    if not include_archived:
        query = query.where(Patient.status == STATUS_ACTIVE)
    result = await db.execute(query.order_by(Patient.created_at, Patient.name))
    return list(result.scalars().all())


async def get_patient(
    db: AsyncSession, therapist_id: str, patient_id: str, active_only: bool = False
) -> Patient:
    """A therapist only sees their own patients; anything else is not found."""
    result = await db.execute(
        select(Patient).where(Patient.id == patient_id, Patient.therapist_id == therapist_id)
    )
    patient = result.scalar_one_or_none()
    if patient is None or (active_only and patient.status != STATUS_ACTIVE):
        raise PatientNotFound(patient_id)
    return patient


async def create_patient(
    db: AsyncSession, therapist_id: str, data: PatientCreateSchema
) -> Patient:
    patient = Patient(therapist_id=therapist_id, status=STATUS_ACTIVE, **data.model_dump())
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    logger.info("Therapist %s added patient %s", therapist_id, patient.id)
    return patient


async def update_patient(db: AsyncSession, patient: Patient, changes: dict) -> Patient:
    for key, value in changes.items():
        setattr(patient, key, value)
    await db.commit()
    await db.refresh(patient)
    return patient


async def archive_patient(db: AsyncSession, patient: Patient) -> Patient:
    """Archived patients drop out of the list; their progress is kept."""
    patient.status = STATUS_ARCHIVED
    await db.commit()
    await db.refresh(patient)
    logger.info("Patient %s archived", patient.id)
    return patient


async def patient_activity(
    db: AsyncSession, patient_ids: list[str]
) -> dict[str, PatientActivity]:
    """Completed scenario count and last attempt time per patient id."""
    if not patient_ids:
        return {}
    result = await db.execute(
        select(
            ScenarioProgress.patient_id,
            func.sum(case((ScenarioProgress.completed.is_(True), 1), else_=0)),
            func.max(ScenarioProgress.last_attempted),
        )
        .where(ScenarioProgress.patient_id.in_(patient_ids))
        .group_by(ScenarioProgress.patient_id)
    )
    return {
        pid: PatientActivity(completed_scenarios=int(completed or 0), last_active=last)
        for pid, completed, last in result.all()
    }
