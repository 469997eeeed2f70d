"""ScenarioProgress model: best score and attempts per (patient, scenario)."""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from emotrain.db.session import Base


class ScenarioProgress(Base):
    __tablename__ = "scenario_progress"
    __table_args__ = (
        UniqueConstraint("patient_id", "scenario_id", name="uq_progress_patient_scenario"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # A patient row id, or the user id of someone playing for themselves
    patient_id = Column(String(64), nullable=False, index=True)
    scenario_id = Column(String(64), nullable=False, index=True)
    scenario_title = Column(String(255), nullable=True)

    score = Column(Integer, nullable=False, default=0)  # best, 0-100
    completed = Column(Boolean, nullable=False, default=False)
    attempts = Column(Integer, nullable=False, default=0)
    last_attempted = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)
