"""Patient model: records a therapist manages; status 'archived' hides them."""
import uuid

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from emotrain.db.session import Base

STATUS_ACTIVE = "active"
STATUS_ARCHIVED = "archived"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    therapist_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)
