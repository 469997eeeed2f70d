"""Scenario model: one catalog entry; story segments stored as JSON."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from emotrain.db.session import Base

# SQLite doesn't have native JSON; we use Text and store JSON string.
# story_json keeps the external camelCase segment shape and is parsed at read time.


class Scenario(Base):
    __tablename__ = "scenarios"

    id = Column(String(64), primary_key=True)  # e.g. "family-conflict"
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    difficulty = Column(String(16), nullable=False)  # Beginner | Intermediate | Advanced
    emotions_json = Column(Text, nullable=False, default="[]")
    story_json = Column(Text, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)  # catalog iteration order
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
