"""SQLAlchemy declarative base and model imports for Alembic."""
from emotrain.db.session import Base

# Import all models so Alembic can see them
from emotrain.models.patient import Patient  # noqa: F401
from emotrain.models.progress import ScenarioProgress  # noqa: F401
from emotrain.models.scenario import Scenario  # noqa: F401

__all__ = ["Base", "Patient", "Scenario", "ScenarioProgress"]
