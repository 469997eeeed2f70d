from emotrain.models.patient import Patient
from emotrain.models.progress import ScenarioProgress
from emotrain.models.scenario import Scenario

__all__ = ["Patient", "Scenario", "ScenarioProgress"]
