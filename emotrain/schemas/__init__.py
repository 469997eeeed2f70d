from emotrain.schemas.patient import PatientCreateSchema, PatientOutSchema, PatientUpdateSchema
from emotrain.schemas.playthrough import PlaythroughOutSchema, RecommendationOutSchema
from emotrain.schemas.progress import ProgressEvent, ProgressOutSchema
from emotrain.schemas.scenario import (
    ChoiceSchema,
    ChoiceSegment,
    Difficulty,
    NarrativeSegment,
    RecognitionSegment,
    ScenarioSchema,
    Segment,
)

__all__ = [
    "ChoiceSchema",
    "ChoiceSegment",
    "Difficulty",
    "NarrativeSegment",
    "PatientCreateSchema",
    "PatientOutSchema",
    "PatientUpdateSchema",
    "PlaythroughOutSchema",
    "ProgressEvent",
    "ProgressOutSchema",
    "RecognitionSegment",
    "RecommendationOutSchema",
    "ScenarioSchema",
    "Segment",
]
