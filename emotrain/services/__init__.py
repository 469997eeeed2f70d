from emotrain.services.player import ScenarioPlayer
from emotrain.services.recommendation import recommend
from emotrain.services.scoring import merge_progress, percentage
from emotrain.services.seeding import seed_scenarios

__all__ = ["ScenarioPlayer", "merge_progress", "percentage", "recommend", "seed_scenarios"]
