"""Pick a practice scenario from free text: topic and emotion keyword overlap.

Pure and deterministic: the same (text, catalog) always gives the same id.
Ties go to the scenario listed first in the catalog.
"""
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from emotrain.core.errors import CatalogUnavailable
from emotrain.schemas.scenario import Difficulty, ScenarioSchema

logger = logging.getLogger(__name__)

TOPIC_POINTS = 3
EMOTION_POINTS = 2
GENTLE_START_POINTS = 1

# topic -> (keywords in the user's text, fragment expected in a matching scenario id)
TOPICS = [
    ("family", ("family", "parent"), "family"),
    ("work", ("work", "job", "colleague"), "workplace"),
    ("friends", ("friend", "trust", "betray"), "friendship"),
    ("social_anxiety", ("anxious", "social", "crowd"), "social"),
    ("relationship", ("relationship", "partner", "romantic"), "romantic"),
    ("academic", ("study", "exam", "school"), "academic"),
]

EMOTION_KEYWORDS = {
    "anger": ("angry", "mad", "frustrated", "annoyed"),
    "sadness": ("sad", "depressed", "unhappy", "disappointed"),
    "anxiety": ("anxious", "nervous", "worried", "stressed"),
    "fear": ("scared", "afraid", "fearful"),
    "joy": ("happy", "excited", "joyful"),
    "trust": ("trust", "betrayed", "loyal"),
    "surprise": ("surprised", "shocked"),
}

# Detected emotions that favour a Beginner scenario
GENTLE_START_EMOTIONS = ("anxiety", "fear")

# Offline mapping used when there is no catalog; first match wins
FALLBACK_RULES = [
    (("family", "parent"), "family-conflict"),
    (("work", "job"), "workplace-feedback"),
    (("friend", "trust"), "friendship-betrayal"),
    (("anxious", "social"), "social-anxiety"),
    (("relationship", "partner"), "romantic-miscommunication"),
    (("study", "exam"), "academic-pressure"),
]
DEFAULT_SCENARIO_ID = "family-conflict"


@dataclass(frozen=True)
class ContextAnalysis:
    topics: frozenset[str]
    emotions: tuple[str, ...]  # in EMOTION_KEYWORDS order, no duplicates


def _normalize(text) -> str:
    return text.lower() if isinstance(text, str) else ""


def analyze_context(text: str) -> ContextAnalysis:
    """Topic flags and emotion tags found by substring in the lower-cased text."""
    lower = _normalize(text)
    topics = frozenset(
        name for name, keywords, _ in TOPICS if any(k in lower for k in keywords)
    )
    emotions = tuple(
        emotion for emotion, words in EMOTION_KEYWORDS.items() if any(w in lower for w in words)
    )
    return ContextAnalysis(topics=topics, emotions=emotions)


def score_scenario(scenario: ScenarioSchema, analysis: ContextAnalysis) -> int:
    score = 0
    for name, _, id_fragment in TOPICS:
        if name in analysis.topics and id_fragment in scenario.id:
            score += TOPIC_POINTS

    if analysis.emotions:
        matching = [e for e in scenario.emotions if e.lower() in analysis.emotions]
        score += len(matching) * EMOTION_POINTS

    if (
        any(e in analysis.emotions for e in GENTLE_START_EMOTIONS)
        and scenario.difficulty == Difficulty.BEGINNER
    ):
        score += GENTLE_START_POINTS
    return score


def fallback_scenario_id(text: str) -> str:
    """Fixed keyword -> id mapping for when the catalog is empty or unreachable."""
    lower = _normalize(text)
    for keywords, scenario_id in FALLBACK_RULES:
        if any(k in lower for k in keywords):
            return scenario_id
    return DEFAULT_SCENARIO_ID


def best_match(catalog: Sequence[ScenarioSchema], analysis: ContextAnalysis) -> ScenarioSchema:
    """Highest score wins; on ties (including all zero) the earlier scenario stays."""
    best = catalog[0]
    highest = 0
    for scenario in catalog:
        score = score_scenario(scenario, analysis)
        if score > highest:
            highest = score
            best = scenario
    return best


def recommend(text: str, catalog: Sequence[ScenarioSchema]) -> str:
    """Return the id of the scenario that best fits ``text``. Never raises."""
    if not catalog:
        return fallback_scenario_id(text)
    return best_match(catalog, analyze_context(text)).id


async def recommend_from_source(
    text: str,
    load_catalog: Callable[[], Awaitable[Sequence[ScenarioSchema]]],
) -> tuple[str, bool]:
    """Recommend against a catalog that may fail to load.

    Returns (scenario_id, used_fallback). A catalog failure is logged and
    answered from the fixed fallback mapping instead.
    """
    try:
        catalog = await load_catalog()
    except CatalogUnavailable as e:
        logger.warning("Catalog unavailable, using fallback recommendation: %s", e)
        return fallback_scenario_id(text), True
    if not catalog:
        return fallback_scenario_id(text), True
    return recommend(text, catalog), False
