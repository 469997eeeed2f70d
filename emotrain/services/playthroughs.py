"""Live play-throughs, kept in memory per app instance and keyed by a random id.

A play-through is ephemeral: only the score it reports survives it.
"""
import logging
import time
import uuid
from dataclasses import dataclass, field

from cachetools import TLRUCache

from emotrain.core.errors import PlaythroughNotFound
from emotrain.schemas.progress import ProgressEvent
from emotrain.schemas.scenario import ScenarioSchema
from emotrain.services.player import ScenarioPlayer

logger = logging.getLogger(__name__)


@dataclass
class Playthrough:
    id: str
    owner_id: str  # user who started it
    patient_id: str | None  # whose progress it counts towards
    player: ScenarioPlayer
    notices: list[str] = field(default_factory=list)
    # events emitted by the player, waiting to be written
    pending: list[ProgressEvent] = field(default_factory=list)

    def take_notices(self) -> list[str]:
        """Notices are transient: returned once, then cleared."""
        notices = list(self.notices)
        self.notices.clear()
        return notices

    def take_events(self) -> list[ProgressEvent]:
        events = list(self.pending)
        self.pending.clear()
        return events


class PlaythroughRegistry:
    """Live play-throughs with a bounded lifetime.

    Every lookup renews an entry. An unfinished play-through lives for
    ``idle_ttl`` seconds after its last touch; a finished one only for
    ``restart_window``, long enough to read the result or play again.
    ``maxsize`` caps the total, dropping the entry closest to expiry first.
    """

    def __init__(
        self,
        idle_ttl: float = 2 * 60 * 60,
        restart_window: float = 10 * 60,
        maxsize: int = 10_000,
        timer=time.monotonic,
    ):
        self.idle_ttl = idle_ttl
        self.restart_window = restart_window
        self._items: TLRUCache = TLRUCache(maxsize=maxsize, ttu=self._expires_at, timer=timer)

    def _expires_at(self, _key: str, playthrough: Playthrough, now: float) -> float:
        if playthrough.player.is_complete:
            return now + self.restart_window
        return now + self.idle_ttl

    def __len__(self) -> int:
        self._items.expire()
        return len(self._items)

    def start(
        self,
        owner_id: str,
        patient_id: str | None,
        scenario: ScenarioSchema,
        report_partial: bool = False,
    ) -> Playthrough:
        pending: list[ProgressEvent] = []
        player = ScenarioPlayer(scenario, on_progress=pending.append, report_partial=report_partial)
        playthrough = Playthrough(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            patient_id=patient_id,
            player=player,
            pending=pending,
        )
        self._items[playthrough.id] = playthrough
        logger.debug("Play-through %s started, %d live", playthrough.id, len(self._items))
        return playthrough

    def get(self, playthrough_id: str, owner_id: str) -> Playthrough:
        """Only the owner can see a play-through; anyone else gets not-found."""
        playthrough = self._items.get(playthrough_id)
        if playthrough is None or playthrough.owner_id != owner_id:
            raise PlaythroughNotFound(playthrough_id)
        self.touch(playthrough)
        return playthrough

    def touch(self, playthrough: Playthrough) -> None:
        """Renew the entry; call after a step that may have finished or restarted it."""
        self._items[playthrough.id] = playthrough

    def discard(self, playthrough_id: str, owner_id: str) -> None:
        self.get(playthrough_id, owner_id)
        del self._items[playthrough_id]
