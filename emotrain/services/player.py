"""Scenario player: walks a scenario's segments and keeps the running score.

States are InSegment(i) for 0 <= i < N and Complete. Each segment starts
unanswered; narrative segments count as answered from the start. advance()
only moves on once the current segment is answered, and on the last segment
it finishes the play-through and emits a ProgressEvent.

The player is synchronous and owned by a single session. Anything slow
(saving progress) belongs in the on_progress sink, which must not block.
"""
import logging
from collections.abc import Callable

from emotrain.core.errors import InvalidSelection, InvalidTransition
from emotrain.schemas.progress import ProgressEvent
from emotrain.schemas.scenario import ChoiceSegment, RecognitionSegment, ScenarioSchema, Segment
from emotrain.services.scoring import percentage

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


class ScenarioPlayer:
    def __init__(
        self,
        scenario: ScenarioSchema,
        on_progress: ProgressSink | None = None,
        report_partial: bool = False,
    ):
        self.scenario = scenario
        self.on_progress = on_progress
        self.report_partial = report_partial
        self._reset()

    def _reset(self) -> None:
        self.position = 0
        self.selected_emotion: str | None = None
        self.selected_choice: int | None = None
        self.correct_answers = 0
        self.total_questions = 0
        self.is_complete = False

    # ---------- views ----------

    @property
    def scenario_id(self) -> str:
        return self.scenario.id

    @property
    def segment_count(self) -> int:
        return len(self.scenario.story)

    @property
    def current_segment(self) -> Segment | None:
        if self.is_complete:
            return None
        return self.scenario.story[self.position]

    @property
    def is_answered(self) -> bool:
        segment = self.current_segment
        if segment is None:
            return True
        if isinstance(segment, RecognitionSegment):
            return self.selected_emotion is not None
        if isinstance(segment, ChoiceSegment):
            return self.selected_choice is not None
        return True

    @property
    def can_advance(self) -> bool:
        return not self.is_complete and self.is_answered

    @property
    def accuracy(self) -> int | None:
        """Running accuracy, None until something has been answered."""
        if self.total_questions == 0:
            return None
        return percentage(self.correct_answers, self.total_questions)

    @property
    def final_score(self) -> int:
        # A scenario with no questions scores 0, not 100 and not N/A
        return percentage(self.correct_answers, self.total_questions)

    @property
    def progress_percent(self) -> int:
        if self.is_complete:
            return 100
        return percentage(self.position + 1, self.segment_count)

    # ---------- operations ----------

    def select_emotion(self, label: str) -> bool:
        """Answer a recognition question. Returns True if the label is correct."""
        segment = self._require_unanswered(RecognitionSegment, "emotion recognition")
        if label not in segment.emotion_options:
            raise InvalidSelection(f"{label!r} is not one of the offered emotions")

        self.selected_emotion = label
        correct = label == segment.correct_emotion
        self._record_answer(correct)
        return correct

    def select_choice(self, index: int) -> bool:
        """Pick a response option by 0-based index. Returns True if it is the healthy one."""
        segment = self._require_unanswered(ChoiceSegment, "choice")
        if index < 0 or index >= len(segment.choices):
            raise InvalidSelection(f"Choice index {index} out of range")

        self.selected_choice = index
        healthy = segment.choices[index].is_healthy
        self._record_answer(healthy)
        return healthy

    def advance(self) -> ProgressEvent | None:
        """Move to the next segment, or finish on the last one.

        Returns the completion event when the play-through finishes, else None.
        """
        if self.is_complete:
            raise InvalidTransition("Scenario already complete")
        if not self.is_answered:
            raise InvalidTransition("Answer the current question before continuing")

        if self.position < self.segment_count - 1:
            self.position += 1
            self.selected_emotion = None
            self.selected_choice = None
            return None

        self.is_complete = True
        event = ProgressEvent(
            scenario_id=self.scenario_id,
            score=self.final_score,
            completed=True,
        )
        logger.info(
            "Scenario %s complete: %s/%s correct, score %s",
            self.scenario_id,
            self.correct_answers,
            self.total_questions,
            event.score,
        )
        self._emit(event)
        return event

    def restart(self) -> None:
        """Practice again: counters and position back to the start."""
        if not self.is_complete:
            raise InvalidTransition("Only a completed scenario can be restarted")
        self._reset()

    # ---------- internals ----------

    def _require_unanswered(self, kind: type, name: str):
        if self.is_complete:
            raise InvalidTransition("Scenario already complete")
        segment = self.current_segment
        if not isinstance(segment, kind):
            raise InvalidTransition(f"Current segment has no {name} question")
        if self.is_answered:
            raise InvalidTransition("Current question already answered")
        return segment

    def _record_answer(self, correct: bool) -> None:
        self.total_questions += 1
        if correct:
            self.correct_answers += 1
        if self.report_partial:
            self._emit(
                ProgressEvent(
                    scenario_id=self.scenario_id,
                    score=percentage(self.correct_answers, self.total_questions),
                    completed=False,
                )
            )

    def _emit(self, event: ProgressEvent) -> None:
        if self.on_progress is None:
            return
        # The sink is best-effort; a failure must not undo a completed step
        try:
            self.on_progress(event)
        except Exception:
            logger.warning("Progress sink failed for %s", self.scenario_id, exc_info=True)
