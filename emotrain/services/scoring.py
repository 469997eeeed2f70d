"""Accuracy percentages and progress-record merge rules."""
from dataclasses import dataclass
from datetime import datetime

MIN_SCORE = 0
MAX_SCORE = 100


def percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), half-up; 0 when nothing was asked."""
    if total <= 0:
        return 0
    # floor(100c/t + 1/2) in integers, so .5 always rounds up
    return clamp_score((200 * correct + total) // (2 * total))


def clamp_score(score: int) -> int:
    """Clamp to 0..100."""
    return max(MIN_SCORE, min(MAX_SCORE, score))


@dataclass
class MergedProgress:
    score: int
    completed: bool
    attempts: int
    last_attempted: datetime


def merge_progress(
    existing_score: int | None,
    existing_completed: bool | None,
    existing_attempts: int | None,
    score: int,
    completed: bool,
    timestamp: datetime,
) -> MergedProgress:
    """Fold one write into a stored record: best score, sticky completion, one more attempt.

    ``existing_*`` are None when there is no record yet.
    """
    return MergedProgress(
        score=max(existing_score or 0, clamp_score(score)),
        completed=bool(existing_completed) or completed,
        attempts=(existing_attempts or 0) + 1,
        last_attempted=timestamp,
    )
