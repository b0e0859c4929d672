"""Difficulty policy applied before every Generator call."""

from typing import Optional, Sequence

from mindcoach.core.config import get_settings

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


def clamp_difficulty(value: float) -> float:
    return max(float(MIN_DIFFICULTY), min(float(MAX_DIFFICULTY), value))


def rolling_average(scores: Sequence[float], window: int) -> Optional[float]:
    """Average of the last ``window`` scores, or None with no scores."""
    recent = list(scores)[-window:] if window > 0 else []
    if not recent:
        return None
    return sum(recent) / len(recent)


class DifficultyPolicy:
    """
    Streak and average based difficulty adjustment.

    Starting from the base, three consecutive correct answers add one level
    and two consecutive wrong answers remove one. A rolling average at or
    above the high threshold adds half a level; below the low threshold
    removes half a level. The result is clamped to 1..5 and rounded.
    """

    def __init__(
        self,
        base: Optional[int] = None,
        streak_up: Optional[int] = None,
        streak_down: Optional[int] = None,
        high_average: Optional[float] = None,
        low_average: Optional[float] = None,
        window: Optional[int] = None,
    ):
        settings = get_settings()
        self.base = base if base is not None else settings.BASE_DIFFICULTY
        self.streak_up = streak_up if streak_up is not None else settings.STREAK_UP_THRESHOLD
        self.streak_down = streak_down if streak_down is not None else settings.STREAK_DOWN_THRESHOLD
        self.high_average = high_average if high_average is not None else settings.HIGH_AVERAGE_THRESHOLD
        self.low_average = low_average if low_average is not None else settings.LOW_AVERAGE_THRESHOLD
        self.window = window if window is not None else settings.ROLLING_WINDOW

    def next_difficulty(
        self,
        consecutive_correct: int,
        consecutive_wrong: int,
        recent_scores: Sequence[float] = (),
        base: Optional[int] = None,
    ) -> int:
        value = float(base if base is not None else self.base)

        if consecutive_correct >= self.streak_up:
            value = min(float(MAX_DIFFICULTY), value + 1)
        if consecutive_wrong >= self.streak_down:
            value = max(float(MIN_DIFFICULTY), value - 1)

        average = rolling_average(recent_scores, self.window)
        if average is not None:
            if average >= self.high_average:
                value += 0.5
            elif average < self.low_average:
                value -= 0.5

        # round() is half-to-even: 4.5 -> 4, 1.5 -> 2
        return int(round(clamp_difficulty(value)))
