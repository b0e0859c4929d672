"""Phase classification of coach replies.

The state machine only depends on the ``PhaseClassifier`` protocol, so the
keyword scan below can later be replaced by a model-emitted control signal.
"""

import re
from typing import Dict, Iterable, List, Optional, Pattern, Protocol, Tuple

from pydantic import BaseModel

from mindcoach.agents.base.state import Phase

# Keywords that announce entry into each phase.
PHASE_KEYWORDS: Dict[Phase, Tuple[str, ...]] = {
    Phase.WARMUP: ("warm-up", "warm up", "warmup", "something simple", "simple one"),
    Phase.MAIN: ("main training", "officially start", "challenge"),
    Phase.COOLDOWN: ("last one", "last question", "final question", "summary", "wrap up"),
    Phase.REFLECT: ("reflect", "review", "summary", "hardest", "most challenging"),
    Phase.COMPLETE: ("see you", "next time", "look forward", "end of our session"),
}

EXERCISE_KEYWORDS: Tuple[str, ...] = (
    "next question",
    "this question",
    "remember",
    "think about",
    "your answer",
    "give it a try",
    "here's one",
)

REFLECTION_PHASES = (Phase.COOLDOWN, Phase.REFLECT)


def _compile(keyword: str) -> Pattern[str]:
    prefix = r"\b" if keyword[0].isalnum() else ""
    suffix = r"\b" if keyword[-1].isalnum() else ""
    return re.compile(prefix + re.escape(keyword) + suffix, re.IGNORECASE)


def _compile_all(keywords: Iterable[str]) -> List[Pattern[str]]:
    return [_compile(keyword) for keyword in keywords]


class PhaseSignal(BaseModel):
    """What a coach reply implies for the session."""

    suggested_phase: Optional[Phase] = None
    should_generate_exercise: bool = False
    should_reflect: bool = False


class PhaseClassifier(Protocol):
    def classify(self, text: str, current_phase: Phase) -> PhaseSignal:
        ...


class KeywordPhaseClassifier:
    """Keyword-membership scan over the finished reply text.

    Only the keyword set of the immediate next phase is consulted, so a
    reply can never suggest skipping a phase.
    """

    def __init__(
        self,
        phase_keywords: Optional[Dict[Phase, Iterable[str]]] = None,
        exercise_keywords: Optional[Iterable[str]] = None,
    ):
        phase_keywords = phase_keywords or PHASE_KEYWORDS
        self._phase_patterns = {
            phase: _compile_all(keywords) for phase, keywords in phase_keywords.items()
        }
        self._exercise_patterns = _compile_all(exercise_keywords or EXERCISE_KEYWORDS)
        self._reflect_patterns = self._phase_patterns.get(Phase.REFLECT, [])

    @staticmethod
    def _matches(patterns: List[Pattern[str]], text: str) -> bool:
        return any(pattern.search(text) for pattern in patterns)

    def classify(self, text: str, current_phase: Phase) -> PhaseSignal:
        should_reflect = (
            current_phase in REFLECTION_PHASES
            and self._matches(self._reflect_patterns, text)
        )

        suggested = None
        candidate = current_phase.next()
        if candidate is not None:
            if candidate == Phase.REFLECT:
                matched = should_reflect
            else:
                matched = self._matches(self._phase_patterns.get(candidate, []), text)
            if matched:
                suggested = candidate

        return PhaseSignal(
            suggested_phase=suggested,
            should_generate_exercise=self._matches(self._exercise_patterns, text),
            should_reflect=should_reflect,
        )
