"""Session state machine.

Owns phase advancement, the transcript and the performance counters. Phase
moves strictly forward one step at a time; counters keep the invariant that
at most one of consecutive_correct / consecutive_wrong is non-zero.
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from mindcoach.agents.base.message_utils import make_assistant_message, make_user_message
from mindcoach.agents.base.state import Message, Phase
from mindcoach.agents.generator.state import Exercise
from mindcoach.agents.judge.state import EvaluationResult
from mindcoach.core.config import get_settings

from .difficulty import DifficultyPolicy
from .state import ExerciseRecord, ExerciseStatus, Session

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """An operation is not legal in the session's current state."""


class Transition(BaseModel):
    from_phase: Phase
    to_phase: Phase


class SessionStateMachine:
    def __init__(
        self,
        difficulty_policy: Optional[DifficultyPolicy] = None,
        correct_threshold: Optional[int] = None,
    ):
        self.difficulty_policy = difficulty_policy or DifficultyPolicy()
        self.correct_threshold = (
            correct_threshold if correct_threshold is not None else get_settings().CORRECT_SCORE_THRESHOLD
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create(
        self,
        user_id: Optional[str] = None,
        user_name: str = "there",
        **fields,
    ) -> Session:
        """New session in the ``start`` phase."""
        base = fields.pop("base_difficulty", self.difficulty_policy.base)
        return Session(
            user_id=user_id,
            user_name=user_name,
            base_difficulty=base,
            current_difficulty=base,
            **fields,
        )

    def exit(self, session: Session) -> Session:
        """Abandon open work and return a fresh session for the same user."""
        abandoned = self.abandon_open(session)
        if abandoned:
            logger.info(f"Session {session.id} exited with {abandoned} abandoned exercise(s)")
        return self.create(
            user_id=session.user_id,
            user_name=session.user_name,
            ability_profile=session.ability_profile,
            base_difficulty=session.base_difficulty,
        )

    # =========================================================================
    # Transcript
    # =========================================================================

    def add_user_message(self, session: Session, content: str) -> Message:
        message = make_user_message(content)
        session.transcript.append(message)
        return message

    def add_assistant_message(self, session: Session, content: str) -> Message:
        message = make_assistant_message(content)
        session.transcript.append(message)
        return message

    def begin_assistant_message(self, session: Session) -> Message:
        """Open an assistant message that accepts streamed deltas until finalized."""
        message = make_assistant_message(streaming=True)
        session.transcript.append(message)
        return message

    # =========================================================================
    # Phase
    # =========================================================================

    def advance(self, session: Session, suggested: Optional[Phase]) -> Optional[Transition]:
        """Apply a suggested phase if, and only if, it is the immediate next one."""
        if suggested is None:
            return None
        expected = session.phase.next()
        if suggested != expected:
            logger.debug(
                f"Ignoring suggested phase {suggested.value} from {session.phase.value}"
            )
            return None
        transition = Transition(from_phase=session.phase, to_phase=suggested)
        session.phase = suggested
        logger.info(f"Session {session.id}: {transition.from_phase.value} -> {transition.to_phase.value}")
        return transition

    # =========================================================================
    # Difficulty
    # =========================================================================

    def next_difficulty(self, session: Session) -> int:
        """Difficulty for the next Generator call; does not modify the session."""
        return self.difficulty_policy.next_difficulty(
            consecutive_correct=session.counters.consecutive_correct,
            consecutive_wrong=session.counters.consecutive_wrong,
            recent_scores=session.scores,
            base=session.base_difficulty,
        )

    # =========================================================================
    # Exercise lifecycle
    # =========================================================================

    def issue(self, session: Session, exercise: Exercise) -> ExerciseRecord:
        """Issue an exercise; any exercise still open is abandoned first."""
        self.abandon_open(session)
        record = ExerciseRecord(exercise=exercise)
        session.tasks.append(record)
        session.current_difficulty = exercise.difficulty
        return record

    def answer(
        self,
        session: Session,
        answer: str,
        time_spent_seconds: Optional[float] = None,
    ) -> ExerciseRecord:
        record = session.open_task
        if record is None or record.status != ExerciseStatus.ISSUED:
            raise SessionError("There is no issued exercise waiting for an answer")
        record.status = ExerciseStatus.ANSWERED
        record.user_answer = answer
        record.answered_at = datetime.utcnow().isoformat()
        record.time_spent_seconds = time_spent_seconds
        return record

    def record_evaluation(self, session: Session, result: EvaluationResult) -> ExerciseRecord:
        """Score the answered exercise and update the counters."""
        record = session.open_task
        if record is None or record.status != ExerciseStatus.ANSWERED:
            raise SessionError("There is no answered exercise waiting for a score")
        record.status = ExerciseStatus.SCORED
        record.evaluation = result
        self.apply_score(session, result.overall_score)
        return record

    def apply_score(self, session: Session, score: int) -> None:
        counters = session.counters
        counters.completed_tasks += 1
        counters.total_score += score
        if score >= self.correct_threshold:
            counters.consecutive_correct += 1
            counters.consecutive_wrong = 0
        else:
            counters.consecutive_wrong += 1
            counters.consecutive_correct = 0

    def abandon_open(self, session: Session) -> int:
        """Mark issued/answered exercises abandoned; counters are untouched."""
        count = 0
        for record in session.tasks:
            if record.is_open:
                record.status = ExerciseStatus.ABANDONED
                count += 1
        return count

    def retract_answer(self, session: Session) -> Optional[ExerciseRecord]:
        """Return an answered-but-unscored exercise to ``issued`` so it can be resubmitted."""
        record = session.open_task
        if record is None or record.status != ExerciseStatus.ANSWERED:
            return None
        record.status = ExerciseStatus.ISSUED
        record.user_answer = None
        record.answered_at = None
        record.time_spent_seconds = None
        return record
