"""Session value types.

A Session is passed explicitly through the orchestrator; nothing here is
module-global. Only ``SessionStateMachine`` mutates phase and counters.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from mindcoach.agents.base.state import (
    AbilityProfile,
    AgentContext,
    CamelModel,
    Message,
    Phase,
    RecentPerformance,
)
from mindcoach.agents.generator.state import Exercise
from mindcoach.agents.judge.state import EvaluationResult
from mindcoach.agents.reflection.state import ReflectionResult


class ExerciseStatus(str, Enum):
    ISSUED = "issued"
    ANSWERED = "answered"
    SCORED = "scored"
    ABANDONED = "abandoned"


class ExerciseRecord(CamelModel):
    """Lifecycle wrapper around one issued exercise."""

    exercise: Exercise
    status: ExerciseStatus = ExerciseStatus.ISSUED
    user_answer: Optional[str] = None
    evaluation: Optional[EvaluationResult] = None
    issued_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    answered_at: Optional[str] = None
    time_spent_seconds: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.status in (ExerciseStatus.ISSUED, ExerciseStatus.ANSWERED)


class SessionCounters(CamelModel):
    completed_tasks: int = 0
    total_score: int = 0
    consecutive_correct: int = 0
    consecutive_wrong: int = 0

    @model_validator(mode="after")
    def _one_streak_only(self) -> "SessionCounters":
        if self.consecutive_correct > 0 and self.consecutive_wrong > 0:
            raise ValueError("consecutive_correct and consecutive_wrong cannot both be non-zero")
        return self

    @property
    def average_score(self) -> float:
        if self.completed_tasks == 0:
            return 0.0
        return self.total_score / self.completed_tasks


class Session(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    user_name: str = "there"
    phase: Phase = Phase.START
    transcript: List[Message] = Field(default_factory=list)
    counters: SessionCounters = Field(default_factory=SessionCounters)
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    user_goal: Optional[str] = None
    ability_profile: Optional[AbilityProfile] = None
    base_difficulty: int = Field(default=3, ge=1, le=5)
    current_difficulty: int = Field(default=3, ge=1, le=5)
    tasks: List[ExerciseRecord] = Field(default_factory=list)
    reflection: Optional[ReflectionResult] = None
    last_session_summary: Optional[str] = None
    started_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def open_task(self) -> Optional[ExerciseRecord]:
        for record in reversed(self.tasks):
            if record.is_open:
                return record
        return None

    @property
    def scored_tasks(self) -> List[ExerciseRecord]:
        return [record for record in self.tasks if record.status == ExerciseStatus.SCORED]

    @property
    def scores(self) -> List[int]:
        return [record.evaluation.overall_score for record in self.scored_tasks if record.evaluation]

    def recent_performance(self) -> RecentPerformance:
        return RecentPerformance(
            average_score=round(self.counters.average_score, 1),
            consecutive_correct=self.counters.consecutive_correct,
            consecutive_wrong=self.counters.consecutive_wrong,
            tasks_completed=self.counters.completed_tasks,
            current_difficulty=self.current_difficulty,
        )

    def context(self) -> AgentContext:
        """Agent-facing view of this session."""
        return AgentContext(
            user_name=self.user_name,
            user_id=self.user_id,
            current_phase=self.phase,
            energy_level=self.energy_level,
            user_goal=self.user_goal,
            session_id=self.id,
            ability_profile=self.ability_profile,
            last_session_summary=self.last_session_summary,
            recent_performance=self.recent_performance() if self.counters.completed_tasks else None,
        )
