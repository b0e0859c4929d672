"""Reflection Coach result types."""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from mindcoach.agents.base.state import AbilityTag, CamelModel
from mindcoach.agents.generator.state import ExerciseType


def _as_text_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class TaskHighlight(CamelModel):
    """One scored task as seen by the reflection prompt."""

    exercise_type: ExerciseType = ExerciseType.GENERAL
    difficulty: int
    score: int
    time_spent: Optional[float] = None
    was_challenge: bool = False


class SessionAggregate(CamelModel):
    """Everything the Reflection Coach needs to know about a finished session."""

    task_count: int = 0
    average_score: float = 0.0
    total_duration_seconds: float = 0.0
    highlights: List[TaskHighlight] = Field(default_factory=list)
    abilities_worked: List[AbilityTag] = Field(default_factory=list)


class ReflectionResult(CamelModel):
    """Structured end-of-session reflection."""

    summary: str = Field(min_length=1)
    highlights: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)
    cognitive_insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    next_step: str = ""
    metacognitive_prompts: List[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_next_steps(cls, data: Any) -> Any:
        if isinstance(data, dict) and "nextSteps" in data and "nextStep" not in data and "next_step" not in data:
            data = dict(data)
            steps = data.pop("nextSteps")
            data["nextStep"] = " ".join(steps) if isinstance(steps, list) else steps
        return data

    @field_validator(
        "highlights", "challenges", "cognitive_insights", "recommendations", "metacognitive_prompts",
        mode="before",
    )
    @classmethod
    def _string_to_list(cls, value: Any) -> Any:
        return _as_text_list(value)


class DialogueTurn(CamelModel):
    response: str = Field(min_length=1)
    metacognitive_question: Optional[str] = None
    insight_detected: Optional[str] = None


class SuggestedSchedule(CamelModel):
    sessions_per_week: int = Field(default=3, ge=1, le=14)
    minutes_per_session: int = Field(default=15, ge=1)
    best_times: List[str] = Field(default_factory=list)


class Milestone(CamelModel):
    target: str
    deadline: str = ""
    metric: str = ""


class LearningPlan(CamelModel):
    short_term_goals: List[str] = Field(default_factory=list)
    medium_term_goals: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    suggested_schedule: SuggestedSchedule = Field(default_factory=SuggestedSchedule)
    milestones: List[Milestone] = Field(default_factory=list)


class HistoricalData(CamelModel):
    sessions_completed: int = 0
    average_scores: dict = Field(default_factory=dict)
    preferred_times: List[str] = Field(default_factory=list)
    consistency_rate: float = 0.0


class MetacognitionLevel(str, Enum):
    BEGINNER = "beginner"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    ADVANCED = "advanced"


class MetacognitionAnalysis(CamelModel):
    level: MetacognitionLevel
    indicators: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


DEFAULT_SELF_ASSESSMENT_QUESTIONS = [
    "What felt most challenging in this session?",
    "Which strategy did you use on the hardest task?",
    "Where do you feel you improved?",
    "What will you try differently next time?",
    "Are you satisfied with how you did today? Why?",
]

DEFAULT_METACOGNITION_ANALYSIS = MetacognitionAnalysis(
    level=MetacognitionLevel.DEVELOPING,
    indicators=["Shows basic self-reflection"],
    suggestions=["Try to look more closely at how you approach each task"],
)
