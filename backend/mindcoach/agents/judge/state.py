"""Evaluation result types for the Judge role."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, ValidationInfo, computed_field, field_validator, model_validator

from mindcoach.agents.base.state import CamelModel


class ScoreLabel(str, Enum):
    COMPLETE = "complete"
    MOSTLY_CORRECT = "mostly-correct"
    PARTIALLY_CORRECT = "partially-correct"
    INCORRECT = "incorrect"


def clamp_score(value: float) -> int:
    return int(max(0, min(100, round(value))))


def label_for_score(score: float) -> ScoreLabel:
    """Fixed thresholds: >=90 complete, >=70 mostly, >=40 partially."""
    if score >= 90:
        return ScoreLabel.COMPLETE
    if score >= 70:
        return ScoreLabel.MOSTLY_CORRECT
    if score >= 40:
        return ScoreLabel.PARTIALLY_CORRECT
    return ScoreLabel.INCORRECT


def _coerce_score(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return value
    if isinstance(value, (int, float)):
        return clamp_score(value)
    return value


class TimeSignal(str, Enum):
    RUSHED = "rushed"
    ON_PACE = "on_pace"
    SLOW = "slow"


def time_signal(elapsed_seconds: Optional[float], suggested_seconds: Optional[float]) -> Optional[TimeSignal]:
    """Compare elapsed time to the suggestion at the 0.5x and 2x marks."""
    if not elapsed_seconds or not suggested_seconds:
        return None
    ratio = elapsed_seconds / suggested_seconds
    if ratio < 0.5:
        return TimeSignal.RUSHED
    if ratio > 2:
        return TimeSignal.SLOW
    return TimeSignal.ON_PACE


class DimensionScore(CamelModel):
    dimension_name: str
    score: float = Field(ge=0, le=5)
    short_comment: str = ""


DEFAULT_STRENGTHS = "You engaged with the task and put your thinking into words."
DEFAULT_IMPROVEMENTS = "Check each condition of the task once more before answering."
DEFAULT_NEXT_TIP = "Next time, jot down the key facts first, then reason step by step."


def default_feedback(score: float) -> str:
    """Encouraging feedback chosen by score band."""
    if score >= 90:
        return "Excellent work! Your answer is accurate and your reasoning is clear."
    if score >= 70:
        return "Good job! The core idea is right, with a little room to polish."
    if score >= 50:
        return "A solid start. You are on the right track; keep refining the details."
    if score >= 30:
        return "Some parts are right. Review the question and try another angle."
    return "This one was tough. Every attempt builds the skill, so keep going."


class EvaluationResult(CamelModel):
    """Full Judge verdict for one submission.

    ``overall_score`` comes from the model and is clamped to 0..100; the
    label is always derived from it.
    """

    overall_score: int
    dimension_scores: List[DimensionScore] = Field(default_factory=list)
    error_types: List[str] = Field(default_factory=list)
    strengths_for_user: str = DEFAULT_STRENGTHS
    improvements_for_user: str = DEFAULT_IMPROVEMENTS
    next_time_tip_for_user: str = DEFAULT_NEXT_TIP
    feedback_to_user: str = ""
    next_hint: Optional[str] = None

    @field_validator("overall_score", mode="before")
    @classmethod
    def _clamp_overall(cls, value: Any) -> Any:
        return _coerce_score(value)

    @field_validator("strengths_for_user", "improvements_for_user", "next_time_tip_for_user", mode="before")
    @classmethod
    def _blank_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @computed_field
    @property
    def label(self) -> ScoreLabel:
        return label_for_score(self.overall_score)

    def with_default_feedback(self) -> "EvaluationResult":
        if self.feedback_to_user.strip():
            return self
        return self.model_copy(update={"feedback_to_user": default_feedback(self.overall_score)})


class QuickEvaluation(CamelModel):
    score: int
    is_correct: bool = False
    feedback: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "overallScore" in data and "score" not in data:
                data["score"] = data.pop("overallScore")
            if "briefFeedback" in data and "feedback" not in data:
                data["feedback"] = data.pop("briefFeedback")
        return data

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> Any:
        return _coerce_score(value)


class ComparisonResult(CamelModel):
    similarity: int = 0
    differences: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("similarity", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> Any:
        return _coerce_score(value)


class DimensionAssessment(CamelModel):
    score: int
    comment: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> Any:
        return _coerce_score(value)


class ProgressReport(CamelModel):
    summary: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    progress_notes: str = ""
