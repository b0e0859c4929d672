"""Exercise, rubric and generation-request types."""

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, ValidationError, field_validator, model_validator

from mindcoach.agents.base.state import AbilityTag, CamelModel


class ExerciseType(str, Enum):
    NUMBER_SPAN = "number_span"
    DIGIT_OPERATION = "digit_operation"
    LOGIC_PUZZLE = "logic_puzzle"
    ANALOGY = "analogy"
    DEDUCTION = "deduction"
    STROOP = "stroop"
    SELECTIVE_ATTENTION = "selective_attention"
    READING_RECALL = "reading_recall"
    EXPRESSION = "expression"
    EXPLANATION = "explanation"
    METACOG_REFLECTION = "metacog_reflection"
    CREATIVE = "creative"
    GENERAL = "general"


class ExerciseStyle(str, Enum):
    ABSTRACT = "abstract"
    REAL_LIFE = "real_life"
    PLAYFUL = "playful"
    PROFESSIONAL = "professional"
    ACADEMIC = "academic"


class GenerationMode(str, Enum):
    WARMUP = "warmup"
    CHALLENGE = "challenge"
    FOCUSED = "focused"
    THEMED = "themed"
    ADAPTIVE = "adaptive"
    NORMAL = "normal"


class ExerciseTypeConfig(CamelModel):
    abilities: List[AbilityTag]
    default_style: ExerciseStyle
    time_limited: bool


EXERCISE_TYPE_CONFIG: Dict[ExerciseType, ExerciseTypeConfig] = {
    ExerciseType.NUMBER_SPAN: ExerciseTypeConfig(
        abilities=[AbilityTag.MEMORY, AbilityTag.ATTENTION],
        default_style=ExerciseStyle.ABSTRACT, time_limited=True,
    ),
    ExerciseType.DIGIT_OPERATION: ExerciseTypeConfig(
        abilities=[AbilityTag.MEMORY, AbilityTag.LOGIC],
        default_style=ExerciseStyle.ABSTRACT, time_limited=True,
    ),
    ExerciseType.LOGIC_PUZZLE: ExerciseTypeConfig(
        abilities=[AbilityTag.LOGIC],
        default_style=ExerciseStyle.PLAYFUL, time_limited=False,
    ),
    ExerciseType.ANALOGY: ExerciseTypeConfig(
        abilities=[AbilityTag.LOGIC, AbilityTag.EXPRESSION],
        default_style=ExerciseStyle.ABSTRACT, time_limited=False,
    ),
    ExerciseType.DEDUCTION: ExerciseTypeConfig(
        abilities=[AbilityTag.LOGIC],
        default_style=ExerciseStyle.REAL_LIFE, time_limited=False,
    ),
    ExerciseType.STROOP: ExerciseTypeConfig(
        abilities=[AbilityTag.ATTENTION],
        default_style=ExerciseStyle.ABSTRACT, time_limited=True,
    ),
    ExerciseType.SELECTIVE_ATTENTION: ExerciseTypeConfig(
        abilities=[AbilityTag.ATTENTION],
        default_style=ExerciseStyle.ABSTRACT, time_limited=True,
    ),
    ExerciseType.READING_RECALL: ExerciseTypeConfig(
        abilities=[AbilityTag.MEMORY, AbilityTag.ATTENTION],
        default_style=ExerciseStyle.REAL_LIFE, time_limited=True,
    ),
    ExerciseType.EXPRESSION: ExerciseTypeConfig(
        abilities=[AbilityTag.EXPRESSION],
        default_style=ExerciseStyle.REAL_LIFE, time_limited=False,
    ),
    ExerciseType.EXPLANATION: ExerciseTypeConfig(
        abilities=[AbilityTag.EXPRESSION, AbilityTag.LOGIC],
        default_style=ExerciseStyle.ACADEMIC, time_limited=False,
    ),
    ExerciseType.METACOG_REFLECTION: ExerciseTypeConfig(
        abilities=[AbilityTag.METACOGNITION],
        default_style=ExerciseStyle.REAL_LIFE, time_limited=False,
    ),
    ExerciseType.CREATIVE: ExerciseTypeConfig(
        abilities=[AbilityTag.EXPRESSION, AbilityTag.LOGIC],
        default_style=ExerciseStyle.PLAYFUL, time_limited=False,
    ),
    ExerciseType.GENERAL: ExerciseTypeConfig(
        abilities=[AbilityTag.LOGIC, AbilityTag.MEMORY],
        default_style=ExerciseStyle.REAL_LIFE, time_limited=False,
    ),
}


class RubricDimension(CamelModel):
    name: str
    description: str = ""
    weight: float = Field(ge=0, le=1)


class Rubric(CamelModel):
    """Scoring contract attached to every exercise."""

    dimensions: List[RubricDimension] = Field(min_length=1)
    scoring_scale: Dict[int, str] = Field(default_factory=dict)
    typical_mistakes: List[str] = Field(default_factory=list)

    @field_validator("scoring_scale")
    @classmethod
    def _scale_within_bounds(cls, value: Dict[int, str]) -> Dict[int, str]:
        for key in value:
            if key < 0 or key > 5:
                raise ValueError("scoring scale keys must lie in 0..5")
        return value

    @property
    def dimension_names(self) -> List[str]:
        return [dimension.name for dimension in self.dimensions]


def default_rubric() -> Rubric:
    """Generic three-dimension rubric used when the model omits one."""
    return Rubric(
        dimensions=[
            RubricDimension(name="correctness", description="Is the answer right?", weight=0.5),
            RubricDimension(name="reasoning", description="Is the thinking process clear and sound?", weight=0.3),
            RubricDimension(name="completeness", description="Does the answer cover every part of the task?", weight=0.2),
        ],
        scoring_scale={
            0: "No answer or completely wrong",
            1: "Mostly wrong with a small correct element",
            2: "Partly correct but with clear errors",
            3: "Largely correct with some gaps",
            4: "Correct with minor flaws",
            5: "Fully correct, clear and complete",
        },
        typical_mistakes=[
            "Misunderstood the question",
            "Calculation error",
            "Missed a condition",
            "Unjustified logical leap",
        ],
    )


class Exercise(CamelModel):
    """An issued exercise. Treated as immutable once issued."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    prompt: str = Field(min_length=1)
    reference_answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: int = Field(ge=1, le=5)
    target_abilities: List[AbilityTag] = Field(min_length=1)
    suggested_time_seconds: Optional[int] = Field(default=None, gt=0)
    rubric: Rubric
    exercise_type: ExerciseType = ExerciseType.GENERAL


_LEGACY_DRAFT_KEYS = {
    "answer": "referenceAnswer",
    "abilities": "targetAbilities",
    "suggestedTime": "suggestedTimeSeconds",
    "evaluationRubric": "rubric",
}


def _known_abilities(values: Any) -> Optional[List[AbilityTag]]:
    if not isinstance(values, list):
        return None
    tags: List[AbilityTag] = []
    for value in values:
        try:
            tag = AbilityTag(value)
        except ValueError:
            continue
        if tag not in tags:
            tags.append(tag)
    return tags or None


class ExerciseDraft(CamelModel):
    """Exercise as emitted by the model. Only ``prompt`` is required.

    Omitted difficulty and abilities are filled from the request by
    ``to_exercise``; an omitted rubric becomes ``default_rubric()``.
    Unknown ability tags or exercise types are dropped rather than rejected.
    """

    prompt: str = Field(min_length=1)
    reference_answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: Optional[int] = None
    target_abilities: Optional[List[AbilityTag]] = None
    suggested_time_seconds: Optional[int] = None
    rubric: Optional[Rubric] = None
    exercise_type: Optional[ExerciseType] = None

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, current in _LEGACY_DRAFT_KEYS.items():
            if legacy in data and current not in data:
                data[current] = data.pop(legacy)

        for key in ("targetAbilities", "target_abilities"):
            if key in data:
                data[key] = _known_abilities(data[key])

        known_types = {member.value for member in ExerciseType}
        for key in ("exerciseType", "exercise_type"):
            if key in data and data[key] not in known_types:
                data[key] = None

        rubric = data.get("rubric")
        if rubric is not None and not isinstance(rubric, Rubric):
            try:
                data["rubric"] = Rubric.model_validate(rubric)
            except ValidationError:
                data["rubric"] = None

        difficulty = data.get("difficulty")
        if isinstance(difficulty, (int, float)) and not isinstance(difficulty, bool):
            data["difficulty"] = max(1, min(5, int(round(difficulty))))
        elif difficulty is not None:
            data["difficulty"] = None

        for key in ("suggestedTimeSeconds", "suggested_time_seconds"):
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
                data[key] = None
            elif value is not None:
                data[key] = int(value)
        return data

    def to_exercise(
        self,
        difficulty: int,
        abilities: List[AbilityTag],
        exercise_type: Optional[ExerciseType] = None,
    ) -> Exercise:
        """Build the issued Exercise, substituting request values for omissions."""
        return Exercise(
            prompt=self.prompt,
            reference_answer=self.reference_answer,
            explanation=self.explanation,
            difficulty=self.difficulty if self.difficulty is not None else difficulty,
            target_abilities=self.target_abilities or list(abilities),
            suggested_time_seconds=self.suggested_time_seconds,
            rubric=self.rubric or default_rubric(),
            exercise_type=self.exercise_type or exercise_type or ExerciseType.GENERAL,
        )


class ExerciseRequest(CamelModel):
    """Parameters for one Generator call."""

    target_abilities: List[AbilityTag] = Field(min_length=1)
    difficulty: int = Field(ge=1, le=5)
    exercise_type: Optional[ExerciseType] = None
    style: Optional[ExerciseStyle] = None
    theme: Optional[str] = None
    time_limited: bool = False
    user_context: Optional[str] = None
    mode: GenerationMode = GenerationMode.NORMAL
