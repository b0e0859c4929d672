"""Exercise generation and evaluation endpoints."""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import Field, model_validator

from ..agents.base.state import AbilityTag, AgentContext, CamelModel, Phase, RecentPerformance
from ..agents.generator.agent import FALLBACK_ABILITIES
from ..agents.generator.state import (
    Exercise,
    ExerciseRequest,
    ExerciseStyle,
    ExerciseType,
    GenerationMode,
)
from ..agents.judge.state import EvaluationResult
from ..core.config import get_settings
from ..db.repository import STORAGE_ERRORS, SessionRepository
from ..session.orchestrator import SessionOrchestrator
from .auth import CurrentUser, get_current_user
from .deps import get_orchestrator, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exercise", tags=["Exercise"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class GenerateExerciseRequest(CamelModel):
    target_abilities: Optional[List[AbilityTag]] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    exercise_type: Optional[ExerciseType] = None
    style: Optional[ExerciseStyle] = None
    theme: Optional[str] = None
    time_limited: bool = False
    mode: GenerationMode = GenerationMode.NORMAL
    recent_performance: Optional[RecentPerformance] = None
    recent_scores: List[int] = Field(default_factory=list)
    user_context: Optional[str] = None

    @model_validator(mode="after")
    def _mode_requirements(self) -> "GenerateExerciseRequest":
        if self.mode == GenerationMode.FOCUSED and not self.target_abilities:
            raise ValueError("focused mode needs at least one target ability")
        if self.mode == GenerationMode.THEMED and not (self.theme or "").strip():
            raise ValueError("themed mode needs a theme")
        return self


class EvaluateRequest(CamelModel):
    action: Literal["evaluate", "quick", "compare", "multidim", "report"] = "evaluate"
    exercise: Optional[Exercise] = None
    user_answer: Optional[str] = None
    time_spent: Optional[float] = Field(default=None, ge=0)
    reference_answer: Optional[str] = None
    dimensions: Optional[List[str]] = None
    evaluations: Optional[List[EvaluationResult]] = None

    @model_validator(mode="after")
    def _action_requirements(self) -> "EvaluateRequest":
        if self.action == "report":
            if self.evaluations is None:
                raise ValueError("report needs evaluations")
            return self
        if self.exercise is None or self.user_answer is None:
            raise ValueError(f"{self.action} needs an exercise and a user answer")
        if self.action == "compare" and not (self.reference_answer or self.exercise.reference_answer):
            raise ValueError("compare needs a reference answer")
        if self.action == "multidim" and not self.dimensions:
            raise ValueError("multidim needs at least one dimension")
        return self


# ==============================================================================
# Endpoints
# ==============================================================================

@router.post("/generate")
async def generate_exercise(
    request: GenerateExerciseRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Generate one exercise in the requested mode."""
    generator = orchestrator.generator
    difficulty = request.difficulty or get_settings().BASE_DIFFICULTY
    mode = request.mode

    if mode == GenerationMode.WARMUP:
        exercise = await generator.warmup(request.user_context)
    elif mode == GenerationMode.CHALLENGE:
        exercise = await generator.challenge(request.user_context)
    elif mode == GenerationMode.FOCUSED:
        exercise = await generator.focused(request.target_abilities[0], difficulty, request.user_context)
    elif mode == GenerationMode.THEMED:
        exercise = await generator.themed(request.theme, request.target_abilities, difficulty)
    elif mode == GenerationMode.ADAPTIVE:
        context = AgentContext(
            user_name=current_user.name,
            user_id=current_user.id,
            current_phase=Phase.MAIN,
            ability_profile=current_user.ability_profile,
        )
        exercise = await generator.adaptive(
            context,
            request.recent_performance,
            request.recent_scores,
            request.difficulty,
        )
    else:
        exercise = await generator.generate(ExerciseRequest(
            target_abilities=request.target_abilities or list(FALLBACK_ABILITIES),
            difficulty=difficulty,
            exercise_type=request.exercise_type,
            style=request.style,
            theme=request.theme,
            time_limited=request.time_limited,
            user_context=request.user_context,
        ))

    logger.info(f"Generated {exercise.exercise_type.value} exercise for user {current_user.id} ({mode.value})")
    return exercise.to_wire()


@router.post("/evaluate")
async def evaluate_answer(
    request: EvaluateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    repository: SessionRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """
    Evaluate an answer.

    ``evaluate`` is a full rubric evaluation and also updates the caller's
    stored ability profile. The other actions are lighter checks that fall
    back to neutral content when the model output is unusable.
    """
    judge = orchestrator.judge
    exercise = request.exercise

    if request.action == "evaluate":
        result = await judge.evaluate(exercise, request.user_answer, request.time_spent)
        try:
            profile = await repository.update_profile(
                current_user.id,
                exercise.target_abilities,
                result.overall_score,
            )
        except STORAGE_ERRORS as exc:
            logger.error(f"Profile update not saved for user {current_user.id}: {exc}")
            return result.to_wire()
        return {**result.to_wire(), "abilityProfile": profile.to_wire()}

    if request.action == "quick":
        quick = await judge.quick(exercise, request.user_answer)
        return quick.to_wire()

    if request.action == "compare":
        comparison = await judge.compare(exercise, request.user_answer, request.reference_answer)
        return comparison.to_wire()

    if request.action == "multidim":
        assessments = await judge.multidimensional(exercise, request.user_answer, request.dimensions)
        return {name: assessment.to_wire() for name, assessment in assessments.items()}

    report = await judge.report(request.evaluations)
    return report.to_wire()
