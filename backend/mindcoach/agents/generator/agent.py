"""Exercise Generator agent."""

import logging
from typing import List, Optional, Sequence

from mindcoach.agents.base.codec import decode
from mindcoach.agents.base.gateway import ModelGateway, SamplingParams
from mindcoach.agents.base.message_utils import make_user_message
from mindcoach.agents.base.state import AbilityTag, AgentContext, RecentPerformance
from mindcoach.agents.base.utils import log_agent_action
from mindcoach.core.config import get_settings
from mindcoach.session.difficulty import DifficultyPolicy

from .prompts import GENERATOR_SYSTEM_PROMPT, build_generate_prompt
from .state import (
    EXERCISE_TYPE_CONFIG,
    Exercise,
    ExerciseDraft,
    ExerciseRequest,
    ExerciseStyle,
    ExerciseType,
    GenerationMode,
)

logger = logging.getLogger(__name__)

GENERATOR_SAMPLING = SamplingParams(temperature=0.8, max_tokens=2048, json_mode=True)

FALLBACK_ABILITIES = [AbilityTag.LOGIC, AbilityTag.MEMORY]


def candidate_types(abilities: Sequence[AbilityTag]) -> List[ExerciseType]:
    """Exercise types that train at least one of the abilities, in declaration order."""
    wanted = set(abilities)
    matches = [
        exercise_type
        for exercise_type, config in EXERCISE_TYPE_CONFIG.items()
        if exercise_type != ExerciseType.GENERAL and wanted.intersection(config.abilities)
    ]
    return matches or [ExerciseType.GENERAL]


def pick_next_type(
    abilities: Sequence[AbilityTag],
    recent_types: Sequence[ExerciseType],
) -> ExerciseType:
    """First candidate type not among the two most recent ones."""
    candidates = candidate_types(abilities)
    avoid = set(list(recent_types)[-2:])
    for exercise_type in candidates:
        if exercise_type not in avoid:
            return exercise_type
    return candidates[0]


class GeneratorAgent:
    """Builds exercises from a request; the model supplies content, the request supplies defaults."""

    def __init__(self, gateway: ModelGateway, difficulty_policy: Optional[DifficultyPolicy] = None):
        self.gateway = gateway
        self.difficulty_policy = difficulty_policy or DifficultyPolicy()

    @log_agent_action("generator")
    async def generate(self, request: ExerciseRequest) -> Exercise:
        """
        Generate one exercise.

        Raises:
            DecodeError: When the model output holds no usable exercise
            TransportError: When the model endpoint fails
        """
        type_config = EXERCISE_TYPE_CONFIG.get(request.exercise_type) if request.exercise_type else None
        style = request.style or (type_config.default_style if type_config else None)
        time_limited = request.time_limited or bool(type_config and type_config.time_limited)

        prompt = build_generate_prompt(
            abilities=request.target_abilities,
            difficulty=request.difficulty,
            style=style,
            exercise_type=request.exercise_type,
            theme=request.theme,
            user_context=request.user_context,
            time_limited=time_limited,
        )
        text = await self.gateway.complete(
            GENERATOR_SYSTEM_PROMPT,
            [make_user_message(prompt)],
            GENERATOR_SAMPLING,
        )
        draft = decode(text, ExerciseDraft)
        exercise = draft.to_exercise(
            difficulty=request.difficulty,
            abilities=request.target_abilities,
            exercise_type=request.exercise_type,
        )
        logger.info(
            f"Generated {exercise.exercise_type.value} exercise at difficulty {exercise.difficulty}"
        )
        return exercise

    # =========================================================================
    # Modes
    # =========================================================================

    async def warmup(self, user_context: Optional[str] = None) -> Exercise:
        return await self.generate(ExerciseRequest(
            target_abilities=[AbilityTag.MEMORY, AbilityTag.ATTENTION],
            difficulty=1,
            style=ExerciseStyle.PLAYFUL,
            user_context=user_context,
            mode=GenerationMode.WARMUP,
        ))

    async def challenge(self, user_context: Optional[str] = None) -> Exercise:
        return await self.generate(ExerciseRequest(
            target_abilities=[AbilityTag.LOGIC, AbilityTag.METACOGNITION],
            difficulty=5,
            user_context=user_context,
            mode=GenerationMode.CHALLENGE,
        ))

    async def focused(self, ability: AbilityTag, difficulty: int, user_context: Optional[str] = None) -> Exercise:
        return await self.generate(ExerciseRequest(
            target_abilities=[ability],
            difficulty=difficulty,
            user_context=user_context,
            mode=GenerationMode.FOCUSED,
        ))

    async def themed(
        self,
        theme: str,
        abilities: Optional[List[AbilityTag]] = None,
        difficulty: Optional[int] = None,
    ) -> Exercise:
        return await self.generate(ExerciseRequest(
            target_abilities=abilities or list(FALLBACK_ABILITIES),
            difficulty=difficulty or get_settings().BASE_DIFFICULTY,
            theme=theme,
            style=ExerciseStyle.REAL_LIFE,
            mode=GenerationMode.THEMED,
        ))

    async def typed(self, exercise_type: ExerciseType, difficulty: int) -> Exercise:
        config = EXERCISE_TYPE_CONFIG[exercise_type]
        return await self.generate(ExerciseRequest(
            target_abilities=list(config.abilities),
            difficulty=difficulty,
            exercise_type=exercise_type,
            style=config.default_style,
            time_limited=config.time_limited,
        ))

    def adaptive_request(
        self,
        context: Optional[AgentContext] = None,
        recent_performance: Optional[RecentPerformance] = None,
        recent_scores: Sequence[float] = (),
        base_difficulty: Optional[int] = None,
    ) -> ExerciseRequest:
        """Request whose difficulty follows the policy and abilities target weak spots."""
        performance = recent_performance or (context.recent_performance if context else None)
        scores = list(recent_scores)
        if not scores and performance and performance.tasks_completed:
            scores = [performance.average_score]

        difficulty = self.difficulty_policy.next_difficulty(
            consecutive_correct=performance.consecutive_correct if performance else 0,
            consecutive_wrong=performance.consecutive_wrong if performance else 0,
            recent_scores=scores,
            base=base_difficulty,
        )

        if performance and performance.weak_areas:
            abilities = list(performance.weak_areas)
        elif context and context.ability_profile:
            abilities = context.ability_profile.weakest(2)
        else:
            abilities = list(FALLBACK_ABILITIES)

        return ExerciseRequest(
            target_abilities=abilities,
            difficulty=difficulty,
            mode=GenerationMode.ADAPTIVE,
        )

    async def adaptive(
        self,
        context: Optional[AgentContext] = None,
        recent_performance: Optional[RecentPerformance] = None,
        recent_scores: Sequence[float] = (),
        base_difficulty: Optional[int] = None,
    ) -> Exercise:
        return await self.generate(
            self.adaptive_request(context, recent_performance, recent_scores, base_difficulty)
        )

    @log_agent_action("generator")
    async def generate_batch(
        self,
        count: int,
        request: ExerciseRequest,
        recent_types: Sequence[ExerciseType] = (),
    ) -> List[Exercise]:
        """Generate ``count`` exercises, rotating types so none repeats the last two."""
        history = list(recent_types)
        exercises = []
        for _ in range(count):
            exercise_type = request.exercise_type or pick_next_type(request.target_abilities, history)
            exercise = await self.generate(request.model_copy(update={"exercise_type": exercise_type}))
            exercises.append(exercise)
            history.append(exercise.exercise_type)
        return exercises
