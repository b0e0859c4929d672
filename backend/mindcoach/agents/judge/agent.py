"""Answer Judge agent.

``evaluate`` is the primary action and propagates decode failures. The
secondary actions degrade to static fallback content instead.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence

from mindcoach.agents.base.codec import decode
from mindcoach.agents.base.errors import DecodeError
from mindcoach.agents.base.gateway import ModelGateway, SamplingParams
from mindcoach.agents.base.message_utils import make_user_message
from mindcoach.agents.base.utils import log_agent_action
from mindcoach.agents.generator.state import Exercise, ExerciseType

from .prompts import (
    COMPARE_TEMPLATE,
    HINT_LEVELS,
    HINT_SYSTEM_PROMPT,
    HINT_TEMPLATE,
    JUDGE_SYSTEM_PROMPT,
    MULTIDIM_TEMPLATE,
    QUICK_JUDGE_SYSTEM_PROMPT,
    QUICK_TEMPLATE,
    REPORT_SYSTEM_PROMPT,
    REPORT_TEMPLATE,
    build_evaluate_prompt,
)
from .state import (
    ComparisonResult,
    DimensionAssessment,
    EvaluationResult,
    ProgressReport,
    QuickEvaluation,
    ScoreLabel,
    time_signal,
)

logger = logging.getLogger(__name__)

JUDGE_SAMPLING = SamplingParams(temperature=0.3, max_tokens=2048, json_mode=True)
QUICK_SAMPLING = SamplingParams(temperature=0.2, max_tokens=512, json_mode=True)
REPORT_SAMPLING = SamplingParams(temperature=0.5, max_tokens=2048, json_mode=True)
HINT_SAMPLING = SamplingParams(temperature=0.5, max_tokens=256)

OPEN_ENDED_TYPES = {
    ExerciseType.EXPRESSION,
    ExerciseType.EXPLANATION,
    ExerciseType.METACOG_REFLECTION,
    ExerciseType.CREATIVE,
}

QUICK_FALLBACK = QuickEvaluation(
    score=50,
    is_correct=False,
    feedback="Could not check this answer automatically. Please review its format.",
)
COMPARE_FALLBACK = ComparisonResult(
    similarity=50,
    differences=["A detailed comparison was not possible."],
    suggestions=["Please double-check your answer."],
)
REPORT_FALLBACK = ProgressReport(
    summary="Training complete with a steady overall performance.",
    strengths=["Completed every task"],
    weaknesses=["More practice will help"],
    recommendations=["Keep up regular training"],
    progress_notes="Keep the current pace.",
)
HINT_FALLBACK = "Re-read the task and list what you already know before the next step."


def _missing_dimensions(result: EvaluationResult, exercise: Exercise) -> List[str]:
    scored = {score.dimension_name.strip().lower() for score in result.dimension_scores}
    return [
        name for name in exercise.rubric.dimension_names
        if name.strip().lower() not in scored
    ]


class JudgeAgent:
    """Scores answers against the exercise rubric."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    async def _ask(self, system_prompt: str, prompt: str, params: SamplingParams) -> str:
        return await self.gateway.complete(system_prompt, [make_user_message(prompt)], params)

    @log_agent_action("judge")
    async def evaluate(
        self,
        exercise: Exercise,
        answer: str,
        time_spent_seconds: Optional[float] = None,
    ) -> EvaluationResult:
        """
        Full rubric evaluation of one answer.

        The overall score is taken from the model as-is (clamped); the time
        signal only informs the prompt.

        Raises:
            DecodeError: When the output is malformed, a dimension score is
                out of range, or a rubric dimension has no score
        """
        signal = time_signal(time_spent_seconds, exercise.suggested_time_seconds)
        open_ended = exercise.exercise_type in OPEN_ENDED_TYPES or not exercise.reference_answer
        text = await self._ask(
            JUDGE_SYSTEM_PROMPT,
            build_evaluate_prompt(exercise, answer, signal, open_ended=open_ended),
            JUDGE_SAMPLING,
        )
        result = decode(text, EvaluationResult)

        missing = _missing_dimensions(result, exercise)
        if missing:
            raise DecodeError(text, f"missing dimension scores: {', '.join(missing)}")

        return result.with_default_feedback()

    @log_agent_action("judge")
    async def quick(self, exercise: Exercise, answer: str) -> QuickEvaluation:
        """Objective right/wrong check against the reference answer."""
        text = await self._ask(
            QUICK_JUDGE_SYSTEM_PROMPT,
            QUICK_TEMPLATE.format(
                prompt=exercise.prompt,
                reference=exercise.reference_answer or "(none provided)",
                answer=answer,
            ),
            QUICK_SAMPLING,
        )
        try:
            return decode(text, QuickEvaluation)
        except DecodeError:
            return QUICK_FALLBACK.model_copy()

    @log_agent_action("judge")
    async def compare(self, exercise: Exercise, answer: str, reference: Optional[str] = None) -> ComparisonResult:
        text = await self._ask(
            JUDGE_SYSTEM_PROMPT,
            COMPARE_TEMPLATE.format(
                prompt=exercise.prompt,
                reference=reference or exercise.reference_answer or "(none provided)",
                answer=answer,
            ),
            QUICK_SAMPLING,
        )
        try:
            return decode(text, ComparisonResult)
        except DecodeError:
            return COMPARE_FALLBACK.model_copy()

    @log_agent_action("judge")
    async def multidimensional(
        self,
        exercise: Exercise,
        answer: str,
        dimensions: Sequence[str],
    ) -> Dict[str, DimensionAssessment]:
        """Per-dimension 0-100 scores; any dimension the model skips gets a neutral default."""
        text = await self._ask(
            JUDGE_SYSTEM_PROMPT,
            MULTIDIM_TEMPLATE.format(
                dimensions=", ".join(dimensions),
                prompt=exercise.prompt,
                answer=answer,
            ),
            JUDGE_SAMPLING,
        )
        try:
            decoded = decode(text, Dict[str, DimensionAssessment])
        except DecodeError:
            decoded = {}

        return {
            dimension: decoded.get(dimension) or DimensionAssessment(score=50, comment="Unable to evaluate")
            for dimension in dimensions
        }

    @log_agent_action("judge")
    async def report(self, evaluations: Sequence[EvaluationResult]) -> ProgressReport:
        if not evaluations:
            return REPORT_FALLBACK.model_copy()

        summary = [
            {"index": index, "score": evaluation.overall_score, "label": evaluation.label.value}
            for index, evaluation in enumerate(evaluations, start=1)
        ]
        average = sum(evaluation.overall_score for evaluation in evaluations) / len(evaluations)
        complete_count = sum(1 for evaluation in evaluations if evaluation.label == ScoreLabel.COMPLETE)

        text = await self._ask(
            REPORT_SYSTEM_PROMPT,
            REPORT_TEMPLATE.format(
                evaluations=json.dumps(summary, indent=2),
                average=average,
                complete_count=complete_count,
            ),
            REPORT_SAMPLING,
        )
        try:
            return decode(text, ProgressReport)
        except DecodeError:
            return REPORT_FALLBACK.model_copy()

    @log_agent_action("judge")
    async def hint(self, exercise: Exercise, answer: str = "", level: int = 1) -> str:
        """Hint for a retry; level 1 is a nudge, level 3 a partial walk-through."""
        level = max(1, min(3, level))
        text = await self._ask(
            HINT_SYSTEM_PROMPT,
            HINT_TEMPLATE.format(
                prompt=exercise.prompt,
                answer=answer or "(no attempt yet)",
                level_description=HINT_LEVELS[level],
            ),
            HINT_SAMPLING,
        )
        return text.strip() or HINT_FALLBACK
