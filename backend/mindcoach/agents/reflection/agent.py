"""Reflection Coach agent: end-of-session reflection and guided dialogue."""

import logging
from typing import List, Optional, Sequence

from mindcoach.agents.base.codec import decode
from mindcoach.agents.base.errors import DecodeError
from mindcoach.agents.base.gateway import ModelGateway, SamplingParams
from mindcoach.agents.base.message_utils import make_user_message
from mindcoach.agents.base.state import AgentContext, Message
from mindcoach.agents.base.utils import log_agent_action

from .prompts import (
    ANALYZE_TEMPLATE,
    DIALOGUE_TEMPLATE,
    METACOGNITION_SYSTEM_PROMPT,
    MOTIVATION_SYSTEM_PROMPT,
    MOTIVATION_TEMPLATE,
    QUESTIONS_TEMPLATE,
    REFLECTION_SYSTEM_PROMPT,
    build_plan_prompt,
    build_reflection_prompt,
)
from .state import (
    DEFAULT_METACOGNITION_ANALYSIS,
    DEFAULT_SELF_ASSESSMENT_QUESTIONS,
    DialogueTurn,
    HistoricalData,
    LearningPlan,
    MetacognitionAnalysis,
    ReflectionResult,
    SessionAggregate,
)

logger = logging.getLogger(__name__)

REFLECTION_SAMPLING = SamplingParams(temperature=0.6, max_tokens=2048, json_mode=True)
DIALOGUE_SAMPLING = SamplingParams(temperature=0.7, max_tokens=1024)
PLAN_SAMPLING = SamplingParams(temperature=0.5, max_tokens=2048, json_mode=True)
QUESTIONS_SAMPLING = SamplingParams(temperature=0.7, max_tokens=1024, json_mode=True)
ANALYZE_SAMPLING = SamplingParams(temperature=0.4, max_tokens=1024, json_mode=True)
MOTIVATION_SAMPLING = SamplingParams(temperature=0.8, max_tokens=256)

MOTIVATION_FALLBACK = "Every session you finish makes the next one easier. Keep going!"
DIALOGUE_FALLBACK = "Thanks for sharing. What stood out to you about how you approached today's tasks?"


def fallback_reflection(aggregate: SessionAggregate) -> ReflectionResult:
    """Static reflection used when the model output cannot be decoded."""
    if aggregate.task_count:
        summary = (
            f"You completed {aggregate.task_count} task(s) with an average score of "
            f"{aggregate.average_score:.0f}."
        )
    else:
        summary = "You showed up and started training today."
    return ReflectionResult(
        summary=summary,
        highlights=["You stayed with the session to the end."],
        challenges=[],
        recommendations=["Keep a steady rhythm of short sessions."],
        next_step="Come back for another short session soon.",
        metacognitive_prompts=["Which task made you think the hardest today, and why?"],
    )


class ReflectionAgent:
    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    @log_agent_action("reflection")
    async def generate(
        self,
        aggregate: SessionAggregate,
        context: AgentContext,
        previous_reflections: Optional[Sequence[ReflectionResult]] = None,
    ) -> ReflectionResult:
        """
        Structured reflection for a finished session.

        Raises:
            DecodeError: When the output holds no usable reflection
        """
        text = await self.gateway.complete(
            REFLECTION_SYSTEM_PROMPT,
            [make_user_message(build_reflection_prompt(aggregate, context, previous_reflections))],
            REFLECTION_SAMPLING,
        )
        return decode(text, ReflectionResult)

    @log_agent_action("reflection")
    async def dialogue(
        self,
        user_input: str,
        context: AgentContext,
        history: Sequence[Message] = (),
    ) -> DialogueTurn:
        """One guided reflection turn; unstructured replies become plain responses."""
        text = await self.gateway.complete(
            REFLECTION_SYSTEM_PROMPT,
            [*history, make_user_message(DIALOGUE_TEMPLATE.format(user_input=user_input))],
            DIALOGUE_SAMPLING,
        )
        try:
            return decode(text, DialogueTurn)
        except DecodeError:
            return DialogueTurn(response=text.strip() or DIALOGUE_FALLBACK)

    @log_agent_action("reflection")
    async def plan(self, context: AgentContext, history: Optional[HistoricalData] = None) -> LearningPlan:
        """
        Raises:
            DecodeError: When the output holds no usable plan
        """
        text = await self.gateway.complete(
            REFLECTION_SYSTEM_PROMPT,
            [make_user_message(build_plan_prompt(context, history))],
            PLAN_SAMPLING,
        )
        return decode(text, LearningPlan)

    @log_agent_action("reflection")
    async def questions(self, context: AgentContext, focus: Optional[str] = None) -> List[str]:
        focus_line = f"\nFocus: {focus}\n" if focus else ""
        text = await self.gateway.complete(
            REFLECTION_SYSTEM_PROMPT,
            [make_user_message(QUESTIONS_TEMPLATE.format(focus_line=focus_line))],
            QUESTIONS_SAMPLING,
        )
        try:
            questions = [question for question in decode(text, List[str]) if question.strip()]
        except DecodeError:
            questions = []
        return questions or list(DEFAULT_SELF_ASSESSMENT_QUESTIONS)

    @log_agent_action("reflection")
    async def analyze(self, reflections: Sequence[str], context: AgentContext) -> MetacognitionAnalysis:
        numbered = "\n".join(f"{index}. {text}" for index, text in enumerate(reflections, start=1))
        text = await self.gateway.complete(
            METACOGNITION_SYSTEM_PROMPT,
            [make_user_message(ANALYZE_TEMPLATE.format(reflections=numbered or "(none)"))],
            ANALYZE_SAMPLING,
        )
        try:
            return decode(text, MetacognitionAnalysis)
        except DecodeError:
            return DEFAULT_METACOGNITION_ANALYSIS.model_copy(deep=True)

    @log_agent_action("reflection")
    async def motivate(
        self,
        context: AgentContext,
        streak: Optional[int] = None,
        achievements: Optional[Sequence[str]] = None,
    ) -> str:
        streak_line = f"Training streak: {streak} day(s)\n" if streak else ""
        achievements_line = f"Recent achievements: {', '.join(achievements)}\n" if achievements else ""
        text = await self.gateway.complete(
            MOTIVATION_SYSTEM_PROMPT,
            [make_user_message(MOTIVATION_TEMPLATE.format(
                user_name=context.user_name,
                streak_line=streak_line,
                achievements_line=achievements_line,
            ))],
            MOTIVATION_SAMPLING,
        )
        return text.strip() or MOTIVATION_FALLBACK
