"""Dialogue Coach agent.

The coach produces free text shown verbatim to the user. Control flags are
inferred afterwards by a ``PhaseClassifier``, never parsed from the reply.
"""

import logging
from typing import AsyncIterator, List, Optional, Sequence

from mindcoach.agents.base.gateway import GatewayEvent, ModelGateway, SamplingParams
from mindcoach.agents.base.message_utils import make_user_message
from mindcoach.agents.base.state import AgentContext, Message, Phase
from mindcoach.agents.base.utils import log_agent_action
from mindcoach.agents.generator.prompts import format_abilities
from mindcoach.agents.generator.state import Exercise
from mindcoach.agents.judge.state import EvaluationResult

from .classifier import KeywordPhaseClassifier, PhaseClassifier
from .prompts import (
    CHOICE_NOTES,
    FEEDBACK_TEMPLATE,
    PRESENT_EXERCISE_TEMPLATE,
    build_coach_system_prompt,
    build_session_start_prompt,
)
from .state import CoachResult

logger = logging.getLogger(__name__)

COACH_SAMPLING = SamplingParams(temperature=0.7, max_tokens=1024)
OPENING_SAMPLING = SamplingParams(temperature=0.8, max_tokens=1024)

CHOICE_KEYWORDS = {
    "A": ("memory", "warm-up", "warm up", "warmup"),
    "B": ("logic", "reasoning"),
    "C": ("random", "fun"),
}


def interpret_choice(choice: str) -> Optional[str]:
    """Map an A/B/C style answer to the direction it selects, if any."""
    normalized = choice.strip().upper().rstrip(".)")
    if normalized in CHOICE_NOTES:
        return normalized
    lowered = choice.lower()
    for letter, keywords in CHOICE_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return letter
    return None


def annotate_choice(choice: str) -> str:
    """Append the system note for a recognised direction choice."""
    letter = interpret_choice(choice)
    return f"{choice}\n\n[System note: {CHOICE_NOTES[letter]}]" if letter else choice


class CoachAgent:
    """Builds coach prompts, calls the gateway and classifies the reply."""

    def __init__(self, gateway: ModelGateway, classifier: Optional[PhaseClassifier] = None):
        self.gateway = gateway
        self.classifier = classifier or KeywordPhaseClassifier()

    @staticmethod
    def _conversation(user_text: str, transcript: Sequence[Message]) -> List[Message]:
        return [*transcript, make_user_message(user_text)]

    def analyze(self, content: str, current_phase: Phase) -> CoachResult:
        """Classify a finished reply for the given phase."""
        signal = self.classifier.classify(content, current_phase)
        return CoachResult(
            content=content,
            suggested_phase=signal.suggested_phase,
            should_generate_exercise=signal.should_generate_exercise,
            should_reflect=signal.should_reflect,
        )

    @log_agent_action("coach")
    async def reply(
        self,
        user_text: str,
        transcript: Sequence[Message],
        context: AgentContext,
    ) -> CoachResult:
        content = await self.gateway.complete(
            build_coach_system_prompt(context),
            self._conversation(user_text, transcript),
            COACH_SAMPLING,
        )
        return self.analyze(content, context.current_phase)

    async def stream(
        self,
        user_text: str,
        transcript: Sequence[Message],
        context: AgentContext,
        choice: bool = False,
    ) -> AsyncIterator[GatewayEvent]:
        """Stream the reply; classification is left to the caller once done."""
        if choice:
            user_text = annotate_choice(user_text)
        logger.info(f"[coach] Streaming reply in phase {context.current_phase.value}")
        async for event in self.gateway.stream(
            build_coach_system_prompt(context),
            self._conversation(user_text, transcript),
            COACH_SAMPLING,
        ):
            yield event

    @log_agent_action("coach")
    async def open_session(self, context: AgentContext) -> str:
        """Greeting for a new session: energy check plus A/B/C directions."""
        return await self.gateway.complete(
            build_coach_system_prompt(context, Phase.START),
            [make_user_message(build_session_start_prompt(context))],
            OPENING_SAMPLING,
        )

    @log_agent_action("coach")
    async def handle_choice(
        self,
        choice: str,
        transcript: Sequence[Message],
        context: AgentContext,
    ) -> CoachResult:
        """Reply to a direction choice, annotating it for the model when recognised."""
        return await self.reply(annotate_choice(choice), transcript, context)

    @log_agent_action("coach")
    async def present_exercise(self, exercise: Exercise, context: AgentContext) -> str:
        if exercise.suggested_time_seconds:
            minutes = max(1, -(-exercise.suggested_time_seconds // 60))
            time_hint = f"Suggested time: about {minutes} minute(s)"
        else:
            time_hint = "No time limit"
        prompt = PRESENT_EXERCISE_TEMPLATE.format(
            abilities=format_abilities(exercise.target_abilities),
            difficulty=exercise.difficulty,
            time_hint=time_hint,
            prompt=exercise.prompt,
        )
        return await self.gateway.complete(
            build_coach_system_prompt(context),
            [make_user_message(prompt)],
            COACH_SAMPLING,
        )

    @log_agent_action("coach")
    async def present_feedback(self, evaluation: EvaluationResult, context: AgentContext) -> str:
        prompt = FEEDBACK_TEMPLATE.format(
            label=evaluation.label.value,
            score=evaluation.overall_score,
            strengths=evaluation.strengths_for_user,
            improvements=evaluation.improvements_for_user,
            tip=evaluation.next_time_tip_for_user,
        )
        return await self.gateway.complete(
            build_coach_system_prompt(context),
            [make_user_message(prompt)],
            COACH_SAMPLING,
        )
