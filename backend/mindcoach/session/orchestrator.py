"""
Session Orchestrator

Drives one Session through the agent roles. A Session is passed in and
returned by handle; nothing here keeps per-user state between calls.
"""

import logging
from typing import AsyncIterator, List, Optional

from pydantic import BaseModel, ConfigDict

from mindcoach.agents.base.errors import AgentError
from mindcoach.agents.base.gateway import ModelGateway
from mindcoach.agents.base.state import AbilityProfile, Phase
from mindcoach.agents.coach.agent import CoachAgent
from mindcoach.agents.generator.agent import GeneratorAgent
from mindcoach.agents.generator.state import Exercise
from mindcoach.agents.judge.agent import JudgeAgent
from mindcoach.agents.judge.state import EvaluationResult
from mindcoach.agents.reflection.agent import ReflectionAgent
from mindcoach.agents.reflection.state import ReflectionResult
from mindcoach.db.repository import STORAGE_ERRORS, SessionRepository, update_ability_profile
from mindcoach.streaming.transport import StreamEvent

from .graph import (
    COACH_FALLBACK,
    GENERATOR_FALLBACK,
    TurnGraph,
    exercise_request_for,
)
from .machine import SessionStateMachine, Transition
from .state import Session

logger = logging.getLogger(__name__)

START_FALLBACK = (
    "Hi! Welcome to today's training. How is your energy right now, on a scale of 1 to 10?\n"
    "A) Memory warm-up  B) Logic challenge  C) Something random and fun"
)
JUDGE_FALLBACK = (
    "I couldn't score that answer just now. Your answer wasn't counted, so feel free to submit it again."
)


class TurnOutcome(BaseModel):
    """Everything a caller needs after one orchestrated action."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session: Session
    content: str = ""
    phase: Phase = Phase.START
    transition: Optional[Transition] = None
    exercise: Optional[Exercise] = None
    evaluation: Optional[EvaluationResult] = None
    reflection: Optional[ReflectionResult] = None
    should_generate_exercise: bool = False
    should_reflect: bool = False
    error: Optional[AgentError] = None


class SessionOrchestrator:
    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        repository: Optional[SessionRepository] = None,
        coach: Optional[CoachAgent] = None,
        generator: Optional[GeneratorAgent] = None,
        judge: Optional[JudgeAgent] = None,
        reflection: Optional[ReflectionAgent] = None,
        machine: Optional[SessionStateMachine] = None,
    ):
        self.gateway = gateway or ModelGateway()
        self.repository = repository
        self.machine = machine or SessionStateMachine()
        self.coach = coach or CoachAgent(self.gateway)
        self.generator = generator or GeneratorAgent(self.gateway, self.machine.difficulty_policy)
        self.judge = judge or JudgeAgent(self.gateway)
        self.reflection = reflection or ReflectionAgent(self.gateway)
        self.graph = TurnGraph(
            coach=self.coach,
            generator=self.generator,
            reflection=self.reflection,
            machine=self.machine,
            repository=self.repository,
        )

    # =========================================================================
    # Session start / exit
    # =========================================================================

    async def start(
        self,
        user_id: Optional[str] = None,
        user_name: str = "there",
        energy_level: Optional[int] = None,
        user_goal: Optional[str] = None,
        ability_profile: Optional[AbilityProfile] = None,
        last_session_summary: Optional[str] = None,
    ) -> TurnOutcome:
        """
        Create a session and produce the opening greeting.

        The stored ability profile and latest reflection are read once here.
        """
        if self.repository is not None and user_id:
            try:
                stored = await self.repository.get_profile(user_id)
                previous = [] if last_session_summary else await self.repository.list_reflections(user_id, limit=1)
            except STORAGE_ERRORS as exc:
                logger.error(f"Could not load stored state for user {user_id}: {exc}")
                stored, previous = None, []
            if stored is not None:
                ability_profile = stored
            if previous:
                last_session_summary = previous[-1].summary

        session = self.machine.create(
            user_id=user_id,
            user_name=user_name,
            energy_level=energy_level,
            user_goal=user_goal,
            ability_profile=ability_profile,
            last_session_summary=last_session_summary,
        )

        error = None
        try:
            greeting = await self.coach.open_session(session.context())
        except AgentError as exc:
            logger.error(f"Opening greeting failed for session {session.id}: {exc}")
            greeting, error = START_FALLBACK, exc

        self.machine.add_assistant_message(session, greeting)
        return TurnOutcome(session=session, content=greeting, phase=session.phase, error=error)

    def exit(self, session: Session) -> Session:
        return self.machine.exit(session)

    # =========================================================================
    # Chat turns
    # =========================================================================

    async def chat(
        self,
        session: Session,
        text: str,
        auto_actions: bool = True,
        choice: bool = False,
    ) -> TurnOutcome:
        """
        Run one blocking Coach turn through the turn graph.

        Args:
            session: Session to advance
            text: User message
            auto_actions: Run phase-entry side effects (exercise, reflection)
            choice: Treat the text as an answer to the opening A/B/C offer

        Returns:
            TurnOutcome with the reply and anything the graph produced
        """
        result = await self.graph.invoke({
            "session": session,
            "user_text": text,
            "is_choice": choice,
            "auto_actions": auto_actions,
        })
        return self._outcome(result)

    async def stream_chat(
        self,
        session: Session,
        text: str,
        auto_actions: bool = True,
        choice: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream one Coach turn as StreamEvents.

        Deltas are appended to the transcript in arrival order. Classification
        and phase transition run only after the upstream end marker, and the
        terminal event carries the suggested phase.
        """
        context = session.context()
        history = list(session.transcript)
        self.machine.add_user_message(session, text)
        message = self.machine.begin_assistant_message(session)

        upstream = self.coach.stream(text, history, context, choice=choice)
        try:
            async for event in upstream:
                if event.done:
                    break
                message.append(event.delta)
                yield StreamEvent(content=event.delta)
        except AgentError as exc:
            logger.error(f"Coach stream failed for session {session.id}: {exc}")
            fallback = f"\n\n{COACH_FALLBACK}" if message.content else COACH_FALLBACK
            message.append(fallback)
            message.finalize()
            yield StreamEvent(content=fallback)
            yield StreamEvent(done=True, error=str(exc))
            return
        finally:
            await upstream.aclose()

        message.finalize()
        reply = self.coach.analyze(message.content, session.phase)
        await self.graph.invoke({
            "session": session,
            "reply": reply,
            "auto_actions": auto_actions,
        })
        yield StreamEvent(done=True, suggested_phase=reply.suggested_phase)

    # =========================================================================
    # Exercises
    # =========================================================================

    async def next_exercise(self, session: Session, narrate: bool = False) -> TurnOutcome:
        """Generate and issue the next exercise at the policy difficulty."""
        difficulty = self.machine.next_difficulty(session)
        try:
            exercise = await self.generator.generate(exercise_request_for(session, difficulty))
        except AgentError as exc:
            logger.error(f"Exercise generation failed for session {session.id}: {exc}")
            self.machine.add_assistant_message(session, GENERATOR_FALLBACK)
            return TurnOutcome(session=session, content=GENERATOR_FALLBACK, phase=session.phase, error=exc)

        self.machine.issue(session, exercise)
        content = exercise.prompt
        if narrate:
            try:
                content = await self.coach.present_exercise(exercise, session.context())
            except AgentError as exc:
                logger.warning(f"Using raw exercise prompt for session {session.id}: {exc}")

        self.machine.add_assistant_message(session, content)
        return TurnOutcome(session=session, content=content, phase=session.phase, exercise=exercise)

    async def submit_answer(
        self,
        session: Session,
        answer: str,
        time_spent_seconds: Optional[float] = None,
    ) -> TurnOutcome:
        """
        Score the open exercise and update counters and the stored profile.

        Raises:
            SessionError: When no issued exercise is waiting for an answer
        """
        record = self.machine.answer(session, answer, time_spent_seconds)
        self.machine.add_user_message(session, answer)

        try:
            evaluation = await self.judge.evaluate(record.exercise, answer, time_spent_seconds)
        except AgentError as exc:
            logger.error(f"Evaluation failed for session {session.id}: {exc}")
            self.machine.retract_answer(session)
            self.machine.add_assistant_message(session, JUDGE_FALLBACK)
            return TurnOutcome(session=session, content=JUDGE_FALLBACK, phase=session.phase, error=exc)

        self.machine.record_evaluation(session, evaluation)

        if self.repository is not None and session.user_id:
            try:
                session.ability_profile = await self.repository.update_profile(
                    session.user_id,
                    record.exercise.target_abilities,
                    evaluation.overall_score,
                )
            except STORAGE_ERRORS as exc:
                logger.error(f"Profile update not saved for user {session.user_id}: {exc}")
                session.ability_profile = update_ability_profile(
                    session.ability_profile or AbilityProfile(),
                    record.exercise.target_abilities,
                    evaluation.overall_score,
                )

        try:
            content = await self.coach.present_feedback(evaluation, session.context())
        except AgentError as exc:
            logger.warning(f"Using judge feedback text for session {session.id}: {exc}")
            content = evaluation.feedback_to_user

        self.machine.add_assistant_message(session, content)
        return TurnOutcome(
            session=session,
            content=content,
            phase=session.phase,
            exercise=record.exercise,
            evaluation=evaluation,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _outcome(result: dict) -> TurnOutcome:
        session: Session = result["session"]
        reply = result.get("reply")
        errors: List[AgentError] = result.get("errors") or []
        return TurnOutcome(
            session=session,
            content=reply.content if reply is not None else COACH_FALLBACK,
            phase=session.phase,
            transition=result.get("transition"),
            exercise=result.get("exercise"),
            reflection=result.get("reflection"),
            should_generate_exercise=reply.should_generate_exercise if reply is not None else False,
            should_reflect=reply.should_reflect if reply is not None else False,
            error=errors[0] if errors else None,
        )
