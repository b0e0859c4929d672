"""Per-turn orchestration graph.

coach -> transition -> (generate_exercise | reflect | complete | END)

Streaming turns already hold the finished reply and enter at ``transition``.
"""

import logging
from typing import Any, Dict, List, Optional

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from mindcoach.agents.base.errors import AgentError, DecodeError
from mindcoach.agents.base.state import AbilityTag, Phase
from mindcoach.agents.coach.agent import CoachAgent
from mindcoach.agents.coach.state import CoachResult
from mindcoach.agents.generator.agent import GeneratorAgent
from mindcoach.agents.generator.state import Exercise, ExerciseRequest, ExerciseStyle
from mindcoach.agents.reflection.agent import ReflectionAgent, fallback_reflection
from mindcoach.agents.reflection.state import ReflectionResult
from mindcoach.db.repository import STORAGE_ERRORS, SessionRepository
from mindcoach.observability.langsmith import build_trace_config

from .aggregate import build_session_aggregate
from .machine import SessionStateMachine, Transition
from .state import Session

logger = logging.getLogger(__name__)

COACH_FALLBACK = (
    "Sorry, I couldn't come up with a reply just now. Please send your message again."
)
GENERATOR_FALLBACK = (
    "I couldn't prepare the next exercise this time. Ask me again and I'll have another go."
)
REFLECTION_FALLBACK = (
    "I couldn't put together your session reflection right now. "
    "Take a moment to think about which task felt hardest, and we can try again."
)

EXERCISE_PHASES = (Phase.WARMUP, Phase.MAIN, Phase.COOLDOWN)
WARMUP_ABILITIES = [AbilityTag.MEMORY, AbilityTag.ATTENTION]
COOLDOWN_ABILITIES = [AbilityTag.METACOGNITION, AbilityTag.MEMORY]
DEFAULT_ABILITIES = [AbilityTag.LOGIC, AbilityTag.MEMORY]


class TurnState(TypedDict, total=False):
    session: Session
    user_text: str
    is_choice: bool
    auto_actions: bool
    reply: Optional[CoachResult]
    transition: Optional[Transition]
    exercise: Optional[Exercise]
    reflection: Optional[ReflectionResult]
    errors: List[AgentError]


def exercise_request_for(session: Session, difficulty: int) -> ExerciseRequest:
    """Phase-appropriate request at the policy difficulty."""
    if session.phase == Phase.WARMUP:
        abilities, style = WARMUP_ABILITIES, ExerciseStyle.PLAYFUL
    elif session.phase == Phase.COOLDOWN:
        abilities, style = COOLDOWN_ABILITIES, ExerciseStyle.REAL_LIFE
    else:
        abilities = session.ability_profile.weakest(2) if session.ability_profile else DEFAULT_ABILITIES
        style = None
    return ExerciseRequest(
        target_abilities=list(abilities),
        difficulty=difficulty,
        style=style,
        user_context=session.user_goal,
    )


class TurnGraph:
    """Wraps the LangGraph for one chat turn."""

    def __init__(
        self,
        coach: CoachAgent,
        generator: GeneratorAgent,
        reflection: ReflectionAgent,
        machine: SessionStateMachine,
        repository: Optional[SessionRepository] = None,
    ):
        self.coach = coach
        self.generator = generator
        self.reflection = reflection
        self.machine = machine
        self.repository = repository
        self.graph = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(TurnState)

        graph.add_node("coach", self._coach_node)
        graph.add_node("transition", self._transition_node)
        graph.add_node("generate_exercise", self._generate_exercise_node)
        graph.add_node("reflect", self._reflect_node)
        graph.add_node("complete", self._complete_node)

        graph.add_conditional_edges(
            START,
            route_entry,
            {"coach": "coach", "transition": "transition"},
        )
        graph.add_conditional_edges(
            "coach",
            route_after_coach,
            {"transition": "transition", "end": END},
        )
        graph.add_conditional_edges(
            "transition",
            route_after_transition,
            {
                "generate_exercise": "generate_exercise",
                "reflect": "reflect",
                "complete": "complete",
                "end": END,
            },
        )
        graph.add_edge("generate_exercise", END)
        graph.add_edge("reflect", END)
        graph.add_edge("complete", END)

        return graph.compile()

    async def invoke(self, state: TurnState) -> TurnState:
        session = state["session"]
        config = build_trace_config(session.id, session.phase.value, user_id=session.user_id)
        initial: TurnState = {
            "auto_actions": True,
            "is_choice": False,
            "reply": None,
            "transition": None,
            "exercise": None,
            "reflection": None,
            "errors": [],
        }
        initial.update(state)
        return await self.graph.ainvoke(initial, config=config)

    # =========================================================================
    # Nodes
    # =========================================================================

    async def _coach_node(self, state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        text = state["user_text"]
        context = session.context()
        history = list(session.transcript)
        self.machine.add_user_message(session, text)

        try:
            if state.get("is_choice"):
                reply = await self.coach.handle_choice(text, history, context)
            else:
                reply = await self.coach.reply(text, history, context)
        except AgentError as exc:
            logger.error(f"Coach turn failed for session {session.id}: {exc}")
            self.machine.add_assistant_message(session, COACH_FALLBACK)
            return {"session": session, "reply": None, "errors": [*state.get("errors", []), exc]}

        self.machine.add_assistant_message(session, reply.content)
        return {"session": session, "reply": reply}

    async def _transition_node(self, state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        reply = state["reply"]
        transition = self.machine.advance(session, reply.suggested_phase)
        return {"session": session, "transition": transition}

    async def _generate_exercise_node(self, state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        difficulty = self.machine.next_difficulty(session)
        try:
            exercise = await self.generator.generate(exercise_request_for(session, difficulty))
        except AgentError as exc:
            logger.error(f"Exercise generation failed for session {session.id}: {exc}")
            self.machine.add_assistant_message(session, GENERATOR_FALLBACK)
            return {"session": session, "errors": [*state.get("errors", []), exc]}

        self.machine.issue(session, exercise)
        self.machine.add_assistant_message(session, exercise.prompt)
        return {"session": session, "exercise": exercise}

    async def _reflect_node(self, state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        aggregate = build_session_aggregate(session)
        previous = []
        if self.repository is not None and session.user_id:
            try:
                previous = await self.repository.list_reflections(session.user_id)
            except STORAGE_ERRORS as exc:
                logger.error(f"Reflecting without history for session {session.id}: {exc}")

        try:
            reflection = await self.reflection.generate(aggregate, session.context(), previous)
        except DecodeError as exc:
            logger.warning(f"Using fallback reflection for session {session.id}: {exc.reason}")
            reflection = fallback_reflection(aggregate)
        except AgentError as exc:
            logger.error(f"Reflection failed for session {session.id}: {exc}")
            self.machine.add_assistant_message(session, REFLECTION_FALLBACK)
            return {"session": session, "errors": [*state.get("errors", []), exc]}

        session.reflection = reflection
        return {"session": session, "reflection": reflection}

    async def _complete_node(self, state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        if self.repository is not None and session.user_id and session.reflection is not None:
            try:
                await self.repository.save_reflection(session.user_id, session.id, session.reflection)
            except STORAGE_ERRORS as exc:
                logger.error(f"Reflection for session {session.id} not saved: {exc}")
        return {"session": session}


# =============================================================================
# Routing
# =============================================================================

def route_entry(state: TurnState) -> str:
    return "transition" if state.get("reply") is not None else "coach"


def route_after_coach(state: TurnState) -> str:
    return "transition" if state.get("reply") is not None else "end"


def route_after_transition(state: TurnState) -> str:
    if not state.get("auto_actions", True):
        return "end"

    session = state["session"]
    reply = state["reply"]
    transition = state.get("transition")

    if transition is not None:
        if transition.to_phase in (Phase.WARMUP, Phase.MAIN):
            return "generate_exercise"
        if transition.to_phase == Phase.REFLECT:
            return "reflect"
        if transition.to_phase == Phase.COMPLETE:
            return "complete"

    if reply.should_reflect and session.phase == Phase.REFLECT and session.reflection is None:
        return "reflect"
    if (
        reply.should_generate_exercise
        and session.phase in EXERCISE_PHASES
        and session.open_task is None
    ):
        return "generate_exercise"
    return "end"
