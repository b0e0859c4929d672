"""
HTTP client for the MindCoach API.

The server treats every request as stateless, so the client owns the
Session: it resends the full history with each turn and applies phase
transitions through the same state machine the server uses.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from .agents.base.state import AbilityTag, Phase
from .agents.generator.state import Exercise, ExerciseType, GenerationMode
from .agents.judge.state import EvaluationResult
from .agents.reflection.state import ReflectionResult
from .core.config import get_settings
from .session.aggregate import build_session_aggregate
from .session.machine import SessionStateMachine
from .session.state import Session
from .streaming import StreamAccumulator

logger = logging.getLogger(__name__)


class CoachClientError(Exception):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


class CoachClient:
    """Drives one training session against a MindCoach server."""

    def __init__(
        self,
        base_url: str,
        token: str,
        user_name: str = "there",
        api_prefix: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
        machine: Optional[SessionStateMachine] = None,
    ):
        prefix = api_prefix if api_prefix is not None else get_settings().API_V1_PREFIX
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + prefix,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
            timeout=timeout,
        )
        self.machine = machine or SessionStateMachine()
        self.session: Session = self.machine.create(user_name=user_name)

    async def __aenter__(self) -> "CoachClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        response = await self._http.post(path, json=payload)
        if response.status_code >= 400:
            raise CoachClientError(response.status_code, _error_message(response))
        return response.json()

    def _chat_payload(self, text: Optional[str], action: str, stream: bool = False, choice: bool = False) -> Dict[str, Any]:
        session = self.session
        context: Dict[str, Any] = {
            "sessionId": session.id,
            "userName": session.user_name,
            "currentPhase": session.phase.value,
            "counters": session.counters.to_wire(),
            "isChoice": choice,
        }
        if session.energy_level is not None:
            context["energyLevel"] = session.energy_level
        if session.user_goal:
            context["userGoal"] = session.user_goal
        if session.ability_profile is not None:
            context["abilityProfile"] = session.ability_profile.to_wire()
        return {
            "message": text,
            "history": [message.model_dump(mode="json") for message in session.transcript],
            "context": context,
            "action": action,
            "stream": stream,
        }

    def _apply_phase(self, phase: Phase) -> None:
        if phase != self.session.phase:
            self.machine.advance(self.session, phase)

    # =========================================================================
    # Dialogue
    # =========================================================================

    async def start(self, energy_level: Optional[int] = None, user_goal: Optional[str] = None) -> str:
        """Begin a fresh session and return the opening greeting."""
        self.session = self.machine.create(
            user_name=self.session.user_name,
            energy_level=energy_level,
            user_goal=user_goal,
            ability_profile=self.session.ability_profile,
        )
        body = await self._post("/ai/chat", self._chat_payload(None, "start"))
        self.machine.add_assistant_message(self.session, body["content"])
        return body["content"]

    async def chat(self, text: str, choice: bool = False) -> Dict[str, Any]:
        """Send one blocking turn; returns the raw response body."""
        body = await self._post("/ai/chat", self._chat_payload(text, "chat", choice=choice))
        self.machine.add_user_message(self.session, text)
        self.machine.add_assistant_message(self.session, body["content"])
        self._apply_phase(Phase(body["phase"]))
        return body

    async def chat_stream(self, text: str) -> AsyncIterator[str]:
        """
        Send one streamed turn, yielding content deltas as they arrive.

        The suggested phase is applied only once the terminal event arrives.

        Raises:
            CoachClientError: When the server rejects the request
        """
        payload = self._chat_payload(text, "chat", stream=True)
        async with self._http.stream("POST", "/ai/chat", json=payload) as response:
            if response.status_code >= 400:
                await response.aread()
                raise CoachClientError(response.status_code, _error_message(response))

            self.machine.add_user_message(self.session, text)
            accumulator = StreamAccumulator(self.session, self.machine)
            try:
                async for chunk in response.aiter_bytes():
                    for event in accumulator.feed(chunk):
                        if event.content:
                            yield event.content
            finally:
                accumulator.finish()

        if accumulator.error:
            logger.warning(f"Streamed turn ended with an error: {accumulator.error}")

    # =========================================================================
    # Exercises
    # =========================================================================

    async def generate_exercise(
        self,
        mode: GenerationMode = GenerationMode.NORMAL,
        target_abilities: Optional[List[AbilityTag]] = None,
        difficulty: Optional[int] = None,
        exercise_type: Optional[ExerciseType] = None,
        theme: Optional[str] = None,
    ) -> Exercise:
        """Request an exercise and issue it into the local session."""
        payload: Dict[str, Any] = {"mode": mode.value}
        if target_abilities:
            payload["targetAbilities"] = [ability.value for ability in target_abilities]
        if difficulty is None and mode == GenerationMode.NORMAL:
            difficulty = self.machine.next_difficulty(self.session)
        if difficulty is not None:
            payload["difficulty"] = difficulty
        if exercise_type is not None:
            payload["exerciseType"] = exercise_type.value
        if theme:
            payload["theme"] = theme
        if mode == GenerationMode.ADAPTIVE:
            payload["recentPerformance"] = self.session.recent_performance().to_wire()
            payload["recentScores"] = self.session.scores

        exercise = Exercise.model_validate(await self._post("/exercise/generate", payload))
        self.machine.issue(self.session, exercise)
        self.machine.add_assistant_message(self.session, exercise.prompt)
        return exercise

    async def evaluate(self, answer: str, time_spent_seconds: Optional[float] = None) -> EvaluationResult:
        """
        Submit an answer to the open exercise.

        Raises:
            SessionError: When no exercise is waiting for an answer
            CoachClientError: When the server rejects the evaluation
        """
        record = self.machine.answer(self.session, answer, time_spent_seconds)
        payload: Dict[str, Any] = {
            "action": "evaluate",
            "exercise": record.exercise.to_wire(),
            "userAnswer": answer,
        }
        if time_spent_seconds is not None:
            payload["timeSpent"] = time_spent_seconds

        try:
            body = await self._post("/exercise/evaluate", payload)
        except (CoachClientError, httpx.HTTPError):
            self.machine.retract_answer(self.session)
            raise

        evaluation = EvaluationResult.model_validate(body)
        self.machine.record_evaluation(self.session, evaluation)
        self.machine.add_user_message(self.session, answer)
        self.machine.add_assistant_message(self.session, evaluation.feedback_to_user)
        return evaluation

    # =========================================================================
    # Reflection
    # =========================================================================

    async def reflect(self, action: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Run a Reflection Coach action and return the raw response."""
        return await self._post("/ai/reflect", {"action": action, "data": data or {}})

    async def reflect_session(self) -> ReflectionResult:
        """Generate and store the reflection for the current session."""
        aggregate = build_session_aggregate(self.session)
        body = await self.reflect("generate", {
            "sessionData": aggregate.to_wire(),
            "sessionId": self.session.id,
        })
        self.session.reflection = ReflectionResult.model_validate(body)
        return self.session.reflection

    def exit(self) -> Session:
        """Abandon open work and start over locally."""
        self.session = self.machine.exit(self.session)
        return self.session
