"""Reflection Coach endpoint."""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import Field, ValidationError

from ..agents.base.state import AgentContext, CamelModel, Message, Phase
from ..agents.reflection.state import HistoricalData, ReflectionResult, SessionAggregate
from ..db.repository import STORAGE_ERRORS, SessionRepository
from ..session.orchestrator import SessionOrchestrator
from .auth import CurrentUser, get_current_user
from .deps import get_orchestrator, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["Reflection"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class GenerateData(CamelModel):
    session_data: SessionAggregate
    previous_reflections: Optional[List[ReflectionResult]] = None
    session_id: Optional[str] = None


class DialogueData(CamelModel):
    user_input: str = Field(min_length=1)
    history: List[Message] = Field(default_factory=list)


class PlanData(CamelModel):
    historical_data: Optional[HistoricalData] = None


class QuestionsData(CamelModel):
    focus: Optional[str] = None


class AnalyzeData(CamelModel):
    reflections: List[str] = Field(default_factory=list)


class MotivateData(CamelModel):
    current_streak: Optional[int] = None
    recent_achievements: List[str] = Field(default_factory=list)


ACTION_DATA = {
    "generate": GenerateData,
    "dialogue": DialogueData,
    "plan": PlanData,
    "questions": QuestionsData,
    "analyze": AnalyzeData,
    "motivate": MotivateData,
}


class ReflectRequest(CamelModel):
    action: Literal["generate", "dialogue", "plan", "questions", "analyze", "motivate"]
    data: Dict[str, Any] = Field(default_factory=dict)

    def parsed_data(self) -> CamelModel:
        """
        Validate ``data`` against the action's schema.

        Raises:
            ValidationError: When required fields for the action are missing
        """
        return ACTION_DATA[self.action].model_validate(self.data)


# ==============================================================================
# Endpoints
# ==============================================================================

@router.post("/reflect")
async def reflect(
    request: ReflectRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    repository: SessionRepository = Depends(get_repository),
) -> Any:
    """Run one Reflection Coach action; the response shape follows the action."""
    try:
        data = request.parsed_data()
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    agent = orchestrator.reflection
    context = AgentContext(
        user_name=current_user.name,
        user_id=current_user.id,
        current_phase=Phase.REFLECT,
        ability_profile=current_user.ability_profile,
    )

    if isinstance(data, GenerateData):
        previous = data.previous_reflections
        if previous is None:
            try:
                previous = await repository.list_reflections(current_user.id)
            except STORAGE_ERRORS as exc:
                logger.error(f"Reflecting without history for user {current_user.id}: {exc}")
                previous = []
        result = await agent.generate(data.session_data, context, previous)
        if data.session_id:
            try:
                await repository.save_reflection(current_user.id, data.session_id, result)
                logger.info(f"Saved reflection for session {data.session_id}")
            except STORAGE_ERRORS as exc:
                logger.error(f"Reflection for session {data.session_id} not saved: {exc}")
        return result.to_wire()

    if isinstance(data, DialogueData):
        turn = await agent.dialogue(data.user_input, context, data.history)
        return turn.to_wire()

    if isinstance(data, PlanData):
        plan = await agent.plan(context, data.historical_data)
        return plan.to_wire()

    if isinstance(data, QuestionsData):
        return await agent.questions(context, data.focus)

    if isinstance(data, AnalyzeData):
        analysis = await agent.analyze(data.reflections, context)
        return analysis.to_wire()

    message = await agent.motivate(context, data.current_streak, data.recent_achievements)
    return {"message": message}
