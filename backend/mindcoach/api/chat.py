"""Coach dialogue endpoint: blocking JSON or streamed NDJSON."""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import Field, model_validator

from ..agents.base.errors import TransportError
from ..agents.base.state import AbilityProfile, CamelModel, Message, Phase
from ..session.orchestrator import SessionOrchestrator, TurnOutcome
from ..session.state import Session, SessionCounters
from ..streaming import NDJSON_MEDIA_TYPE, StreamChannel, ndjson_lines
from .auth import CurrentUser, get_current_user
from .deps import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["Coach"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class ChatContext(CamelModel):
    """Client-held session state resent with every turn."""
    session_id: Optional[str] = None
    user_name: Optional[str] = None
    current_phase: Phase = Phase.START
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    user_goal: Optional[str] = None
    ability_profile: Optional[AbilityProfile] = None
    last_session_summary: Optional[str] = None
    counters: Optional[SessionCounters] = None
    is_choice: bool = False


class ChatRequest(CamelModel):
    message: Optional[str] = None
    history: List[Message] = Field(default_factory=list)
    context: ChatContext = Field(default_factory=ChatContext)
    action: Literal["start", "chat"] = "chat"
    stream: bool = False

    @model_validator(mode="after")
    def _require_message(self) -> "ChatRequest":
        if self.action == "chat" and not (self.message or "").strip():
            raise ValueError("message is required for a chat turn")
        return self


class ChatMetadata(CamelModel):
    should_generate_exercise: Optional[bool] = None
    should_reflect: Optional[bool] = None
    is_start: Optional[bool] = None


class ChatResponse(CamelModel):
    content: str
    phase: Phase
    metadata: ChatMetadata


# ==============================================================================
# Helpers
# ==============================================================================

def session_from_request(
    request: ChatRequest,
    user: CurrentUser,
    orchestrator: SessionOrchestrator,
) -> Session:
    """Rebuild the transient Session from the resent history and context."""
    context = request.context
    fields: Dict[str, Any] = {}
    if context.session_id:
        fields["id"] = context.session_id
    if context.counters is not None:
        fields["counters"] = context.counters

    session = orchestrator.machine.create(
        user_id=user.id,
        user_name=context.user_name or user.name,
        energy_level=context.energy_level,
        user_goal=context.user_goal,
        ability_profile=context.ability_profile or user.ability_profile,
        last_session_summary=context.last_session_summary,
        **fields,
    )
    session.phase = context.current_phase
    session.transcript = list(request.history)
    return session


def _raise_for_transport(outcome: TurnOutcome) -> None:
    if isinstance(outcome.error, TransportError):
        raise outcome.error


# ==============================================================================
# Endpoints
# ==============================================================================

@router.post("/chat")
async def chat(
    request: ChatRequest,
    current_user: CurrentUser = Depends(get_current_user),
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    """
    One Coach turn.

    ``action=start`` returns the opening greeting. ``stream=true`` returns
    newline-delimited JSON events ending with a ``done`` event that carries
    the suggested phase. Phase-entry side effects are left to the client,
    which calls the exercise and reflection endpoints itself.
    """
    if request.action == "start":
        outcome = await orchestrator.start(
            user_id=current_user.id,
            user_name=request.context.user_name or current_user.name,
            energy_level=request.context.energy_level,
            user_goal=request.context.user_goal,
            ability_profile=request.context.ability_profile or current_user.ability_profile,
            last_session_summary=request.context.last_session_summary,
        )
        _raise_for_transport(outcome)
        return ChatResponse(
            content=outcome.content,
            phase=Phase.START,
            metadata=ChatMetadata(is_start=True),
        ).to_wire()

    session = session_from_request(request, current_user, orchestrator)

    if request.stream:
        producer = orchestrator.stream_chat(
            session,
            request.message,
            auto_actions=False,
            choice=request.context.is_choice,
        )
        return StreamingResponse(
            ndjson_lines(StreamChannel(producer)),
            media_type=NDJSON_MEDIA_TYPE,
            headers={"Cache-Control": "no-cache"},
        )

    outcome = await orchestrator.chat(
        session,
        request.message,
        auto_actions=False,
        choice=request.context.is_choice,
    )
    _raise_for_transport(outcome)
    logger.info(f"Chat turn for user {current_user.id} ended in phase {outcome.phase.value}")
    return ChatResponse(
        content=outcome.content,
        phase=outcome.phase,
        metadata=ChatMetadata(
            should_generate_exercise=outcome.should_generate_exercise,
            should_reflect=outcome.should_reflect,
        ),
    ).to_wire()
