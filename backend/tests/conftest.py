"""
Pytest configuration and fixtures.

The model endpoint is replaced by ``FakeGateway``, which replays scripted
replies and records every call it receives.
"""

import json
import sys
from pathlib import Path
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Optional, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mindcoach.agents.base.gateway import GatewayEvent, ModelGateway, SamplingParams
from mindcoach.agents.base.state import AbilityTag
from mindcoach.agents.generator.state import Exercise, default_rubric
from mindcoach.api.deps import get_orchestrator, get_repository
from mindcoach.core.security import create_access_token
from mindcoach.db.repository import InMemorySessionRepository
from mindcoach.main import app
from mindcoach.session.orchestrator import SessionOrchestrator


class FakeGateway(ModelGateway):
    """Scripted stand-in for the model endpoint.

    Each queued reply is used once, in order. A reply may be a string, an
    exception to raise, or (for ``stream``) a list of chunks in which an
    exception is raised at that position.
    """

    def __init__(self, replies: Sequence[Any] = ()):
        super().__init__(llm_factory=lambda params, streaming: None)
        self.replies: List[Any] = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Any) -> "FakeGateway":
        self.replies.extend(replies)
        return self

    def _next(self, kind: str, system_prompt: str, messages: Sequence[Any], params: Optional[SamplingParams]) -> Any:
        self.calls.append({
            "kind": kind,
            "system_prompt": system_prompt,
            "messages": list(messages),
            "params": params,
        })
        if not self.replies:
            raise AssertionError(f"FakeGateway has no scripted reply for {kind} call #{len(self.calls)}")
        return self.replies.pop(0)

    async def complete(self, system_prompt, messages, params=None, config=None) -> str:
        reply = self._next("complete", system_prompt, messages, params)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            return "".join(reply)
        return reply

    async def stream(self, system_prompt, messages, params=None, config=None) -> AsyncIterator[GatewayEvent]:
        reply = self._next("stream", system_prompt, messages, params)
        if isinstance(reply, Exception):
            raise reply
        chunks = reply if isinstance(reply, list) else [reply[i:i + 7] for i in range(0, len(reply), 7)]
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            if chunk:
                yield GatewayEvent(delta=chunk)
        yield GatewayEvent(done=True)

    @property
    def last_prompt(self) -> str:
        """Text of the last user message sent upstream."""
        message = self.calls[-1]["messages"][-1]
        return getattr(message, "content", message)


class UnavailableRepository(InMemorySessionRepository):
    """Repository whose every call fails as if the database were down."""

    async def get_profile(self, user_id):
        raise SQLAlchemyError("database unavailable")

    async def update_profile(self, user_id, abilities, score):
        raise SQLAlchemyError("database unavailable")

    async def save_reflection(self, user_id, session_id, reflection):
        raise SQLAlchemyError("database unavailable")

    async def list_reflections(self, user_id, limit=3):
        raise SQLAlchemyError("database unavailable")


def exercise_json(**overrides: Any) -> str:
    """Generator output for a simple memory exercise."""
    payload: Dict[str, Any] = {
        "prompt": "Remember these numbers: 3 8 1 9. Now type them in reverse order.",
        "referenceAnswer": "9 1 8 3",
        "explanation": "Reverse the sequence digit by digit.",
        "difficulty": 2,
        "targetAbilities": ["memory"],
        "suggestedTimeSeconds": 60,
        "exerciseType": "number_span",
    }
    payload.update(overrides)
    return json.dumps({key: value for key, value in payload.items() if value is not None})


def evaluation_json(score: int = 95, **overrides: Any) -> str:
    """Judge output scoring every default rubric dimension."""
    payload: Dict[str, Any] = {
        "overallScore": score,
        "dimensionScores": [
            {"dimensionName": "correctness", "score": 5, "shortComment": "Right answer"},
            {"dimensionName": "reasoning", "score": 4, "shortComment": "Clear"},
            {"dimensionName": "completeness", "score": 5, "shortComment": "Complete"},
        ],
        "errorTypes": [],
        "strengthsForUser": "You kept the order straight.",
        "improvementsForUser": "Try saying the digits aloud.",
        "nextTimeTipForUser": "Group digits in pairs.",
        "feedbackToUser": "Nicely done!",
    }
    payload.update(overrides)
    return json.dumps(payload)


def reflection_json(**overrides: Any) -> str:
    payload: Dict[str, Any] = {
        "summary": "You finished two tasks with strong focus.",
        "highlights": ["Fast recall"],
        "challenges": ["Logic under time pressure"],
        "cognitiveInsights": ["You chunk numbers naturally"],
        "recommendations": ["Practise short logic puzzles"],
        "nextStep": "Try a focused logic session",
        "metacognitivePrompts": ["What helped you remember the digits?"],
    }
    payload.update(overrides)
    return json.dumps(payload)


def make_exercise(**overrides: Any) -> Exercise:
    fields: Dict[str, Any] = {
        "prompt": "Which number comes next: 2, 4, 8, 16?",
        "reference_answer": "32",
        "difficulty": 3,
        "target_abilities": [AbilityTag.LOGIC],
        "suggested_time_seconds": 60,
        "rubric": default_rubric(),
    }
    fields.update(overrides)
    return Exercise(**fields)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def orchestrator(gateway: FakeGateway, repository: InMemorySessionRepository) -> SessionOrchestrator:
    return SessionOrchestrator(gateway=gateway, repository=repository)


@pytest.fixture
async def async_client(
    orchestrator: SessionOrchestrator,
    repository: InMemorySessionRepository,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the fake gateway."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_repository] = lambda: repository
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def test_user_token() -> str:
    return create_access_token("user-1", name="Ada")


@pytest.fixture
def auth_headers(test_user_token: str) -> dict:
    """Return headers with a user auth token."""
    return {"Authorization": f"Bearer {test_user_token}"}
