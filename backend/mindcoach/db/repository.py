"""Repository interface the orchestrator reads and writes through."""

import logging
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from mindcoach.agents.base.state import AbilityProfile, AbilityTag
from mindcoach.agents.reflection.state import ReflectionResult
from mindcoach.core.config import get_settings

logger = logging.getLogger(__name__)

# Failures a checkpoint logs and survives; the session keeps going without them.
STORAGE_ERRORS = (SQLAlchemyError, OSError)


def update_ability_profile(
    profile: AbilityProfile,
    abilities: Sequence[AbilityTag],
    score: float,
    window: Optional[int] = None,
) -> AbilityProfile:
    """
    Blend a new score into each targeted ability with an exponential moving average.

    alpha = 2 / (window + 1); new = alpha * score + (1 - alpha) * old
    """
    window = window if window is not None else get_settings().ROLLING_WINDOW
    alpha = 2 / (window + 1)
    updates: Dict[str, float] = {}
    for ability in set(abilities):
        old = profile.score(ability)
        updates[ability.value] = round(alpha * score + (1 - alpha) * old, 1)
    return profile.model_copy(update=updates)


class SessionRepository(Protocol):
    async def get_profile(self, user_id: str) -> Optional[AbilityProfile]:
        ...

    async def update_profile(
        self,
        user_id: str,
        abilities: Sequence[AbilityTag],
        score: float,
    ) -> AbilityProfile:
        ...

    async def save_reflection(
        self,
        user_id: str,
        session_id: str,
        reflection: ReflectionResult,
    ) -> None:
        ...

    async def list_reflections(self, user_id: str, limit: int = 3) -> List[ReflectionResult]:
        ...


class InMemorySessionRepository:
    """Process-local repository for development and tests."""

    def __init__(self):
        self.profiles: Dict[str, AbilityProfile] = {}
        self.reflections: Dict[str, List[ReflectionResult]] = {}

    async def get_profile(self, user_id: str) -> Optional[AbilityProfile]:
        return self.profiles.get(user_id)

    async def update_profile(
        self,
        user_id: str,
        abilities: Sequence[AbilityTag],
        score: float,
    ) -> AbilityProfile:
        current = self.profiles.get(user_id) or AbilityProfile()
        updated = update_ability_profile(current, abilities, score)
        self.profiles[user_id] = updated
        return updated

    async def save_reflection(
        self,
        user_id: str,
        session_id: str,
        reflection: ReflectionResult,
    ) -> None:
        self.reflections.setdefault(user_id, []).append(reflection)

    async def list_reflections(self, user_id: str, limit: int = 3) -> List[ReflectionResult]:
        return list(self.reflections.get(user_id, []))[-limit:]
