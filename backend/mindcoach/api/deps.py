"""Shared FastAPI dependencies.

Each provider builds its object once per process; tests replace them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from ..agents.base.gateway import ModelGateway
from ..core.config import get_settings
from ..db.repository import InMemorySessionRepository, SessionRepository
from ..db.sql_repository import SqlAlchemySessionRepository
from ..session.orchestrator import SessionOrchestrator


@lru_cache
def get_gateway() -> ModelGateway:
    return ModelGateway()


@lru_cache
def get_repository() -> SessionRepository:
    if get_settings().REPOSITORY_BACKEND == "memory":
        return InMemorySessionRepository()
    return SqlAlchemySessionRepository()


def get_orchestrator() -> SessionOrchestrator:
    """Orchestrator over the shared gateway and repository."""
    return _orchestrator(get_gateway(), get_repository())


@lru_cache
def _orchestrator(gateway: ModelGateway, repository: SessionRepository) -> SessionOrchestrator:
    return SessionOrchestrator(gateway=gateway, repository=repository)
