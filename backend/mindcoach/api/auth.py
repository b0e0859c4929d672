"""Bearer-token identity for every endpoint."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from ..agents.base.state import AbilityProfile, CamelModel
from ..core.security import verify_access_token
from ..db.repository import STORAGE_ERRORS, SessionRepository
from .deps import get_repository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(CamelModel):
    """Authenticated caller plus the ability profile used to seed sessions."""
    id: str
    name: str = "there"
    ability_profile: Optional[AbilityProfile] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    repository: SessionRepository = Depends(get_repository),
) -> CurrentUser:
    """Resolve the bearer token; a stored profile overrides the token claim."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    profile = None
    claim = payload.get("profile")
    if isinstance(claim, dict):
        try:
            profile = AbilityProfile.model_validate(claim)
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed profile claim for user {user_id}: {exc}")

    try:
        stored = await repository.get_profile(str(user_id))
    except STORAGE_ERRORS as exc:
        logger.error(f"Stored profile unavailable for user {user_id}: {exc}")
        stored = None
    return CurrentUser(
        id=str(user_id),
        name=payload.get("name") or "there",
        ability_profile=stored or profile,
    )
