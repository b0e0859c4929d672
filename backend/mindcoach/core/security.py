"""Bearer-token identity.

Tokens carry the user id (``sub``), a display name and, optionally, the
ability profile the issuing system already knows about.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from .config import settings


def create_access_token(
    user_id: str,
    name: Optional[str] = None,
    profile: Optional[Dict[str, float]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed token for one coaching user."""
    claims: Dict[str, Any] = {"sub": user_id}
    if name:
        claims["name"] = name
    if profile:
        claims["profile"] = dict(profile)

    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims["exp"] = datetime.utcnow() + lifetime
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> Optional[dict]:
    """Decoded claims, or None when the signature or expiry check fails."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
