"""SQLAlchemy-backed repository."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from mindcoach.agents.base.state import AbilityProfile, AbilityTag
from mindcoach.agents.reflection.state import ReflectionResult

from .base import get_session_maker
from .models import AbilityProfileRecord, ReflectionRecord
from .repository import update_ability_profile

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = [tag.value for tag in AbilityTag]


def _record_to_profile(record: AbilityProfileRecord) -> AbilityProfile:
    return AbilityProfile(**{field: getattr(record, field) for field in _PROFILE_FIELDS})


class SqlAlchemySessionRepository:
    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker

    def _sessions(self) -> async_sessionmaker:
        return self._session_maker or get_session_maker()

    async def get_profile(self, user_id: str) -> Optional[AbilityProfile]:
        async with self._sessions()() as db:
            record = await db.get(AbilityProfileRecord, user_id)
            return _record_to_profile(record) if record else None

    async def update_profile(
        self,
        user_id: str,
        abilities: Sequence[AbilityTag],
        score: float,
    ) -> AbilityProfile:
        async with self._sessions()() as db:
            record = await db.get(AbilityProfileRecord, user_id)
            if record is None:
                record = AbilityProfileRecord(user_id=user_id, scored_tasks=0)
                for field in _PROFILE_FIELDS:
                    setattr(record, field, 50.0)
                db.add(record)

            updated = update_ability_profile(_record_to_profile(record), abilities, score)
            for field in _PROFILE_FIELDS:
                setattr(record, field, getattr(updated, field))
            record.scored_tasks = (record.scored_tasks or 0) + 1

            await db.commit()
            logger.info(f"Updated ability profile for user {user_id}")
            return updated

    async def save_reflection(
        self,
        user_id: str,
        session_id: str,
        reflection: ReflectionResult,
    ) -> None:
        async with self._sessions()() as db:
            db.add(ReflectionRecord(
                user_id=user_id,
                session_id=session_id,
                summary=reflection.summary,
                payload=reflection.model_dump(mode="json", by_alias=True),
            ))
            await db.commit()
            logger.info(f"Saved reflection for session {session_id}")

    async def list_reflections(self, user_id: str, limit: int = 3) -> List[ReflectionResult]:
        async with self._sessions()() as db:
            result = await db.execute(
                select(ReflectionRecord)
                .where(ReflectionRecord.user_id == user_id)
                .order_by(ReflectionRecord.created_at.desc(), ReflectionRecord.id.desc())
                .limit(limit)
            )
            records = list(result.scalars())
        return [ReflectionResult.model_validate(record.payload) for record in reversed(records)]
