"""
Tests for ability-profile blending and both repository backends.
"""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mindcoach.agents.base.state import AbilityProfile, AbilityTag
from mindcoach.agents.reflection.state import ReflectionResult
from mindcoach.db.base import create_tables
from mindcoach.db.repository import InMemorySessionRepository, update_ability_profile
from mindcoach.db.sql_repository import SqlAlchemySessionRepository


@pytest.fixture(params=["memory", "sql"])
async def repo(request):
    if request.param == "memory":
        yield InMemorySessionRepository()
        return
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_tables(engine)
    try:
        yield SqlAlchemySessionRepository(async_sessionmaker(engine, expire_on_commit=False))
    finally:
        await engine.dispose()


class TestProfileBlend:
    def test_only_targeted_abilities_move(self):
        updated = update_ability_profile(AbilityProfile(), [AbilityTag.MEMORY], 100, window=5)
        assert updated.memory == pytest.approx(66.7)
        assert updated.logic == 50.0

    def test_duplicate_tags_count_once(self):
        updated = update_ability_profile(AbilityProfile(), [AbilityTag.LOGIC, AbilityTag.LOGIC], 80, window=5)
        assert updated.logic == pytest.approx(60.0)


@pytest.mark.asyncio
class TestRepositories:
    async def test_profile_starts_empty_then_updates(self, repo):
        assert await repo.get_profile("u1") is None
        first = await repo.update_profile("u1", [AbilityTag.ATTENTION], 80)
        second = await repo.update_profile("u1", [AbilityTag.ATTENTION], 80)
        assert first.attention == pytest.approx(60.0)
        assert second.attention == pytest.approx(66.7)
        assert (await repo.get_profile("u1")).attention == pytest.approx(66.7)

    async def test_reflections_are_per_user_and_limited(self, repo):
        for index in range(4):
            await repo.save_reflection("u1", f"s{index}", ReflectionResult(summary=f"Session {index}"))
        await repo.save_reflection("u2", "other", ReflectionResult(summary="Someone else"))

        recent = await repo.list_reflections("u1")
        assert [item.summary for item in recent] == ["Session 1", "Session 2", "Session 3"]
        assert [item.summary for item in await repo.list_reflections("u1", limit=1)] == ["Session 3"]
        assert await repo.list_reflections("nobody") == []
