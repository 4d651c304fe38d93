"""
Shared test fixtures for the SkillSwap backend.

Every test gets its own SQLite database file (aiosqlite) with the full
schema; API tests drive the FastAPI app in-process with the session
dependency pointed at that database.
"""

from __future__ import annotations

import os

# Must be set before skillswap.config is imported
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from skillswap import models
from skillswap.api import app
from skillswap.db import get_session
from skillswap.models import Base
from skillswap.pipelines import swaps, users


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_maker) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncIterator[AsyncClient]:
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def skill_entries(names: list[str], level: str = "Intermediate") -> list[dict]:
    return [{"name": name, "level": level} for name in names]


@pytest.fixture
def make_user(session):
    """Factory: register a user and (by default) complete onboarding."""
    counter = {"n": 0}

    async def _make(
        name: str,
        *,
        teach: list[str] = (),
        learn: list[str] = (),
        prefer_online: bool = True,
        prefer_offline: bool = False,
        location: str | None = None,
        onboard: bool = True,
        admin: bool = False,
    ) -> models.User:
        counter["n"] += 1
        user = await users.register_user(
            session,
            f"{name.lower()}{counter['n']}@example.com",
            name,
            user_id=f"{name.lower()}-{counter['n']}",
        )
        if onboard:
            user = await users.complete_onboarding(
                session,
                user.id,
                skill_entries(list(teach)),
                skill_entries(list(learn)),
                prefer_online=prefer_online,
                prefer_offline=prefer_offline,
                location=location,
            )
        if admin:
            user.role = models.UserRole.ADMIN.value
            await session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def swap_pair(make_user):
    """Two onboarded users with mutual skills, both online."""
    alice = await make_user("Alice", teach=["Guitar", "Python"], learn=["Spanish"])
    bob = await make_user("Bob", teach=["Spanish"], learn=["Guitar"])
    return alice, bob


@pytest_asyncio.fixture
async def accepted_request(session, swap_pair):
    """Alice's request to Bob, accepted by Bob."""
    alice, bob = swap_pair
    request = await swaps.create_swap_request(session, alice.id, bob.id)
    return await swaps.accept_swap_request(session, request.id, bob.id)
