"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.jwt import create_access_token, reset_keys
from mindbreaker.config import get_settings
from mindbreaker.database import close_db, get_engine, get_session, init_db
from mindbreaker.db.base import Base
from mindbreaker.db.models import Expedition, Organization, Profile, Quest, QuestExercise
from mindbreaker.main import create_app
from mindbreaker.redis_client import get_redis_dep

_KEY_DIR: str | None = None


def _ensure_test_keys() -> None:
    """Generate an RSA key pair once per run and point settings at it."""
    global _KEY_DIR  # noqa: PLW0603
    if _KEY_DIR is None:
        _KEY_DIR = tempfile.mkdtemp(prefix="mb_test_keys_")
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        Path(_KEY_DIR, "jwt_private.pem").write_bytes(
            key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )
        Path(_KEY_DIR, "jwt_public.pem").write_bytes(
            key.public_key().public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )

    os.environ["MB_JWT_PRIVATE_KEY_PATH"] = os.path.join(_KEY_DIR, "jwt_private.pem")
    os.environ["MB_JWT_PUBLIC_KEY_PATH"] = os.path.join(_KEY_DIR, "jwt_public.pem")

    # Clear cached settings and JWT keys
    get_settings.cache_clear()
    reset_keys()


def make_fake_redis() -> AsyncMock:
    """Redis double: every read misses, every write/publish is recorded."""
    redis = AsyncMock()
    redis.get.return_value = None
    redis.mget.side_effect = lambda keys: [None] * len(keys)
    return redis


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database built from the ORM metadata."""
    _ensure_test_keys()
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest.fixture
def fake_redis() -> AsyncMock:
    return make_fake_redis()


@pytest_asyncio.fixture
async def client(database: None, fake_redis: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, with Redis swapped for ``fake_redis``."""
    app = create_app()
    app.dependency_overrides[get_redis_dep] = lambda: fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    async for session in get_session():
        yield session
        break


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


async def make_profile(
    db: AsyncSession,
    username: str,
    *,
    is_admin: bool = False,
    is_banned: bool = False,
    total_xp: int = 0,
) -> Profile:
    profile = Profile(
        username=username,
        is_admin=is_admin,
        is_banned=is_banned,
        total_xp=total_xp,
        level=total_xp // 1000 + 1,
    )
    db.add(profile)
    await db.commit()
    return profile


async def make_organization(db: AsyncSession, name: str, **kwargs: object) -> Organization:
    org = Organization(name=name, **kwargs)
    db.add(org)
    await db.commit()
    return org


async def make_quest(db: AsyncSession, title: str, **kwargs: object) -> Quest:
    quest = Quest(title=title, **kwargs)
    db.add(quest)
    await db.commit()
    return quest


async def make_expedition(db: AsyncSession, title: str, **kwargs: object) -> Expedition:
    expedition = Expedition(title=title, **kwargs)
    db.add(expedition)
    await db.commit()
    return expedition


async def make_exercise(db: AsyncSession, quest: Quest, title: str) -> QuestExercise:
    exercise = QuestExercise(quest_id=quest.id, title=title)
    db.add(exercise)
    await db.commit()
    return exercise


def auth_headers(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(profile.id, profile.username)}"}


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Profile:
    return await make_profile(db_session, "admin", is_admin=True)


@pytest_asyncio.fixture
async def member(db_session: AsyncSession) -> Profile:
    return await make_profile(db_session, "member")


@pytest.fixture
def admin_headers(admin: Profile) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def member_headers(member: Profile) -> dict[str, str]:
    return auth_headers(member)


async def fetch(model: type, ident: object) -> object | None:
    """Read a row through a fresh session, bypassing any stale identity map."""
    sessions = get_session()
    session = await sessions.__anext__()
    try:
        return await session.get(model, ident)
    finally:
        await sessions.aclose()
