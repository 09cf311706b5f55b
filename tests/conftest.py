import os
from typing import AsyncGenerator
from uuid import UUID, uuid4

# Settings are read at import time; provide test values before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models.chat_room import ChatRoom, RoomStatus
from app.models.invitation import Invitation, InvitationStatus
from app.models.profile import Profile
from app.services import expiry
from app.services.profile_service import generate_short_id

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine_kwargs = {"echo": False}
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine_kwargs.update(
            poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    test_engine = create_async_engine(TEST_DATABASE_URL, **engine_kwargs)
    test_async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_async_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def headers():
    """headers(user_id) -> Authorization header for that user."""
    return auth_headers


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def requester_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture
async def make_profile(db_session: AsyncSession):
    """Insert a live self-authored profile; keyword overrides any column."""

    async def _make(creator_id: UUID, **overrides) -> Profile:
        now = expiry.utcnow()
        values = {
            "short_id": generate_short_id(),
            "creator_id": creator_id,
            "photo_url": "https://cdn.test/blurred.jpeg",
            "original_photo_url": "https://cdn.test/original.jpeg",
            "name": "지민",
            "age": 27,
            "gender": "female",
            "occupation_category": "직장인",
            "bio": "주말마다 전시 보러 다녀요",
            "interest_tags": ["전시", "카페", "여행"],
            "mbti": "ENFP",
            "instagram_id": "jimin_test",
            "kakao_open_chat_id": "https://open.kakao.com/o/test",
            "expires_at": expiry.profile_expires_at(now),
            "is_active": True,
            "created_at": now,
        }
        values.update(overrides)
        profile = Profile(**values)
        db_session.add(profile)
        await db_session.commit()
        await db_session.refresh(profile)
        return profile

    return _make


@pytest_asyncio.fixture
async def make_invitation(db_session: AsyncSession):
    """Insert an open invitation from ``matchmaker_id``; keyword overrides any column."""

    async def _make(matchmaker_id: UUID, **overrides) -> Invitation:
        now = expiry.utcnow()
        values = {
            "invite_code": generate_short_id(),
            "matchmaker_id": matchmaker_id,
            "status": InvitationStatus.pending.value,
            "expires_at": expiry.invitation_expires_at(now),
            "created_at": now,
        }
        values.update(overrides)
        invitation = Invitation(**values)
        db_session.add(invitation)
        await db_session.commit()
        await db_session.refresh(invitation)
        return invitation

    return _make


@pytest_asyncio.fixture
async def make_invited_profile(make_invitation, make_profile):
    """Profile a friend wrote through ``matchmaker_id``'s invitation."""

    async def _make(creator_id: UUID, matchmaker_id: UUID, **overrides) -> Profile:
        invitation = await make_invitation(
            matchmaker_id, status=InvitationStatus.completed.value, target_id=creator_id
        )
        return await make_profile(
            creator_id, matchmaker_id=matchmaker_id, invitation_id=invitation.id, **overrides
        )

    return _make


@pytest_asyncio.fixture
async def make_room(db_session: AsyncSession):
    """Insert a chat room for (profile, requester) directly in a given state."""

    async def _make(
        profile: Profile,
        requester_id: UUID,
        status: RoomStatus = RoomStatus.active,
        **overrides,
    ) -> ChatRoom:
        now = expiry.utcnow()
        values = {
            "profile_id": profile.id,
            "requester_id": requester_id,
            "target_id": profile.answering_user_id,
            "status": status.value,
            "created_at": now,
        }
        if status == RoomStatus.active:
            values["expires_at"] = expiry.room_expires_at(now)
        values.update(overrides)
        room = ChatRoom(**values)
        db_session.add(room)
        await db_session.commit()
        await db_session.refresh(room)
        return room

    return _make
