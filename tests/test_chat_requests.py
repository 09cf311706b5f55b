from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.config import settings
from app.models.chat_room import ChatRoom, RoomStatus
from app.models.notification import Notification
from app.services import block_service, expiry


@pytest.mark.asyncio
async def test_request_chat_creates_pending_room(
    client: AsyncClient, db_session, headers, make_profile, owner_id, requester_id
):
    """Requesting a chat creates a pending room targeting the creator."""
    profile = await make_profile(owner_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 201
    room_id = response.json()["room_id"]

    room = await db_session.get(ChatRoom, UUID(room_id))
    assert room.status == RoomStatus.pending.value
    assert room.requester_id == requester_id
    assert room.target_id == owner_id
    assert room.expires_at is None

    await db_session.refresh(profile)
    assert profile.chat_request_count == 1

    notifications = (
        await db_session.execute(select(Notification).where(Notification.user_id == owner_id))
    ).scalars().all()
    assert [n.type for n in notifications] == ["chat_requested"]
    assert notifications[0].link_url == f"/chat?pending={room.id}"


@pytest.mark.asyncio
async def test_request_chat_targets_profile_target(
    client: AsyncClient, db_session, headers, make_invited_profile, owner_id, requester_id
):
    """When a profile names a separate target, that user answers requests."""
    friend_id = uuid4()
    profile = await make_invited_profile(owner_id, uuid4(), target_id=friend_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 201
    room = (await db_session.execute(select(ChatRoom))).scalar_one()
    assert room.target_id == friend_id


@pytest.mark.asyncio
async def test_request_chat_unknown_profile(client: AsyncClient, headers, requester_id):
    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(uuid4())},
        headers=headers(requester_id),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_request_chat_requires_login(client: AsyncClient, make_profile, owner_id):
    profile = await make_profile(owner_id)

    response = await client.post("/api/v1/chats/requests", json={"profile_id": str(profile.id)})

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_NOT_AUTHENTICATED"


@pytest.mark.asyncio
async def test_request_chat_expired_profile(
    client: AsyncClient, headers, make_profile, owner_id, requester_id
):
    profile = await make_profile(owner_id, expires_at=expiry.utcnow() - timedelta(minutes=1))

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "PROFILE_INACTIVE"


@pytest.mark.asyncio
async def test_request_chat_inactive_profile(
    client: AsyncClient, headers, make_profile, owner_id, requester_id
):
    profile = await make_profile(owner_id, is_active=False)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "PROFILE_INACTIVE"


@pytest.mark.asyncio
async def test_request_chat_own_profile_forbidden(
    client: AsyncClient, headers, make_profile, owner_id
):
    profile = await make_profile(owner_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(owner_id),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHZ_OWN_PROFILE"


@pytest.mark.asyncio
async def test_matchmaker_cannot_request_introduced_profile(
    client: AsyncClient, headers, make_invited_profile, owner_id
):
    matchmaker_id = uuid4()
    profile = await make_invited_profile(owner_id, matchmaker_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(matchmaker_id),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHZ_OWN_PROFILE"


@pytest.mark.asyncio
async def test_duplicate_request_references_pending_room(
    client: AsyncClient, db_session, headers, make_profile, owner_id, requester_id
):
    """A second request for the same pair returns the existing room and inserts nothing."""
    profile = await make_profile(owner_id)
    first = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    second = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert second.status_code == 400
    data = second.json()
    assert data["code"] == "CHAT_ALREADY_REQUESTED"
    assert data["metadata"]["room_id"] == first.json()["room_id"]

    count = (await db_session.execute(select(func.count(ChatRoom.id)))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_request_on_active_room_returns_room_id(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "CHAT_ALREADY_ACTIVE"
    assert response.json()["metadata"]["room_id"] == str(room.id)


@pytest.mark.asyncio
async def test_rejected_pair_is_closed_for_good(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    await make_room(profile, requester_id, RoomStatus.rejected)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "CHAT_PREVIOUSLY_REJECTED"


@pytest.mark.asyncio
async def test_daily_request_quota(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id, monkeypatch
):
    monkeypatch.setattr(settings, "MAX_DAILY_CHAT_REQUESTS", 2)
    for _ in range(2):
        earlier = await make_profile(owner_id)
        await make_room(earlier, requester_id, RoomStatus.pending)
    profile = await make_profile(owner_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 429
    data = response.json()
    assert data["code"] == "QUOTA_EXCEEDED"
    assert data["metadata"]["limit"] == 2


@pytest.mark.asyncio
async def test_requests_before_local_midnight_do_not_count(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id, monkeypatch
):
    monkeypatch.setattr(settings, "MAX_DAILY_CHAT_REQUESTS", 1)
    yesterday = expiry.start_of_local_day(expiry.utcnow()) - timedelta(minutes=1)
    earlier = await make_profile(owner_id)
    await make_room(earlier, requester_id, RoomStatus.pending, created_at=yesterday)
    profile = await make_profile(owner_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_blocked_pair_cannot_request(
    client: AsyncClient, db_session, headers, make_profile, owner_id, requester_id
):
    """Blocking is symmetric: the owner blocking the requester stops requests."""
    profile = await make_profile(owner_id)
    await block_service.block_user(db_session, owner_id, requester_id)

    response = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHZ_BLOCKED"
