from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from app.core.exceptions import ConflictError
from app.models.chat_room import ChatRoom, RoomStatus
from app.models.notification import Notification
from app.services import chat_room_service, expiry


@pytest.mark.asyncio
async def test_request_reveal_marks_requester(
    client: AsyncClient, db_session, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id)
    )

    assert response.status_code == 200
    assert response.json()["reveal_requested_by"] == str(requester_id)

    types = (
        await db_session.execute(
            select(Notification.type).where(Notification.user_id == owner_id)
        )
    ).scalars().all()
    assert types == ["reveal_requested"]


@pytest.mark.asyncio
async def test_second_reveal_request_rejected(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)
    await client.post(f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id))

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-request", headers=headers(owner_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_ALREADY_REQUESTED"


@pytest.mark.asyncio
async def test_reveal_request_needs_active_room(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.pending)

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_NOT_ACTIVE"


@pytest.mark.asyncio
async def test_reveal_request_on_expired_room_expires_it(
    client: AsyncClient, db_session, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(
        profile,
        requester_id,
        RoomStatus.active,
        expires_at=expiry.utcnow() - timedelta(seconds=30),
    )

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_NOT_ACTIVE"
    await db_session.refresh(room)
    assert room.status == RoomStatus.expired.value


@pytest.mark.asyncio
async def test_outsider_cannot_request_reveal(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-request", headers=headers(uuid4())
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_accept_own_reveal_request(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)
    await client.post(f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id))

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(requester_id)
    )

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHZ_OWN_REVEAL_REQUEST"


@pytest.mark.asyncio
async def test_accept_reveal_completes_room_and_discloses_profile(
    client: AsyncClient, db_session, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)
    await client.post(f"/api/v1/chats/{room.id}/reveal-request", headers=headers(owner_id))

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(requester_id)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["room"]["status"] == "completed"
    assert data["room"]["profile_revealed"] is True
    assert data["room"]["reveal_requested_by"] is None
    assert data["room"]["profile_revealed_at"] is not None
    assert data["profile"] == {
        "original_photo_url": "https://cdn.test/original.jpeg",
        "instagram_id": "jimin_test",
        "kakao_open_chat_id": "https://open.kakao.com/o/test",
        "name": "지민",
    }

    for user_id in (owner_id, requester_id):
        types = (
            await db_session.execute(
                select(Notification.type).where(Notification.user_id == user_id)
            )
        ).scalars().all()
        assert "reveal_accepted" in types


@pytest.mark.asyncio
async def test_accept_reveal_without_request(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(owner_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_NOT_REQUESTED"


@pytest.mark.asyncio
async def test_accept_reveal_again_after_completion(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)
    await client.post(f"/api/v1/chats/{room.id}/reveal-request", headers=headers(owner_id))
    first = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(requester_id)
    )
    assert first.status_code == 200

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(requester_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_ALREADY_DONE"


@pytest.mark.asyncio
async def test_accept_reveal_on_expired_room(
    client: AsyncClient, db_session, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(
        profile,
        requester_id,
        RoomStatus.active,
        reveal_requested_by=requester_id,
        expires_at=expiry.utcnow() - timedelta(minutes=1),
    )

    response = await client.post(
        f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(owner_id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "REVEAL_NOT_ACTIVE"
    await db_session.refresh(room)
    assert room.status == RoomStatus.expired.value
    assert room.profile_revealed is False


@pytest.mark.asyncio
async def test_double_reveal_accept_single_winner(
    db_session, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(
        profile, requester_id, RoomStatus.active, reveal_requested_by=requester_id
    )

    # Another request completes the reveal after we loaded the room
    await db_session.execute(
        update(ChatRoom)
        .where(ChatRoom.id == room.id)
        .values(
            status=RoomStatus.completed.value,
            profile_revealed=True,
            profile_revealed_at=expiry.utcnow(),
            reveal_requested_by=None,
        )
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()

    with pytest.raises(ConflictError):
        await chat_room_service.accept_reveal(db_session, room.id, owner_id)


@pytest.mark.asyncio
async def test_revealed_profile_view(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    hidden = await client.get(
        f"/api/v1/chats/{room.id}/revealed-profile", headers=headers(requester_id)
    )
    assert hidden.status_code == 400
    assert hidden.json()["code"] == "REVEAL_NOT_DONE"

    await client.post(f"/api/v1/chats/{room.id}/reveal-request", headers=headers(requester_id))
    await client.post(f"/api/v1/chats/{room.id}/reveal-accept", headers=headers(owner_id))

    shown = await client.get(
        f"/api/v1/chats/{room.id}/revealed-profile", headers=headers(requester_id)
    )
    assert shown.status_code == 200
    assert shown.json()["instagram_id"] == "jimin_test"

    listing = await client.get("/api/v1/chats/", headers=headers(requester_id))
    assert listing.json()["rooms"][0]["profile_photo_url"] == "https://cdn.test/original.jpeg"
