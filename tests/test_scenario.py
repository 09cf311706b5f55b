"""The full intro flow, from a shared profile link to a mutual reveal."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.notification import Notification


def _parse(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@pytest.mark.asyncio
async def test_intro_to_reveal(
    client: AsyncClient, db_session, headers, make_profile, owner_id, requester_id
):
    profile = await make_profile(owner_id)

    # The visitor finds the profile through its public link and asks to chat
    public = await client.get(f"/api/v1/profiles/s/{profile.short_id}")
    assert public.status_code == 200

    requested = await client.post(
        "/api/v1/chats/requests",
        json={"profile_id": str(profile.id)},
        headers=headers(requester_id),
    )
    assert requested.status_code == 201
    room_id = requested.json()["room_id"]

    room = (await client.get(f"/api/v1/chats/{room_id}", headers=headers(owner_id))).json()
    assert room["status"] == "pending"
    assert room["target_id"] == str(owner_id)

    notifications = (
        await db_session.execute(
            select(Notification).where(Notification.user_id == owner_id)
        )
    ).scalars().all()
    assert [n.type for n in notifications] == ["chat_requested"]

    # The profile owner accepts; the 48-hour window starts now
    accepted = await client.post(f"/api/v1/chats/{room_id}/accept", headers=headers(owner_id))
    assert accepted.status_code == 200
    room = accepted.json()
    assert room["status"] == "active"
    remaining = _parse(room["expires_at"]) - datetime.now(timezone.utc)
    assert timedelta(hours=47, minutes=59) < remaining <= timedelta(hours=48)

    # Contact details are scrubbed before the message is stored
    sent = await client.post(
        f"/api/v1/chats/{room_id}/messages",
        json={"content": "안녕하세요! 010-1234-5678로 연락주세요"},
        headers=headers(requester_id),
    )
    assert sent.status_code == 201
    assert sent.json()["contact_filtered"] is True
    assert sent.json()["message"]["content"] == "안녕하세요! [연락처 정보 삭제됨]로 연락주세요"

    history = await client.get(f"/api/v1/chats/{room_id}/messages", headers=headers(owner_id))
    assert [m["content"] for m in history.json()["messages"]] == [
        "안녕하세요! [연락처 정보 삭제됨]로 연락주세요"
    ]

    # Mutual reveal closes the room and discloses the identity fields
    reveal = await client.post(
        f"/api/v1/chats/{room_id}/reveal-request", headers=headers(requester_id)
    )
    assert reveal.status_code == 200
    assert reveal.json()["reveal_requested_by"] == str(requester_id)

    revealed = await client.post(
        f"/api/v1/chats/{room_id}/reveal-accept", headers=headers(owner_id)
    )
    assert revealed.status_code == 200
    data = revealed.json()
    assert data["room"]["status"] == "completed"
    assert data["room"]["profile_revealed"] is True
    assert data["room"]["reveal_requested_by"] is None
    assert data["profile"] == {
        "original_photo_url": "https://cdn.test/original.jpeg",
        "instagram_id": "jimin_test",
        "kakao_open_chat_id": "https://open.kakao.com/o/test",
        "name": "지민",
    }

    # The requester can read the same identity afterwards; chatting is over
    view = await client.get(
        f"/api/v1/chats/{room_id}/revealed-profile", headers=headers(requester_id)
    )
    assert view.json()["instagram_id"] == "jimin_test"

    closed = await client.post(
        f"/api/v1/chats/{room_id}/messages",
        json={"content": "아직 있나요?"},
        headers=headers(requester_id),
    )
    assert closed.status_code == 400
    assert closed.json()["code"] == "CHAT_ROOM_NOT_ACTIVE"
