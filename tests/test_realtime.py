import asyncio
from uuid import uuid4

import pytest
from httpx import AsyncClient
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.database import get_db
from app.main import app
from app.models.chat_room import RoomStatus
from app.schemas.realtime import RealtimeEvent
from app.services import chat_room_service, realtime
from app.services.realtime import RealtimeBroker


def _event(n: int = 0) -> RealtimeEvent:
    return RealtimeEvent(event="INSERT", table="messages", record={"id": str(n)})


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber_of_topic():
    broker = RealtimeBroker()
    first = broker.subscribe("room:1")
    second = broker.subscribe("room:1")
    other = broker.subscribe("room:2")

    delivered = broker.publish("room:1", _event())

    assert delivered == 2
    assert (await first.get()).record == {"id": "0"}
    assert (await second.get()).record == {"id": "0"}
    assert other.queue.empty()


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_noop():
    broker = RealtimeBroker()

    assert broker.publish("room:nobody", _event()) == 0


@pytest.mark.asyncio
async def test_unsubscribe_on_exit():
    broker = RealtimeBroker()

    async with broker.subscribe("user:1"):
        assert broker.subscriber_count("user:1") == 1

    assert broker.subscriber_count("user:1") == 0
    assert broker.publish("user:1", _event()) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_instead_of_blocking():
    broker = RealtimeBroker(queue_size=2)
    slow = broker.subscribe("room:1")
    fast = broker.subscribe("room:1")

    for n in range(3):
        broker.publish("room:1", _event(n))
    # A slow consumer never holds up the publisher or other subscribers
    assert slow.queue.qsize() == 2
    assert [(await fast.get()).record["id"] for _ in range(2)] == ["0", "1"]


@pytest.mark.asyncio
async def test_sent_message_fans_out_to_room_and_both_users(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.active)

    room_sub = realtime.broker.subscribe(realtime.room_topic(room.id))
    owner_sub = realtime.broker.subscribe(realtime.user_topic(owner_id))
    try:
        response = await client.post(
            f"/api/v1/chats/{room.id}/messages",
            json={"content": "실시간 테스트", "client_id": "optimistic-42"},
            headers=headers(requester_id),
        )
        message_id = response.json()["message"]["id"]

        message_event = await asyncio.wait_for(room_sub.get(), timeout=1)
        assert message_event.event == "INSERT"
        assert message_event.table == "messages"
        assert message_event.record["id"] == message_id
        assert message_event.client_id == "optimistic-42"

        # Chat list subscribers get the message and the room's new last_message_at
        events = [await asyncio.wait_for(owner_sub.get(), timeout=1) for _ in range(2)]
        assert {e.table for e in events} == {"messages", "chat_rooms"}
        room_event = next(e for e in events if e.table == "chat_rooms")
        assert room_event.record["last_message_at"] is not None
    finally:
        room_sub.close()
        owner_sub.close()


@pytest.mark.asyncio
async def test_accept_publishes_full_room_snapshot(
    client: AsyncClient, headers, make_profile, make_room, owner_id, requester_id
):
    profile = await make_profile(owner_id)
    room = await make_room(profile, requester_id, RoomStatus.pending)

    async with realtime.broker.subscribe(realtime.user_topic(requester_id)) as subscription:
        await client.post(f"/api/v1/chats/{room.id}/accept", headers=headers(owner_id))
        event = await asyncio.wait_for(subscription.get(), timeout=1)

    assert event.event == "UPDATE"
    assert event.table == "chat_rooms"
    assert event.record["id"] == str(room.id)
    assert event.record["status"] == "active"
    assert event.record["expires_at"] is not None
    assert event.record["requester_id"] == str(requester_id)


@pytest.mark.asyncio
async def test_request_chat_publishes_insert(
    client: AsyncClient, headers, make_profile, owner_id, requester_id
):
    profile = await make_profile(owner_id)

    async with realtime.broker.subscribe(realtime.user_topic(owner_id)) as subscription:
        response = await client.post(
            "/api/v1/chats/requests",
            json={"profile_id": str(profile.id)},
            headers=headers(requester_id),
        )
        event = await asyncio.wait_for(subscription.get(), timeout=1)

    assert event.event == "INSERT"
    assert event.record["id"] == response.json()["room_id"]
    assert event.record["status"] == "pending"


def test_websocket_rejects_missing_token():
    test_client = TestClient(app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with test_client.websocket_connect("/api/v1/realtime/ws"):
            pass

    assert exc_info.value.code == 1008


def test_websocket_rejects_invalid_token():
    test_client = TestClient(app)

    with pytest.raises(WebSocketDisconnect):
        with test_client.websocket_connect(
            f"/api/v1/realtime/ws?token=not-a-token&room_id={uuid4()}"
        ):
            pass


class _RecordingSession:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class _Room:
    def __init__(self, *participants):
        self.participants = set(participants)

    def is_participant(self, user_id):
        return user_id in self.participants


def test_websocket_releases_session_before_streaming(monkeypatch, headers):
    user_id, room_id = uuid4(), uuid4()
    session = _RecordingSession()

    async def fake_get_room_by_id(db, requested_id):
        assert requested_id == room_id
        return _Room(user_id)

    async def override_get_db():
        yield session

    monkeypatch.setattr(chat_room_service, "get_room_by_id", fake_get_room_by_id)
    app.dependency_overrides[get_db] = override_get_db
    token = headers(user_id)["Authorization"].removeprefix("Bearer ")
    try:
        with TestClient(app).websocket_connect(
            f"/api/v1/realtime/ws?token={token}&room_id={room_id}"
        ) as websocket:
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"
            assert session.closed is True
    finally:
        app.dependency_overrides.clear()


def test_websocket_outsider_rejected_after_session_release(monkeypatch, headers):
    session = _RecordingSession()

    async def fake_get_room_by_id(db, requested_id):
        return _Room(uuid4())

    async def override_get_db():
        yield session

    monkeypatch.setattr(chat_room_service, "get_room_by_id", fake_get_room_by_id)
    app.dependency_overrides[get_db] = override_get_db
    token = headers(uuid4())["Authorization"].removeprefix("Bearer ")
    try:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with TestClient(app).websocket_connect(
                f"/api/v1/realtime/ws?token={token}&room_id={uuid4()}"
            ):
                pass
    finally:
        app.dependency_overrides.clear()

    assert exc_info.value.code == 1008
    assert session.closed is True
