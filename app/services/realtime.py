"""Realtime fan-out of chat room and message row changes.

Mutations commit first and publish afterwards; ``publish`` only enqueues, so a
slow or dead subscriber never blocks the request that produced the change.
Subscribers are scoped either to one room (``room:{id}``) or to every room a
user takes part in (``user:{id}``). Events carry full row snapshots and may be
delivered more than once, so consumers dedupe by id and replace rows on
UPDATE.

The broker is per process. Running several API instances needs an external
pub/sub (e.g. Postgres LISTEN/NOTIFY) feeding ``publish`` on every instance.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any
from uuid import UUID

from app.models.chat_room import ChatRoom
from app.models.message import Message
from app.schemas.chat import ChatRoomResponse
from app.schemas.message import MessageResponse
from app.schemas.realtime import RealtimeEvent

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 256


def room_topic(room_id: UUID) -> str:
    return f"room:{room_id}"


def user_topic(user_id: UUID) -> str:
    return f"user:{user_id}"


class Subscription:
    def __init__(self, broker: "RealtimeBroker", topic: str, maxsize: int):
        self.broker = broker
        self.topic = topic
        self.queue: asyncio.Queue[RealtimeEvent] = asyncio.Queue(maxsize=maxsize)

    async def get(self) -> RealtimeEvent:
        return await self.queue.get()

    def close(self) -> None:
        self.broker.unsubscribe(self)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class RealtimeBroker:
    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)

    def subscribe(self, topic: str) -> Subscription:
        subscription = Subscription(self, topic, self._queue_size)
        self._subscribers[topic].add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.topic)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def publish(self, topic: str, event: RealtimeEvent) -> int:
        """Enqueue ``event`` for every subscriber of ``topic``; returns deliveries."""
        delivered = 0
        for subscription in list(self._subscribers.get(topic, ())):
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # The client is expected to reconnect and refetch the room
                logger.warning("Realtime queue full, dropping event (topic=%s)", topic)
        return delivered


broker = RealtimeBroker()


def _snapshot(schema: type, row: Any) -> dict[str, Any]:
    return schema.model_validate(row).model_dump(mode="json")


def _room_topics(room: ChatRoom) -> list[str]:
    return [
        room_topic(room.id),
        user_topic(room.requester_id),
        user_topic(room.target_id),
    ]


def publish_room_change(room: ChatRoom, event: str = "UPDATE") -> None:
    payload = RealtimeEvent(
        event=event,
        table="chat_rooms",
        record=_snapshot(ChatRoomResponse, room),
    )
    for topic in _room_topics(room):
        broker.publish(topic, payload)


def publish_message(
    message: Message,
    room: ChatRoom,
    event: str = "INSERT",
    client_id: str | None = None,
) -> None:
    payload = RealtimeEvent(
        event=event,
        table="messages",
        record=_snapshot(MessageResponse, message),
        client_id=client_id,
    )
    for topic in _room_topics(room):
        broker.publish(topic, payload)


def publish_messages_read(message_snapshots: list[dict[str, Any]], room: ChatRoom) -> None:
    """
    Publish UPDATE events for messages already flipped to read, to the room
    and to both chat lists so unread counts refresh.
    """
    topics = _room_topics(room)
    for record in message_snapshots:
        payload = RealtimeEvent(event="UPDATE", table="messages", record=record)
        for topic in topics:
            broker.publish(topic, payload)


def message_snapshot(message: Message, **overrides: Any) -> dict[str, Any]:
    record = _snapshot(MessageResponse, message)
    for key, value in overrides.items():
        record[key] = value.isoformat() if isinstance(value, datetime) else value
    return record
